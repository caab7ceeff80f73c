#!/usr/bin/env python3
"""
Scan from an AirScan capable scanner
====================================

Usage:
    python cli.py --url http://192.168.2.38/eSCL --source Platen --format jpg
"""

import argparse
import logging
import os
import sys

from backends.escl_backend import EsclError, InputSource
from scanner_manager import DEFAULT_ESCL_URL, ScannerManager


def build_parser():
    parser = argparse.ArgumentParser(description="Scan from an AirScan capable scanner")
    parser.add_argument("-u", "--url", default=os.getenv("ESCL_URL", DEFAULT_ESCL_URL),
                        help="URL of the scanner's eSCL endpoint")
    parser.add_argument("-s", "--source", default=InputSource.FEEDER.value,
                        choices=[s.value for s in InputSource], help="Input source")
    parser.add_argument("-r", "--resolution", default="300", help="Resolution in DPI")
    parser.add_argument("-f", "--format", default="pdf", help="Format jpg or pdf")
    parser.add_argument("-o", "--output", help="Output file (default: scan.<format>)")
    parser.add_argument("-c", "--color-mode", default="RGB24", help="eSCL color mode")
    parser.add_argument("--extended-format", action="store_true",
                        help="Also send DocumentFormatExt")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    output = args.output or f"scan.{args.format}"
    sm = ScannerManager(url=args.url)

    try:
        saved = sm.scan_network_escl(
            output_file=output,
            source=args.source,
            resolution=args.resolution,
            fmt=args.format,
            color_mode=args.color_mode,
            extended_format=True if args.extended_format else None,
        )
    except EsclError as e:
        detail = f" (HTTP {e.status_code})" if e.status_code is not None else ""
        print(f"✗ Scan failed during {e.phase}{detail}: {e}", file=sys.stderr)
        return 1

    if not saved:
        print("No document was returned by the scanner")
    for path in saved:
        print(f"✓ Saved {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
