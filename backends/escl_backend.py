import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from urllib.parse import urljoin, urlsplit

import requests

logger = logging.getLogger(__name__)

PWG_NS = "http://www.pwg.org/schemas/2010/12/sm"
SCAN_NS = "http://schemas.hp.com/imaging/escl/2011/05/03"

# Full US-Letter page in three-hundredths of an inch
SCAN_REGION_WIDTH = 2550
SCAN_REGION_HEIGHT = 3507

RETRY_INTERVAL = 1
MAX_BUSY_RETRIES = 100
FETCH_INTERVAL = 1
REQUEST_TIMEOUT = 30
DOWNLOAD_TIMEOUT = 120

SUBMIT_CONTENT_TYPE = "application/x-www-form-urlencoded"


class InputSource(str, Enum):
    PLATEN = "Platen"
    FEEDER = "Feeder"


class EsclError(RuntimeError):
    """Base class for every fatal eSCL condition."""

    phase = None

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class RequestFailed(EsclError):
    phase = "submit"


class ScannerRejected(EsclError):
    phase = "submit"

    def __init__(self, status_code, message=None):
        super().__init__(message or f"Scanner rejected scan job (HTTP {status_code})", status_code)


class SubmissionTimedOut(EsclError):
    phase = "submit"


class TransportError(EsclError):
    phase = "fetch"


class UnexpectedStatus(EsclError):
    phase = "fetch"

    def __init__(self, status_code, message=None):
        super().__init__(message or f"Unexpected HTTP status while fetching document: {status_code}", status_code)


class InvalidOutputPath(EsclError, ValueError):
    phase = "fetch"


def _value(field):
    return getattr(field, "value", field)


def build_scan_settings(source, resolution, document_format, color_mode, extended_format=None):
    """
    Build the eSCL ScanSettings document for one scan job.
    Values are written verbatim; the scanner is the only validator.
    """
    source = _value(source)
    xml = '<?xml version="1.0" encoding="UTF-8"?>'
    xml += f'<scan:ScanSettings xmlns:pwg="{PWG_NS}" xmlns:scan="{SCAN_NS}">'
    xml += "<pwg:Version>2.0</pwg:Version>"
    xml += f"<pwg:InputSource>{source}</pwg:InputSource>"
    xml += (
        "<pwg:ScanRegions><pwg:ScanRegion>"
        "<pwg:ContentRegionUnits>escl:ThreeHundredthsOfInches</pwg:ContentRegionUnits>"
        f"<pwg:Height>{SCAN_REGION_HEIGHT}</pwg:Height>"
        f"<pwg:Width>{SCAN_REGION_WIDTH}</pwg:Width>"
        "<pwg:XOffset>0</pwg:XOffset>"
        "<pwg:YOffset>0</pwg:YOffset>"
        "</pwg:ScanRegion></pwg:ScanRegions>"
    )
    xml += f"<pwg:DocumentFormat>{document_format}</pwg:DocumentFormat>"
    if extended_format is not None:
        xml += f"<pwg:DocumentFormatExt>{document_format}</pwg:DocumentFormatExt>"
    xml += f"<scan:ColorMode>{color_mode}</scan:ColorMode>"
    xml += f"<scan:XResolution>{resolution}</scan:XResolution>"
    xml += f"<scan:YResolution>{resolution}</scan:YResolution>"
    xml += "</scan:ScanSettings>"
    return xml


@dataclass(frozen=True)
class ScanSettings:
    input_source: str
    resolution: str
    document_format: str
    color_mode: str = "RGB24"
    extended_format: Optional[bool] = None

    def to_xml(self) -> str:
        return build_scan_settings(
            self.input_source,
            self.resolution,
            self.document_format,
            self.color_mode,
            self.extended_format,
        )


def document_format_for(fmt):
    """Turn a short format name like 'pdf' or 'jpg' into a MIME type."""
    if "/" in fmt:
        return fmt
    return f"application/{fmt}"


def is_multi_document(source, document_format):
    # A feeder scan to PDF comes back as one multi-page document
    return _value(source) == InputSource.FEEDER.value and not document_format.endswith("pdf")


def _job_location(response):
    location = response.headers.get("Location")
    if not location:
        return None
    parts = urlsplit(location)
    if not parts.scheme or not parts.netloc:
        return None
    if not location.endswith("/"):
        location += "/"
    return location


def submit_scan_job(base_url, settings_xml, retry_interval=RETRY_INTERVAL, max_retries=MAX_BUSY_RETRIES,
                    timeout=REQUEST_TIMEOUT, session=None) -> str:
    """
    POST the scan settings to {base_url}/ScanJobs and return the job location.

    A busy scanner (HTTP 503) is retried every `retry_interval` seconds until
    `max_retries` waits have passed; every other failure is raised at once.
    """
    http = session or requests
    post_url = f"{base_url.rstrip('/')}/ScanJobs"
    headers = {"Content-Type": SUBMIT_CONTENT_TYPE}
    count = 0

    while True:
        logger.info("Sending scan request to %s", post_url)
        try:
            response = http.post(post_url, data=settings_xml, headers=headers, timeout=timeout)
        except requests.RequestException as e:
            logger.error("Scan request to %s failed: %s", post_url, e)
            raise RequestFailed(f"Scan request to {post_url} failed: {e}") from e

        status = response.status_code
        if 200 <= status < 300:
            location = _job_location(response)
            if location is None:
                logger.error("Scanner accepted job without a usable Location header (HTTP %s)", status)
                raise ScannerRejected(status, f"Scanner returned HTTP {status} without a valid job Location")
            logger.info("Scan job created at %s", location)
            return location

        if status != 503:
            logger.error("Scanner rejected scan job (HTTP %s)", status)
            raise ScannerRejected(status)

        logger.warning("Scanner seems busy (HTTP 503), waiting %s of %s seconds", count, max_retries)
        count += 1
        time.sleep(retry_interval)
        if count >= max_retries:
            raise SubmissionTimedOut(f"Scanner is busy for too long ({max_retries} retries)")


def document_filename(output_path, sequence, multi_document):
    """
    Name of the file for the `sequence`-th document.
    In multi-document mode scan.jpg becomes scan-1.jpg, scan-2.jpg, ...
    """
    if not multi_document:
        return output_path

    directory, basename = os.path.split(output_path)
    parts = basename.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidOutputPath(f"Output file name must look like name.ext, got {basename!r}")
    return os.path.join(directory, f"{parts[0]}-{sequence}.{parts[1]}")


def _save_document(response, filename):
    with open(filename, "wb") as f:
        for chunk in response.iter_content(1024):
            f.write(chunk)


def fetch_documents(job_location, output_path, multi_document, interval=FETCH_INTERVAL,
                    timeout=DOWNLOAD_TIMEOUT, session=None) -> List[str]:
    """
    Pull NextDocument from the job until the scanner answers 404.

    Single-document mode stops after the first saved file. Returns the saved
    paths in order; files written before a failure are left in place.
    """
    http = session or requests
    next_url = urljoin(job_location, "NextDocument")
    saved = []
    sequence = 1

    while True:
        filename = document_filename(output_path, sequence, multi_document)
        time.sleep(interval)

        logger.debug("Requesting %s", next_url)
        try:
            response = http.get(next_url, stream=True, timeout=timeout)
        except requests.RequestException as e:
            logger.error("Fetching %s failed: %s", next_url, e)
            raise TransportError(f"HTTP request to {next_url} failed: {e}") from e

        try:
            status = response.status_code
            logger.debug("NextDocument answered HTTP %s", status)
            if 200 <= status < 300:
                try:
                    _save_document(response, filename)
                except requests.RequestException as e:
                    raise TransportError(f"Download of {next_url} failed: {e}") from e
                logger.info("eSCL scan saved: %s", filename)
                saved.append(filename)
                sequence += 1
                if not multi_document:
                    break
            elif status == 404:
                break
            else:
                logger.error("Unexpected HTTP status %s from %s", status, next_url)
                raise UnexpectedStatus(status)
        finally:
            response.close()

    return saved


def scan_from_escl(url, output_file, settings, multi_document=None, retry_interval=RETRY_INTERVAL,
                   max_retries=MAX_BUSY_RETRIES, fetch_interval=FETCH_INTERVAL, request_timeout=REQUEST_TIMEOUT,
                   download_timeout=DOWNLOAD_TIMEOUT, session=None):
    """
    Scan from any eSCL/AirScan printer (HP, Canon, Epson, Brother)
    Example URL: http://192.168.1.100:8080/eSCL
    """
    if multi_document is None:
        multi_document = is_multi_document(settings.input_source, settings.document_format)
    if multi_document:
        # Reject the output name before the scanner starts feeding pages
        document_filename(output_file, 1, multi_document)

    settings_xml = settings.to_xml()
    logger.debug("Scan settings: %s", settings_xml)

    job_location = submit_scan_job(
        url,
        settings_xml,
        retry_interval=retry_interval,
        max_retries=max_retries,
        timeout=request_timeout,
        session=session,
    )
    return fetch_documents(
        job_location,
        output_file,
        multi_document,
        interval=fetch_interval,
        timeout=download_timeout,
        session=session,
    )
