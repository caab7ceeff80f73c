import logging
import os

from backends.escl_backend import (
    DOWNLOAD_TIMEOUT,
    FETCH_INTERVAL,
    MAX_BUSY_RETRIES,
    REQUEST_TIMEOUT,
    RETRY_INTERVAL,
    ScanSettings,
    document_format_for,
    scan_from_escl,
)

DEFAULT_ESCL_URL = "http://192.168.2.38/eSCL"

logger = logging.getLogger(__name__)


def _env_float(name, default):
    value = os.getenv(name)
    return float(value) if value else default


class ScannerManager:
    def __init__(self, url=None, retry_interval=None, max_retries=None, fetch_interval=None,
                 request_timeout=None, download_timeout=None, session=None):
        self.url = url or os.getenv("ESCL_URL", DEFAULT_ESCL_URL)
        self.retry_interval = retry_interval if retry_interval is not None else _env_float("ESCL_RETRY_INTERVAL", RETRY_INTERVAL)
        self.max_retries = max_retries if max_retries is not None else int(_env_float("ESCL_MAX_RETRIES", MAX_BUSY_RETRIES))
        self.fetch_interval = fetch_interval if fetch_interval is not None else _env_float("ESCL_FETCH_INTERVAL", FETCH_INTERVAL)
        self.request_timeout = request_timeout if request_timeout is not None else _env_float("ESCL_REQUEST_TIMEOUT", REQUEST_TIMEOUT)
        self.download_timeout = download_timeout if download_timeout is not None else _env_float("ESCL_DOWNLOAD_TIMEOUT", DOWNLOAD_TIMEOUT)
        self.session = session

    def scan_network_escl(self, url=None, output_file="scan.pdf", source="Feeder", resolution="300",
                          fmt="pdf", color_mode="RGB24", extended_format=None, multi_document=None):
        """Run one eSCL scan job and return the list of saved files."""
        url = url or self.url
        settings = ScanSettings(
            input_source=source,
            resolution=str(resolution),
            document_format=document_format_for(fmt),
            color_mode=color_mode,
            extended_format=extended_format,
        )
        logger.info("Scanning from %s (%s, %s dpi, %s)", url, source, settings.resolution, settings.document_format)
        return scan_from_escl(
            url,
            output_file,
            settings,
            multi_document=multi_document,
            retry_interval=self.retry_interval,
            max_retries=self.max_retries,
            fetch_interval=self.fetch_interval,
            request_timeout=self.request_timeout,
            download_timeout=self.download_timeout,
            session=self.session,
        )
