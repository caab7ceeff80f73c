"""
Shared fixtures for the eSCL scanner tests.

HTTP traffic goes through MagicMock sessions and time.sleep is patched out,
so nothing here touches the network or waits on the clock.
"""

import os
import tempfile
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

# main.py creates its scan folder at import time
os.environ.setdefault("SCAN_FOLDER", tempfile.mkdtemp(prefix="escl-scans-"))

from backends import escl_backend  # noqa: E402


def make_response(status_code, body=b"", headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict(headers or {})
    response.iter_content.return_value = [body] if body else []
    return response


@pytest.fixture
def no_sleep(monkeypatch):
    sleep = MagicMock()
    monkeypatch.setattr(escl_backend.time, "sleep", sleep)
    return sleep


@pytest.fixture
def session():
    return MagicMock()
