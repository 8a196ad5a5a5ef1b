"""
Engine configuration and user configuration file support.

:class:`TestConfig` is what the engine consumes; it is always passed in
explicitly.  The optional user file ``~/.proxy-speedtest/config.json`` only
supplies CLI defaults.

Supported keys::

    server_url = "https://speed.cloudflare.com"
    download_size = 52428800     # bytes
    upload_size = 20971520       # bytes
    timeout = 5.0                # seconds per probe
    concurrent = 4
    max_latency = 800            # ms, 0 disables
    min_speed = 0.1              # MB/s
    open_speed_threshold = 0.01  # MB/s
    good_open_speed_threshold = 0.03
    good_download_speed_threshold = 1.0
    output = "./useable.yaml"
    good_output = "./good.yaml"
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List
from urllib.parse import urlparse

from .constants import (
    DEFAULT_CONCURRENT,
    DEFAULT_DOWNLOAD_SIZE,
    DEFAULT_GOOD_DOWNLOAD_SPEED,
    DEFAULT_GOOD_OPEN_SPEED,
    DEFAULT_MAX_LATENCY_MS,
    DEFAULT_MIN_SPEED,
    DEFAULT_OPEN_SPEED,
    DEFAULT_SERVER_URL,
    DEFAULT_TIMEOUT,
    DEFAULT_UPLOAD_SIZE,
    FALLBACK_DOWNLOAD_SIZE,
    FALLBACK_UPLOAD_SIZE,
    MAX_CONCURRENT,
    MIN_CONCURRENT,
    PROBE_COUNT,
    PROBE_INTERVAL,
)

_CONFIG_DIR = os.path.join(Path.home(), ".proxy-speedtest")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Engine configuration
# ---------------------------------------------------------------------------

def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@dataclass
class TestConfig:
    """Everything the engine needs to test one proxy."""

    __test__ = False  # not a test case, despite the name

    server_url: str = DEFAULT_SERVER_URL
    download_size: int = DEFAULT_DOWNLOAD_SIZE
    upload_size: int = DEFAULT_UPLOAD_SIZE
    timeout: float = DEFAULT_TIMEOUT
    concurrent: int = DEFAULT_CONCURRENT
    extra_connect_urls: List[str] = field(default_factory=list)
    extra_download_url: str = ""
    fast_mode: bool = False
    probe_count: int = PROBE_COUNT
    probe_interval: float = PROBE_INTERVAL

    def normalized(self) -> TestConfig:
        """Copy with non-positive sizes and concurrency replaced by fallbacks."""
        return replace(
            self,
            server_url=self.server_url.rstrip("/"),
            concurrent=self.concurrent if self.concurrent > 0 else MIN_CONCURRENT,
            download_size=self.download_size if self.download_size > 0 else FALLBACK_DOWNLOAD_SIZE,
            upload_size=self.upload_size if self.upload_size > 0 else FALLBACK_UPLOAD_SIZE,
        )

    def validate(self) -> None:
        """Raise ``ValueError`` if any parameter is out of range."""
        if not _is_http_url(self.server_url):
            raise ValueError(f"Server URL must be an http(s) URL: {self.server_url!r}")
        if not MIN_CONCURRENT <= self.concurrent <= MAX_CONCURRENT:
            raise ValueError(f"Concurrency must be between {MIN_CONCURRENT} and {MAX_CONCURRENT}")
        if self.download_size <= 0 or self.upload_size <= 0:
            raise ValueError("Download and upload sizes must be positive")
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        if self.probe_count < 1:
            raise ValueError("Probe count must be at least 1")
        if self.probe_interval < 0:
            raise ValueError("Probe interval must not be negative")
        for url in self.extra_connect_urls:
            if not _is_http_url(url):
                raise ValueError(f"Extra connect URL must be an http(s) URL: {url!r}")
        if self.extra_download_url and not _is_http_url(self.extra_download_url):
            raise ValueError(f"Extra download URL must be an http(s) URL: {self.extra_download_url!r}")


# ---------------------------------------------------------------------------
# User defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "server_url": DEFAULT_SERVER_URL,
    "download_size": DEFAULT_DOWNLOAD_SIZE,
    "upload_size": DEFAULT_UPLOAD_SIZE,
    "timeout": DEFAULT_TIMEOUT,
    "concurrent": DEFAULT_CONCURRENT,
    "max_latency": DEFAULT_MAX_LATENCY_MS,
    "min_speed": DEFAULT_MIN_SPEED,
    "open_speed_threshold": DEFAULT_OPEN_SPEED,
    "good_open_speed_threshold": DEFAULT_GOOD_OPEN_SPEED,
    "good_download_speed_threshold": DEFAULT_GOOD_DOWNLOAD_SPEED,
    "output": "./useable.yaml",
    "good_output": "./good.yaml",
}


def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, IOError):
        pass  # corrupt file; use defaults

    return config
