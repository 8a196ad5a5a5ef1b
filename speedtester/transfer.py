"""
Single download / upload probes through a proxy.

Each probe opens its own ``aiohttp.ClientSession`` on a fresh connector from
the handle's dial capability, so concurrent probes never share a
connection.  A probe either returns a :class:`TransferOutcome` or ``None``;
it never raises for network trouble.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import aiohttp
from aiohttp_socks import ProxyConnectionError, ProxyError, ProxyTimeoutError

from .constants import CHUNK_SIZE, COMMON_HEADERS, DOWNLOAD_PATH, UPLOAD_PATH
from .proxy import ProxyHandle

logger = logging.getLogger(__name__)

# Everything a probe treats as "this attempt failed".
PROBE_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
    ProxyError,
    ProxyConnectionError,
    ProxyTimeoutError,
)


class Direction(enum.Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"


@dataclass(frozen=True)
class TransferOutcome:
    """Bytes moved by one successful probe and how long it took."""

    bytes_transferred: int
    duration_ms: float

    @property
    def speed(self) -> float:
        """Bytes per second."""
        if self.duration_ms <= 0:
            return 0.0
        return self.bytes_transferred / (self.duration_ms / 1000)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def download_url(server_url: str, size: int) -> str:
    return f"{server_url.rstrip('/')}{DOWNLOAD_PATH}?bytes={size}"


def upload_url(server_url: str) -> str:
    return f"{server_url.rstrip('/')}{UPLOAD_PATH}"


def open_session(handle: ProxyHandle, timeout: float) -> aiohttp.ClientSession:
    """New session whose every connection goes through *handle*."""
    return aiohttp.ClientSession(
        connector=handle.dial(),
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers=COMMON_HEADERS,
    )


class ZeroStream:
    """Async-iterable request body of exactly *size* zero bytes."""

    def __init__(self, size: int, chunk_size: int = CHUNK_SIZE) -> None:
        self.size = max(0, size)
        self.written = 0
        self._chunk = bytes(min(chunk_size, self.size))

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._generate()

    async def _generate(self) -> AsyncIterator[bytes]:
        while self.written < self.size:
            n = min(len(self._chunk), self.size - self.written)
            self.written += n
            yield self._chunk if n == len(self._chunk) else self._chunk[:n]


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------

async def probe_download(
    handle: ProxyHandle,
    url: str,
    timeout: float,
) -> Optional[TransferOutcome]:
    """GET *url* and drain the body."""
    try:
        async with open_session(handle, timeout) as session:
            start = time.perf_counter()
            async with session.get(url) as resp:
                if resp.status != 200:
                    logger.debug("%s: download %s returned %d", handle.name, url, resp.status)
                    return None
                total = 0
                async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                    total += len(chunk)
            elapsed = (time.perf_counter() - start) * 1000
    except PROBE_ERRORS as exc:
        logger.debug("%s: download %s failed: %r", handle.name, url, exc)
        return None

    return TransferOutcome(bytes_transferred=total, duration_ms=elapsed)


async def probe_upload(
    handle: ProxyHandle,
    url: str,
    size: int,
    timeout: float,
) -> Optional[TransferOutcome]:
    """POST *size* zero bytes to *url*."""
    body = ZeroStream(size)
    headers = {"Content-Type": "application/octet-stream"}
    try:
        async with open_session(handle, timeout) as session:
            start = time.perf_counter()
            async with session.post(url, data=body, headers=headers) as resp:
                elapsed = (time.perf_counter() - start) * 1000
                if resp.status != 200:
                    logger.debug("%s: upload %s returned %d", handle.name, url, resp.status)
                    return None
    except PROBE_ERRORS as exc:
        logger.debug("%s: upload %s failed: %r", handle.name, url, exc)
        return None

    return TransferOutcome(bytes_transferred=body.written, duration_ms=elapsed)


async def probe_transfer(
    handle: ProxyHandle,
    url: str,
    direction: Direction,
    size: int,
    timeout: float,
) -> Optional[TransferOutcome]:
    """Run one probe in *direction*; *size* only matters for uploads."""
    if direction is Direction.UPLOAD:
        return await probe_upload(handle, url, size, timeout)
    return await probe_download(handle, url, timeout)
