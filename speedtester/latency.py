"""
HTTP latency measurement through a proxy.

A fixed number of probes is issued strictly one after another on a single
session; each is timed from request start to response receipt.  A probe
fails on any network error, timeout, or non-200 status.  Failures count
towards packet loss, successes feed latency and jitter.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import aiohttp

from .constants import CHUNK_SIZE, PROBE_COUNT, PROBE_INTERVAL
from .proxy import ProxyHandle
from .stats import LatencyStats, calculate_latency_stats
from .transfer import PROBE_ERRORS, download_url, open_session

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclass
class PingResult:
    """A single request / response round-trip."""

    success: bool = True
    latency_ms: float = 0.0
    bytes_read: int = 0
    elapsed_ms: float = 0.0      # until the body was drained, if it was read
    error: Optional[str] = None


def ping_url(server_url: str) -> str:
    """Zero-byte download endpoint used for latency probes."""
    return download_url(server_url, 0)


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class LatencyTester:
    """Sequential latency probes against any URL."""

    def __init__(
        self,
        probe_count: int = PROBE_COUNT,
        interval: float = PROBE_INTERVAL,
    ) -> None:
        self.probe_count = probe_count
        self.interval = interval

    async def test(self, handle: ProxyHandle, url: str, timeout: float) -> LatencyStats:
        """Probe *url* through *handle* and summarise the outcome."""
        async with open_session(handle, timeout) as session:
            pings = await self.sample(session, url)
        stats = self.summarize(pings)
        logger.debug(
            "%s: %s latency=%.1fms jitter=%.1fms loss=%.1f%%",
            handle.name, url, stats.latency_ms, stats.jitter_ms, stats.packet_loss,
        )
        return stats

    async def sample(
        self,
        session: aiohttp.ClientSession,
        url: str,
        read_body: bool = False,
    ) -> List[PingResult]:
        """Issue exactly ``probe_count`` probes, one at a time."""
        results = []
        for _ in range(self.probe_count):
            if self.interval > 0:
                await asyncio.sleep(self.interval)
            results.append(await self._ping_once(session, url, read_body))
        return results

    def summarize(self, pings: List[PingResult]) -> LatencyStats:
        latencies = [p.latency_ms for p in pings if p.success]
        failed = self.probe_count - len(latencies)
        return calculate_latency_stats(latencies, failed, self.probe_count)

    # -- Internals ----------------------------------------------------------

    @staticmethod
    async def _ping_once(
        session: aiohttp.ClientSession,
        url: str,
        read_body: bool,
    ) -> PingResult:
        start = time.perf_counter()
        try:
            async with session.get(url) as resp:
                latency = (time.perf_counter() - start) * 1000
                if resp.status != 200:
                    return PingResult(success=False, error=f"HTTP {resp.status}")

                result = PingResult(latency_ms=latency, elapsed_ms=latency)
                if read_body:
                    # The round-trip already succeeded; a broken body only
                    # shortens what counts towards open speed.
                    try:
                        async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                            result.bytes_read += len(chunk)
                    except PROBE_ERRORS as exc:
                        result.error = repr(exc)
                    result.elapsed_ms = (time.perf_counter() - start) * 1000
                return result
        except PROBE_ERRORS as exc:
            return PingResult(success=False, error=repr(exc))
