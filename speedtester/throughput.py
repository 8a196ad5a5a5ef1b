"""
Concurrent download / upload throughput.

The configured total sizes are split into ``concurrent`` equal chunks
(integer division, the remainder is not tested).  All download probes run
in parallel and *all* of them finish before the upload probes start.

Speed is ``total bytes / average per-chunk duration``.  That reports
per-connection sustained throughput scaled by the number of successful
connections, not the wall-clock rate of the whole phase, and tends to read
high at large concurrency.  Kept for comparability with earlier results.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from .proxy import ProxyHandle
from .transfer import (
    Direction,
    TransferOutcome,
    download_url,
    probe_transfer,
    upload_url,
)

logger = logging.getLogger(__name__)

ProbeFactory = Callable[[], Awaitable[Optional[TransferOutcome]]]


@dataclass(frozen=True)
class TransferStats:
    """Aggregate of one direction's concurrent probes."""

    size: int = 0            # bytes moved by successful probes
    time_ms: float = 0.0     # average duration of a successful probe
    speed: float = 0.0       # bytes/s
    successes: int = 0
    attempts: int = 0

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "time_ms": round(self.time_ms, 2),
            "speed": round(self.speed, 2),
            "successes": self.successes,
            "attempts": self.attempts,
        }


# ---------------------------------------------------------------------------
# Pool and reduction
# ---------------------------------------------------------------------------

async def run_probes(factories: Iterable[ProbeFactory]) -> List[Optional[TransferOutcome]]:
    """Run every probe concurrently and wait until all of them returned."""
    tasks = [asyncio.create_task(factory()) for factory in factories]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    outcomes: List[Optional[TransferOutcome]] = []
    for item in results:
        if isinstance(item, BaseException):
            # Probes absorb network errors themselves; anything else is a bug.
            raise item
        outcomes.append(item)
    return outcomes


def aggregate(outcomes: Iterable[Optional[TransferOutcome]]) -> TransferStats:
    """Order-independent reduction of probe outcomes."""
    total_bytes = 0
    total_ms = 0.0
    successes = 0
    attempts = 0

    for outcome in outcomes:
        attempts += 1
        if outcome is None:
            continue
        total_bytes += outcome.bytes_transferred
        total_ms += outcome.duration_ms
        successes += 1

    if successes == 0:
        return TransferStats(attempts=attempts)

    avg_ms = total_ms / successes
    speed = total_bytes / (avg_ms / 1000) if avg_ms > 0 else 0.0
    return TransferStats(
        size=total_bytes,
        time_ms=avg_ms,
        speed=speed,
        successes=successes,
        attempts=attempts,
    )


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class ThroughputTester:
    """Chunked parallel download, then chunked parallel upload."""

    def __init__(self, server_url: str, concurrent: int = 4, timeout: float = 5.0) -> None:
        self.server_url = server_url
        self.concurrent = max(1, concurrent)
        self.timeout = timeout

    async def test(
        self,
        handle: ProxyHandle,
        download_size: int,
        upload_size: int,
    ) -> Tuple[TransferStats, TransferStats]:
        down_chunk = download_size // self.concurrent
        up_chunk = upload_size // self.concurrent

        down = aggregate(await self._phase(handle, Direction.DOWNLOAD, down_chunk))
        up = aggregate(await self._phase(handle, Direction.UPLOAD, up_chunk))

        logger.debug(
            "%s: download %d/%d ok, upload %d/%d ok",
            handle.name, down.successes, down.attempts, up.successes, up.attempts,
        )
        return down, up

    async def _phase(
        self,
        handle: ProxyHandle,
        direction: Direction,
        chunk: int,
    ) -> List[Optional[TransferOutcome]]:
        if direction is Direction.DOWNLOAD:
            url = download_url(self.server_url, chunk)
        else:
            url = upload_url(self.server_url)

        def _factory() -> Awaitable[Optional[TransferOutcome]]:
            return probe_transfer(handle, url, direction, chunk, self.timeout)

        return await run_probes(_factory for _ in range(self.concurrent))
