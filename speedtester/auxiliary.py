"""
Reachability of user-chosen "must connect" URLs through a proxy.

Each URL gets the same latency probe battery as the speed-test server, on
one shared session, in list order.  The first URL that never answers ends
the check: connectivity is false and nothing else is measured.  Bodies of
successful probes are drained so an aggregate "open speed" can be derived.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .latency import LatencyTester
from .proxy import ProxyHandle
from .stats import LatencyStats
from .transfer import probe_download, open_session

logger = logging.getLogger(__name__)


@dataclass
class AuxiliaryResult:
    connectivity: bool = True
    open_speed: float = 0.0       # bytes/s over every successful probe
    download_speed: float = 0.0   # bytes/s of the extra download, 0 if none
    url_stats: Dict[str, LatencyStats] = field(default_factory=dict)


class AuxiliaryTester:
    """Probe extra connect URLs, then optionally one extra download."""

    def __init__(
        self,
        connect_urls: Sequence[str],
        download_url: str = "",
        latency_tester: Optional[LatencyTester] = None,
        timeout: float = 5.0,
    ) -> None:
        self.connect_urls: List[str] = list(connect_urls)
        self.download_url = download_url
        self.latency_tester = latency_tester or LatencyTester()
        self.timeout = timeout

    async def test(self, handle: ProxyHandle) -> AuxiliaryResult:
        result = AuxiliaryResult()
        total_bytes = 0
        total_ms = 0.0

        if self.connect_urls:
            async with open_session(handle, self.timeout) as session:
                for url in self.connect_urls:
                    pings = await self.latency_tester.sample(session, url, read_body=True)
                    stats = self.latency_tester.summarize(pings)
                    result.url_stats[url] = stats

                    if stats.unreachable:
                        logger.info("%s: %s unreachable", handle.name, url)
                        result.connectivity = False
                        return result

                    for ping in pings:
                        if ping.success:
                            total_bytes += ping.bytes_read
                            total_ms += ping.elapsed_ms

        if total_bytes > 0 and total_ms > 0:
            result.open_speed = total_bytes / (total_ms / 1000)

        if self.download_url:
            outcome = await probe_download(handle, self.download_url, self.timeout)
            if outcome is not None:
                result.download_speed = outcome.speed

        return result
