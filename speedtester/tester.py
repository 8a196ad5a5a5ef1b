"""
Per-proxy orchestration: latency, auxiliary reachability, throughput.

Stages run in order and stop early:

1. Latency against the speed-test server.  100 % packet loss ends the test.
2. Extra connect URLs (and the optional extra download).  Any unreachable
   URL ends the test with connectivity false.
3. Concurrent download, then concurrent upload.

Fast mode runs stage 1 only.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .auxiliary import AuxiliaryTester
from .config import TestConfig
from .exceptions import SpeedtestError
from .latency import LatencyTester, ping_url
from .proxy import ProxyHandle
from .result import Result
from .throughput import ThroughputTester
from .transfer import PROBE_ERRORS

logger = logging.getLogger(__name__)

# Failures that make a whole proxy untestable, such as a dialer that cannot be built.
_PROXY_FAILURES = (SpeedtestError,) + PROBE_ERRORS


class SpeedTester:
    """Tests proxies one at a time against a single configuration."""

    def __init__(self, config: TestConfig) -> None:
        self.config = config.normalized()
        self.latency = LatencyTester(
            probe_count=self.config.probe_count,
            interval=self.config.probe_interval,
        )
        self.auxiliary = AuxiliaryTester(
            self.config.extra_connect_urls,
            self.config.extra_download_url,
            latency_tester=self.latency,
            timeout=self.config.timeout,
        )
        self.throughput = ThroughputTester(
            self.config.server_url,
            concurrent=self.config.concurrent,
            timeout=self.config.timeout,
        )

    async def test_proxy(self, handle: ProxyHandle) -> Result:
        cfg = self.config
        identity = dict(
            proxy_name=handle.name,
            proxy_type=handle.type.value,
            proxy_config=handle.config,
            source=handle.source,
            fast_mode=cfg.fast_mode,
        )

        stats = await self.latency.test(handle, ping_url(cfg.server_url), cfg.timeout)
        measured = dict(
            identity,
            latency_ms=stats.latency_ms,
            jitter_ms=stats.jitter_ms,
            packet_loss=stats.packet_loss,
        )

        if stats.unreachable:
            logger.info("%s: speed-test server unreachable", handle.name)
            return Result(**measured)
        if cfg.fast_mode:
            return Result(**measured)

        extra = await self.auxiliary.test(handle)
        if not extra.connectivity:
            return Result(
                **measured,
                extra_url_connectivity=False,
                extra_url_stats=extra.url_stats,
            )

        down, up = await self.throughput.test(handle, cfg.download_size, cfg.upload_size)

        return Result(
            **measured,
            extra_url_connectivity=True,
            extra_url_open_speed=extra.open_speed,
            extra_download_speed=extra.download_speed,
            extra_url_stats=extra.url_stats,
            download_size=down.size,
            download_time_ms=down.time_ms,
            download_speed=down.speed,
            upload_size=up.size,
            upload_time_ms=up.time_ms,
            upload_speed=up.speed,
        )

    async def test_proxies(
        self,
        handles: Iterable[ProxyHandle],
        on_result: Callable[[Result], None],
        on_start: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[ProxyHandle, BaseException], None]] = None,
    ) -> None:
        """Test *handles* sequentially, reporting each result as it lands.

        A proxy that cannot be tested at all is logged, handed to
        *on_error* and left out; the remaining proxies still run.
        """
        for handle in handles:
            if on_start:
                on_start(handle.name)
            logger.info("testing %s (%s)", handle.name, handle.type.value)
            try:
                result = await self.test_proxy(handle)
            except _PROXY_FAILURES as exc:
                logger.warning("%s: test failed: %r", handle.name, exc)
                if on_error:
                    on_error(handle, exc)
                continue
            on_result(result)
