"""
The per-proxy result record.

One :class:`Result` is produced per tested proxy and never changed
afterwards.  Speeds are bytes per second, durations milliseconds.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from .stats import LatencyStats, format_latency, format_packet_loss, format_speed


@dataclass(frozen=True)
class Result:
    proxy_name: str
    proxy_type: str
    proxy_config: Dict[str, Any] = field(default_factory=dict, compare=False)
    source: str = ""

    latency_ms: float = 0.0
    jitter_ms: float = 0.0
    packet_loss: float = 0.0

    download_size: int = 0
    download_time_ms: float = 0.0
    download_speed: float = 0.0
    upload_size: int = 0
    upload_time_ms: float = 0.0
    upload_speed: float = 0.0

    extra_url_connectivity: bool = False
    extra_url_open_speed: float = 0.0
    extra_download_speed: float = 0.0
    extra_url_stats: Dict[str, LatencyStats] = field(default_factory=dict, compare=False)

    fast_mode: bool = False

    # -- Derived ------------------------------------------------------------

    @property
    def display_name(self) -> str:
        return f"{self.source}_{self.proxy_name}" if self.source else self.proxy_name

    @property
    def unreachable(self) -> bool:
        return self.packet_loss >= 100

    # -- Formatting ---------------------------------------------------------

    def format_latency(self) -> str:
        return format_latency(self.latency_ms)

    def format_jitter(self) -> str:
        return format_latency(self.jitter_ms)

    def format_packet_loss(self) -> str:
        return format_packet_loss(self.packet_loss)

    def format_download_speed(self) -> str:
        return format_speed(self.download_speed)

    def format_upload_speed(self) -> str:
        return format_speed(self.upload_speed)

    def format_extra_url_connectivity(self) -> str:
        return "OK" if self.extra_url_connectivity else "FAIL"

    def format_extra_url_open_speed(self) -> str:
        return format_speed(self.extra_url_open_speed)

    def format_extra_download_speed(self) -> str:
        return format_speed(self.extra_download_speed)

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proxy_name": self.proxy_name,
            "proxy_type": self.proxy_type,
            "proxy_config": self.proxy_config,
            "source": self.source,
            "latency_ms": round(self.latency_ms, 3),
            "jitter_ms": round(self.jitter_ms, 3),
            "packet_loss": round(self.packet_loss, 2),
            "download_size": self.download_size,
            "download_time_ms": round(self.download_time_ms, 2),
            "download_speed": round(self.download_speed, 2),
            "upload_size": self.upload_size,
            "upload_time_ms": round(self.upload_time_ms, 2),
            "upload_speed": round(self.upload_speed, 2),
            "extra_url_connectivity": self.extra_url_connectivity,
            "extra_url_open_speed": round(self.extra_url_open_speed, 2),
            "extra_download_speed": round(self.extra_download_speed, 2),
            "extra_url_stats": {url: s.to_dict() for url, s in self.extra_url_stats.items()},
            "fast_mode": self.fast_mode,
        }
