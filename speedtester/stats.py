"""
Latency statistics and formatting helpers.

Pure functions and lightweight dataclasses -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.
"""
from __future__ import annotations

import math
import statistics
from dataclasses import dataclass, field
from typing import List, Sequence


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LatencyStats:
    """Summary of one batch of latency probes.

    ``latency_ms`` is 0 when no probe succeeded.
    """

    latency_ms: float = 0.0
    jitter_ms: float = 0.0
    packet_loss: float = 0.0
    samples: List[float] = field(default_factory=list)

    @property
    def unreachable(self) -> bool:
        return self.packet_loss >= 100

    def to_dict(self) -> dict:
        return {
            "latency_ms": round(self.latency_ms, 3),
            "jitter_ms": round(self.jitter_ms, 3),
            "packet_loss": round(self.packet_loss, 2),
            "samples": [round(s, 3) for s in self.samples],
        }


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def calculate_jitter(samples: Sequence[float]) -> float:
    """Population standard deviation of *samples*."""
    if not samples:
        return 0.0
    mean = statistics.mean(samples)
    variance = sum((s - mean) ** 2 for s in samples) / len(samples)
    return math.sqrt(variance)


def calculate_packet_loss(failed: int, total: int) -> float:
    """Percentage of failed probe attempts."""
    if total <= 0:
        return 0.0
    return failed / total * 100


def calculate_latency_stats(
    latencies_ms: Sequence[float],
    failed: int,
    total: int,
) -> LatencyStats:
    """Build :class:`LatencyStats` from successful durations and a failure count."""
    result = LatencyStats(
        packet_loss=calculate_packet_loss(failed, total),
        samples=list(latencies_ms),
    )
    if not latencies_ms:
        return result

    result.latency_ms = statistics.mean(latencies_ms)
    result.jitter_ms = calculate_jitter(latencies_ms)
    return result


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_SPEED_UNITS = ("B/s", "KB/s", "MB/s", "GB/s", "TB/s")


def format_speed(bytes_per_second: float) -> str:
    """Human-readable speed string, 1024-based."""
    speed = bytes_per_second
    unit = 0
    while speed >= 1024 and unit < len(_SPEED_UNITS) - 1:
        speed /= 1024
        unit += 1
    return f"{speed:.2f}{_SPEED_UNITS[unit]}"


def format_latency(latency_ms: float) -> str:
    """Whole milliseconds, or ``N/A`` when nothing was measured."""
    if latency_ms <= 0:
        return "N/A"
    return f"{int(latency_ms)}ms"


def format_packet_loss(packet_loss: float) -> str:
    return f"{packet_loss:.1f}%"
