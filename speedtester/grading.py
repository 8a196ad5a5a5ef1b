"""
Usable / good classification and ranking of results.

Thresholds are passed in explicitly so every predicate here is a pure
function of its arguments.  ``good`` is a strict refinement of ``usable``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .constants import (
    DEFAULT_GOOD_DOWNLOAD_SPEED,
    DEFAULT_GOOD_OPEN_SPEED,
    DEFAULT_MAX_LATENCY_MS,
    DEFAULT_MIN_SPEED,
    DEFAULT_OPEN_SPEED,
    MB,
)
from .result import Result


@dataclass(frozen=True)
class Thresholds:
    """Classification limits.  Speeds in bytes/s, latency in ms (0 = off)."""

    max_latency_ms: float = DEFAULT_MAX_LATENCY_MS
    min_speed: float = DEFAULT_MIN_SPEED * MB
    open_speed: float = DEFAULT_OPEN_SPEED * MB
    good_open_speed: float = DEFAULT_GOOD_OPEN_SPEED * MB
    good_download_speed: float = DEFAULT_GOOD_DOWNLOAD_SPEED * MB
    check_open_speed: bool = False       # extra connect URLs configured
    check_extra_download: bool = False   # extra download URL configured

    @classmethod
    def from_mbps(
        cls,
        max_latency_ms: float = DEFAULT_MAX_LATENCY_MS,
        min_speed: float = DEFAULT_MIN_SPEED,
        open_speed: float = DEFAULT_OPEN_SPEED,
        good_open_speed: float = DEFAULT_GOOD_OPEN_SPEED,
        good_download_speed: float = DEFAULT_GOOD_DOWNLOAD_SPEED,
        check_open_speed: bool = False,
        check_extra_download: bool = False,
    ) -> Thresholds:
        """Build from MB/s values as given on the command line."""
        return cls(
            max_latency_ms=max_latency_ms,
            min_speed=min_speed * MB,
            open_speed=open_speed * MB,
            good_open_speed=good_open_speed * MB,
            good_download_speed=good_download_speed * MB,
            check_open_speed=check_open_speed,
            check_extra_download=check_extra_download,
        )


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _latency_ok(result: Result, t: Thresholds) -> bool:
    return t.max_latency_ms == 0 or result.latency_ms <= t.max_latency_ms


def is_usable(result: Result, t: Thresholds) -> bool:
    if result.fast_mode:
        return not result.unreachable and _latency_ok(result, t)

    return (
        not result.unreachable
        and _latency_ok(result, t)
        and result.extra_url_connectivity
        and (not t.check_open_speed or result.extra_url_open_speed >= t.open_speed)
        and result.download_speed >= t.min_speed
        and (not t.check_extra_download or result.extra_download_speed >= t.min_speed)
    )


def is_good(result: Result, t: Thresholds) -> bool:
    if not is_usable(result, t):
        return False
    if result.fast_mode:
        return True

    return (
        result.download_speed >= t.good_download_speed
        and (not t.check_open_speed or result.extra_url_open_speed >= t.good_open_speed)
        and (not t.check_extra_download or result.extra_download_speed >= t.good_download_speed)
    )


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def rank_results(results: Iterable[Result], t: Thresholds) -> List[Result]:
    """Good results first, then by download speed, fastest first.

    Fast-mode results carry no speed, so they order by latency instead.
    """

    def _key(r: Result) -> Tuple[bool, float]:
        if r.fast_mode:
            return (not is_good(r, t), r.latency_ms if r.latency_ms > 0 else float("inf"))
        return (not is_good(r, t), -r.download_speed)

    return sorted(results, key=_key)


def split_results(results: Iterable[Result], t: Thresholds) -> Tuple[List[Result], List[Result]]:
    """Partition into ``(good, usable-but-not-good)``; unusable ones are dropped."""
    good: List[Result] = []
    usable: List[Result] = []
    for r in results:
        if is_good(r, t):
            good.append(r)
        elif is_usable(r, t):
            usable.append(r)
    return good, usable
