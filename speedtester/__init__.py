"""Proxy speed measurement engine -- probing, statistics, and classification."""

from .auxiliary import AuxiliaryResult, AuxiliaryTester
from .config import TestConfig
from .exceptions import ProxyConfigError, SpeedtestError, UnsupportedProxyError
from .grading import Thresholds, is_good, is_usable, rank_results, split_results
from .latency import LatencyTester, PingResult
from .loader import find_config_paths, load_proxies
from .proxy import ProxyHandle, ProxyType, resolve_proxy
from .result import Result
from .stats import (
    LatencyStats,
    calculate_jitter,
    calculate_latency_stats,
    calculate_packet_loss,
    format_latency,
    format_packet_loss,
    format_speed,
)
from .tester import SpeedTester
from .throughput import ThroughputTester, TransferStats, aggregate, run_probes
from .transfer import Direction, TransferOutcome, probe_transfer

__all__ = [
    "AuxiliaryResult",
    "AuxiliaryTester",
    "Direction",
    "LatencyStats",
    "LatencyTester",
    "PingResult",
    "ProxyConfigError",
    "ProxyHandle",
    "ProxyType",
    "Result",
    "SpeedTester",
    "SpeedtestError",
    "TestConfig",
    "Thresholds",
    "ThroughputTester",
    "TransferOutcome",
    "TransferStats",
    "UnsupportedProxyError",
    "aggregate",
    "calculate_jitter",
    "calculate_latency_stats",
    "calculate_packet_loss",
    "find_config_paths",
    "format_latency",
    "format_packet_loss",
    "format_speed",
    "is_good",
    "is_usable",
    "load_proxies",
    "probe_transfer",
    "rank_results",
    "resolve_proxy",
    "run_probes",
    "split_results",
]
