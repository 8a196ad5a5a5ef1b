"""Exceptions raised while preparing proxies for testing."""


class SpeedtestError(Exception):
    """Base exception for speedtester errors."""


class ProxyConfigError(SpeedtestError):
    """A proxy entry, provider or configuration document is invalid."""


class UnsupportedProxyError(ProxyConfigError):
    """The proxy kind has no dial capability and cannot be tested."""
