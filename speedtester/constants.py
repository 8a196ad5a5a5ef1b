"""
Shared constants used across all speedtester modules.

Centralises magic numbers, default headers, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "identity",
}

# ---------------------------------------------------------------------------
# Speed-test server
# ---------------------------------------------------------------------------

DEFAULT_SERVER_URL = "https://speed.cloudflare.com"
DOWNLOAD_PATH = "/__down"
UPLOAD_PATH = "/__up"

# ---------------------------------------------------------------------------
# Connection limits
# ---------------------------------------------------------------------------

MIN_CONCURRENT = 1
MAX_CONCURRENT = 64
DEFAULT_CONCURRENT = 4

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_TIMEOUT = 5.0            # seconds, bounds every single probe
PROBE_COUNT = 6                  # latency probes per URL
PROBE_INTERVAL = 0.1             # pause before each latency probe

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

MB = 1024 * 1024
CHUNK_SIZE = 64 * 1024           # read / write granularity
DEFAULT_DOWNLOAD_SIZE = 50 * MB
DEFAULT_UPLOAD_SIZE = 20 * MB
FALLBACK_DOWNLOAD_SIZE = 100 * MB  # used when a non-positive size is given
FALLBACK_UPLOAD_SIZE = 10 * MB

# ---------------------------------------------------------------------------
# Classification defaults (CLI units: ms and MB/s)
# ---------------------------------------------------------------------------

DEFAULT_MAX_LATENCY_MS = 800.0
DEFAULT_MIN_SPEED = 0.1
DEFAULT_OPEN_SPEED = 0.01
DEFAULT_GOOD_OPEN_SPEED = 0.03
DEFAULT_GOOD_DOWNLOAD_SPEED = 1.0
