"""
Configuration constants for the FastDL mirror.
"""

import os

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_OUTPUT = "."           # local mirror root (process working directory)
DEFAULT_CONCURRENCY = 0        # 0 = auto-detect from CPU/RAM

# Limits for auto-concurrency calculation
_MIN_WORKERS = 2
_MAX_WORKERS = 32
_RAM_PER_WORKER_MB = 64        # estimated RSS per worker thread


def auto_concurrency() -> int:
    """Calculate the number of concurrent workers from available CPU
    cores and system RAM.

    Heuristic:
      * Start with ``cpu_count * 2`` (I/O-bound workload).
      * Cap by available RAM (``free_mb / _RAM_PER_WORKER_MB``).
      * Clamp between ``_MIN_WORKERS`` and ``_MAX_WORKERS``.
    """
    cpus = os.cpu_count() or 2
    workers = cpus * 2

    try:
        with open("/proc/meminfo") as f:
            for line in f:
                if line.startswith("MemAvailable:"):
                    mem_kb = int(line.split()[1])
                    mem_mb = mem_kb // 1024
                    ram_cap = max(1, mem_mb // _RAM_PER_WORKER_MB)
                    workers = min(workers, ram_cap)
                    break
    except (OSError, ValueError):
        pass

    return max(_MIN_WORKERS, min(workers, _MAX_WORKERS))


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------
REQUEST_TIMEOUT: float | None = 30    # None = wait forever on a slow host
ADAPTER_RETRIES = 3                   # transport-level retries inside urllib3
USER_AGENT = "fastdl-mirror/1.0 (+directory listing mirror)"

# Download retry policy.  RETRY_MAX_ATTEMPTS = 0 retries forever.
RETRY_DELAY = 5.0
RETRY_BACKOFF = 2.0
RETRY_MAX_DELAY = 120.0
RETRY_MAX_ATTEMPTS = 10

# HTTP statuses worth another attempt; any other 4xx is final.
RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})

# Chunk size for streaming bodies and decoded output to disk (512 KiB)
STREAM_CHUNK = 524288

# ---------------------------------------------------------------------------
# Link policy
# ---------------------------------------------------------------------------
# Paths containing any of these are never explored or downloaded.
EXCLUDED_MARKERS: tuple[str, ...] = ("index.html", ".tmp", ".ztmp")

# Path segment marking the secondary subtree that holds the real files.
DEFAULT_MIRROR_MARKER = "gflfastdlv2"

# ---------------------------------------------------------------------------
# Decompression
# ---------------------------------------------------------------------------
COMPRESSED_SUFFIX = ".bz2"
PARTIAL_SUFFIX = ".part"
