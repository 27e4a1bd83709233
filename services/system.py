"""Process metrics shared by /status, /stats, the digest and the health sweep."""
from __future__ import annotations

import os
import platform
import time

try:
    import resource
except ImportError:  # Windows
    resource = None

PROCESS_STARTED_AT = time.monotonic()


def uptime_seconds(started_at: float = PROCESS_STARTED_AT) -> float:
    return time.monotonic() - started_at


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{days}d {hours}h {minutes}m {secs}s"


def memory_usage_mb() -> float:
    """Resident set size of this process in MB (0.0 when it cannot be determined)."""
    try:
        with open("/proc/self/statm", "r") as fp:
            rss_pages = int(fp.read().split()[1])
        return rss_pages * os.sysconf("SC_PAGE_SIZE") / 1024 / 1024
    except (OSError, ValueError, IndexError, AttributeError):
        pass

    if resource is None:
        return 0.0
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # macOS 返回字节，Linux 返回 KB
    if platform.system() == "Darwin":
        return peak / 1024 / 1024
    return peak / 1024


def python_version() -> str:
    return platform.python_version()
