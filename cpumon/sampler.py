"""Raw counter collection from /proc.

Every reader here is defensive: /proc entries can be missing in containers
and sandboxes, or shaped differently across kernel versions. Failures are
reported through an optional ``warn`` callback and an ``ok`` flag, never by
raising.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

STAT_PATH = "/proc/stat"
LOADAVG_PATH = "/proc/loadavg"
UPTIME_PATH = "/proc/uptime"
CPUINFO_PATH = "/proc/cpuinfo"

# user, nice, system, idle, iowait, irq, softirq, steal
_CPU_FIELDS = 8
_MIN_CPU_FIELDS = 4

Warn = Callable[[str], None]


def _ignore(_message: str) -> None:
    pass


# ── Data types ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CounterSample:
    """Cumulative idle-class and all-class jiffies since boot."""
    idle_ticks: int = 0
    total_ticks: int = 0


@dataclass(frozen=True)
class SystemSnapshot:
    load1: float = 0.0
    load5: float = 0.0
    load15: float = 0.0
    uptime_seconds: float = 0.0
    core_count: int = 1


# ── Readers ─────────────────────────────────────────────────────────────────

def _parse_cpu_fields(tokens: list[str]) -> list[int]:
    """Parse leading unsigned integers, stopping at the first bad token."""
    values: list[int] = []
    for token in tokens[:_CPU_FIELDS]:
        if not (token.isascii() and token.isdigit()):
            break
        values.append(int(token))
    return values


def read_counter_sample(
    path: str = STAT_PATH, warn: Warn = _ignore
) -> tuple[CounterSample, bool]:
    """Read the aggregate ``cpu`` line of /proc/stat.

    Returns ``(sample, ok)``. ``idle_ticks`` is idle + iowait and
    ``total_ticks`` the sum of the eight time buckets; buckets the kernel
    doesn't report count as zero. At least four fields are required.
    """
    try:
        with open(path, encoding="utf-8") as f:
            line = next((ln for ln in f if ln.split()[:1] == ["cpu"]), None)
    except OSError as e:
        warn(f"{path} unavailable: {e}")
        return CounterSample(), False
    except UnicodeDecodeError:
        warn(f"{path} malformed: not valid text")
        return CounterSample(), False

    if line is None:
        warn(f"{path} malformed: no aggregate cpu line")
        return CounterSample(), False

    values = _parse_cpu_fields(line.split()[1:])
    if len(values) < _MIN_CPU_FIELDS:
        warn(f"{path} malformed: expected {_CPU_FIELDS} fields, parsed {len(values)}")
        return CounterSample(), False

    values += [0] * (_CPU_FIELDS - len(values))
    idle = values[3] + values[4]
    return CounterSample(idle_ticks=idle, total_ticks=sum(values)), True


def _read_floats(path: str, count: int, warn: Warn) -> list[float] | None:
    try:
        with open(path, encoding="utf-8") as f:
            tokens = f.read().split()
    except (OSError, UnicodeDecodeError) as e:
        warn(f"{path} unavailable: {e}")
        return None
    try:
        values = [float(t) for t in tokens[:count]]
    except ValueError:
        warn(f"{path} malformed: {' '.join(tokens[:count])!r}")
        return None
    if len(values) < count:
        warn(f"{path} malformed: expected {count} values, got {len(values)}")
        return None
    return values


def read_system_snapshot(
    previous: SystemSnapshot | None = None,
    loadavg_path: str = LOADAVG_PATH,
    uptime_path: str = UPTIME_PATH,
    warn: Warn = _ignore,
) -> tuple[SystemSnapshot, bool]:
    """Refresh load averages and uptime.

    Fields whose source fails keep their value from *previous* (zeros when
    there is none). A loadavg failure alone leaves ``ok`` true; an uptime
    failure makes it false since uptime has no sensible default.
    ``core_count`` is carried over unchanged.
    """
    prev = previous or SystemSnapshot()
    load1, load5, load15 = prev.load1, prev.load5, prev.load15
    uptime = prev.uptime_seconds
    ok = True

    loads = _read_floats(loadavg_path, 3, warn)
    if loads is not None:
        load1, load5, load15 = loads

    up = _read_floats(uptime_path, 1, warn)
    if up is not None:
        uptime = up[0]
    else:
        ok = False

    snapshot = SystemSnapshot(
        load1=load1,
        load5=load5,
        load15=load15,
        uptime_seconds=uptime,
        core_count=prev.core_count,
    )
    return snapshot, ok


def read_core_count(path: str = CPUINFO_PATH, warn: Warn = _ignore) -> int:
    """Count ``processor`` entries in /proc/cpuinfo. Never less than 1."""
    try:
        with open(path, encoding="utf-8") as f:
            cores = sum(1 for line in f if line.startswith("processor"))
    except (OSError, UnicodeDecodeError) as e:
        warn(f"{path} unavailable: {e}")
        return 1
    if cores == 0:
        warn(f"{path} malformed: no processor entries")
        return 1
    return cores
