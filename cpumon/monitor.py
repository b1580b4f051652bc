"""Real-time CPU usage monitor: sample, compute, render, log, alert."""

from __future__ import annotations

import argparse
import curses
import enum
import signal
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from cpumon.activity_log import ActivityLog, format_timestamp
from cpumon.alert_transport import AlertTransport, NullAlertTransport, UdpAlertTransport
from cpumon.config import dump_default_config, load_config
from cpumon.dashboard import CursesPresenter, DashboardData, PlainPresenter, Presenter
from cpumon.sampler import (
    CounterSample,
    SystemSnapshot,
    read_core_count,
    read_counter_sample,
    read_system_snapshot,
)


# ── Usage calculation ───────────────────────────────────────────────────────

def compute_usage(prev: CounterSample, curr: CounterSample, ok: bool) -> float:
    """CPU busy percentage between two cumulative samples.

    Returns 0.0 when the current read failed, on the first tick (``prev`` is
    the zero sample) and whenever the total counter didn't advance.
    """
    if not ok:
        return 0.0
    # Zero sample: nothing has been read yet
    if prev.total_ticks == 0:
        return 0.0
    if curr.total_ticks <= prev.total_ticks:
        return 0.0
    idle_diff = curr.idle_ticks - prev.idle_ticks
    total_diff = curr.total_ticks - prev.total_ticks
    if total_diff == 0:
        return 0.0
    usage = 100.0 * (1.0 - idle_diff / total_diff)
    return max(0.0, min(usage, 100.0))


# ── Running extremes ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Extremes:
    max: float = 0.0
    min: float = 100.0


def update_extremes(extremes: Extremes, usage: float) -> Extremes:
    return Extremes(max=max(extremes.max, usage), min=min(extremes.min, usage))


# ── Alert policy ────────────────────────────────────────────────────────────

def should_alert(usage: float, threshold: float) -> bool:
    return usage >= threshold


@dataclass(frozen=True)
class AlertEvent:
    timestamp: datetime
    usage: float
    threshold: float
    load1: float
    load5: float
    load15: float

    def payload(self) -> bytes:
        """Datagram body: ``<ts> ALERT CPU <usage>% load <l1>/<l5>/<l15>``."""
        text = (
            f"{format_timestamp(self.timestamp)} ALERT CPU {self.usage:.2f}% "
            f"load {self.load1:.2f}/{self.load5:.2f}/{self.load15:.2f}"
        )
        return text.encode("utf-8")

    def log_message(self) -> str:
        return (
            f"ALERT: CPU usage {self.usage:.2f}% >= {self.threshold:.2f}% "
            f"| Loadavg: {self.load1:.2f}/{self.load5:.2f}/{self.load15:.2f}"
        )


# ── Session ─────────────────────────────────────────────────────────────────

class State(enum.Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class ShutdownToken:
    """Set from signal handlers, checked by the loop once per tick."""

    def __init__(self) -> None:
        self.requested = False
        self.reason = ""

    def request(self, reason: str = "") -> None:
        if not self.requested:
            self.requested = True
            self.reason = reason

    def handle_signal(self, signum: int, _frame: Any) -> None:
        self.request(signal.Signals(signum).name)


@dataclass
class MonitorSession:
    """All mutable state for one monitoring run, owned by the main loop."""

    presenter: Presenter
    log: ActivityLog
    transport: AlertTransport = field(default_factory=NullAlertTransport)
    threshold: float = 80.0
    interval: float = 0.5
    bar_width: int = 30
    stat_path: str = "/proc/stat"
    loadavg_path: str = "/proc/loadavg"
    uptime_path: str = "/proc/uptime"
    token: ShutdownToken = field(default_factory=ShutdownToken)
    clock: Callable[[], datetime] = datetime.now
    sleep: Callable[[float], None] = time.sleep
    prev_sample: CounterSample = field(default_factory=CounterSample)
    extremes: Extremes = field(default_factory=Extremes)
    snapshot: SystemSnapshot = field(default_factory=SystemSnapshot)
    usage: float = 0.0
    state: State = State.RUNNING
    ticks: int = 0


def log_line(session: MonitorSession) -> str:
    s = session.snapshot
    return (
        f"CPU: {session.usage:.2f}% | Max: {session.extremes.max:.2f} "
        f"| Min: {session.extremes.min:.2f} "
        f"| Loadavg: {s.load1:.2f}/{s.load5:.2f}/{s.load15:.2f} "
        f"| Uptime: {s.uptime_seconds:.2f} s"
    )


def _forward_alert(session: MonitorSession, event: AlertEvent) -> None:
    if not session.transport.enabled:
        return
    if not session.transport.send(event.payload()):
        error = session.transport.error or "send failed"
        session.log.warning(f"alert forwarding disabled: {error}")
        session.transport.close()
        session.transport = NullAlertTransport()


def run_tick(session: MonitorSession) -> float:
    """One sample → compute → update → render → log → alert pass."""
    warn = session.log.warning

    curr, ok = read_counter_sample(session.stat_path, warn=warn)
    session.usage = compute_usage(session.prev_sample, curr, ok)
    if ok:
        session.prev_sample = curr
    session.extremes = update_extremes(session.extremes, session.usage)

    session.snapshot, _ = read_system_snapshot(
        session.snapshot, session.loadavg_path, session.uptime_path, warn=warn
    )

    alert = should_alert(session.usage, session.threshold)
    s = session.snapshot
    session.presenter.render(DashboardData(
        usage=session.usage,
        max_usage=session.extremes.max,
        min_usage=session.extremes.min,
        load_avg=(s.load1, s.load5, s.load15),
        uptime_seconds=s.uptime_seconds,
        core_count=s.core_count,
        threshold=session.threshold,
        alert=alert,
        bar_width=session.bar_width,
    ))
    session.log.write(log_line(session))

    if alert:
        event = AlertEvent(
            timestamp=session.clock(),
            usage=session.usage,
            threshold=session.threshold,
            load1=s.load1,
            load5=s.load5,
            load15=s.load15,
        )
        session.log.write(event.log_message())
        _forward_alert(session, event)

    session.ticks += 1
    return session.usage


def shutdown(session: MonitorSession) -> None:
    session.state = State.SHUTTING_DOWN
    session.presenter.close()
    reason = f" ({session.token.reason})" if session.token.reason else ""
    session.log.write(f"Shutting down after {session.ticks} ticks{reason}")
    session.log.close()
    session.transport.close()
    session.state = State.TERMINATED


def run(session: MonitorSession) -> None:
    """Tick until the quit key or a shutdown request, then release resources."""
    try:
        while not session.token.requested:
            run_tick(session)
            if session.presenter.poll_quit():
                session.token.request("quit key")
                break
            session.sleep(session.interval)
    finally:
        shutdown(session)


# ── Setup ───────────────────────────────────────────────────────────────────

def build_session(
    config: dict[str, Any],
    presenter: Presenter,
    token: ShutdownToken,
    cpuinfo_path: str = "/proc/cpuinfo",
) -> MonitorSession:
    log_cfg = config["log"]
    log = ActivityLog(log_cfg["path"], max_bytes=log_cfg["max_bytes"])

    transport: AlertTransport = NullAlertTransport()
    alerts = config["alerts"]
    if alerts.get("enabled"):
        udp = UdpAlertTransport(alerts["host"], alerts["port"])
        if udp.enabled:
            transport = udp
        else:
            log.warning(f"alert forwarding disabled: {udp.error}")

    cores = read_core_count(cpuinfo_path, warn=log.warning)
    log.write(
        f"cpumon started: {cores} cores, interval {config['interval']}s, "
        f"threshold {config['alert_threshold']:.1f}%"
    )

    return MonitorSession(
        presenter=presenter,
        log=log,
        transport=transport,
        threshold=float(config["alert_threshold"]),
        interval=float(config["interval"]),
        bar_width=int(config["bar_width"]),
        token=token,
        snapshot=SystemSnapshot(core_count=cores),
    )


def install_signal_handlers(token: ShutdownToken) -> None:
    signal.signal(signal.SIGINT, token.handle_signal)
    signal.signal(signal.SIGTERM, token.handle_signal)


def _run_curses(stdscr: Any, config: dict[str, Any], token: ShutdownToken) -> None:
    run(build_session(config, CursesPresenter(stdscr), token))


# ── CLI entry point ─────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Real-time CPU usage monitor with activity log and UDP alerts.",
    )
    parser.add_argument(
        "--interval", type=float, default=None,
        help="Seconds between samples (default: 0.5, or the config value)",
    )
    parser.add_argument(
        "--config", type=Path, default=None, metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--plain", action="store_true",
        help="Print plain text each tick instead of the curses dashboard",
    )
    parser.add_argument(
        "--print-config", action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args(argv)

    if args.print_config:
        print(dump_default_config(), end="")
        return

    config = load_config(args.config)
    if args.interval is not None:
        if args.interval <= 0:
            parser.error("--interval must be positive")
        config["interval"] = args.interval

    token = ShutdownToken()
    install_signal_handlers(token)

    if args.plain or not sys.stdout.isatty():
        print(f"cpumon: sampling every {config['interval']}s (Ctrl+C to stop)")
        run(build_session(config, PlainPresenter(), token))
        print("\ncpumon: stopped.")
        return

    curses.wrapper(_run_curses, config, token)


if __name__ == "__main__":
    main()
