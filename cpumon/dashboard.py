"""Terminal presentation for cpumon.

``format_dashboard`` turns one tick's numbers into text lines; the curses
presenter draws them with colour and a bold alert line, the plain presenter
prints them for terminals where curses isn't wanted (pipes, CI, ``--plain``).
"""

from __future__ import annotations

import curses
import sys
import time
from dataclasses import dataclass
from typing import Any, Protocol, TextIO

# ── Constants ──────────────────────────────────────────────────────────────

BAR_FILL = "#"
BAR_EMPTY = "-"
TITLE = "Real-Time CPU Usage Monitor"
QUIT_HINT = "Press 'q' to quit"
QUIT_KEYS = (ord("q"), ord("Q"))

# Curses colour-pair IDs
C_NORMAL = 1
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5

# Row layout (matches the line order of format_dashboard)
ROW_TITLE = 0
ROW_BAR = 9
ROW_STATUS = 11


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass
class DashboardData:
    """Everything the dashboard shows for one tick."""

    usage: float = 0.0
    max_usage: float = 0.0
    min_usage: float = 100.0
    load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    uptime_seconds: float = 0.0
    core_count: int = 1
    threshold: float = 80.0
    alert: bool = False
    bar_width: int = 30


class Presenter(Protocol):
    def render(self, data: DashboardData) -> None: ...

    def poll_quit(self) -> bool: ...

    def close(self) -> None: ...


# ── Formatting helpers ─────────────────────────────────────────────────────


def bar_fill(usage: float, width: int) -> int:
    """Number of filled cells for *usage* percent on a *width*-cell bar."""
    filled = int(usage / 100.0 * width)
    return max(0, min(filled, width))


def render_bar(usage: float, width: int) -> str:
    """``[####------]`` with ``floor(usage/100 * width)`` filled cells."""
    filled = bar_fill(usage, width)
    return "[" + BAR_FILL * filled + BAR_EMPTY * (width - filled) + "]"


def status_line(data: DashboardData) -> str:
    if data.alert:
        return f"ALERT: CPU Usage Above {data.threshold:.1f}%"
    return "Status: OK"


def format_dashboard(data: DashboardData) -> list[str]:
    l1, l5, l15 = data.load_avg
    return [
        TITLE,
        f"Current CPU Usage: {data.usage:.2f}%",
        f"Max CPU Usage Observed: {data.max_usage:.2f}%",
        f"Min CPU Usage Observed: {data.min_usage:.2f}%",
        "",
        f"Load Averages (1/5/15 min): {l1:.2f} / {l5:.2f} / {l15:.2f}",
        f"System Uptime: {data.uptime_seconds:.2f} seconds",
        f"Number of CPU Cores: {data.core_count}",
        "",
        render_bar(data.usage, data.bar_width),
        "",
        status_line(data),
        "",
        QUIT_HINT,
    ]


# ── Curses presenter ───────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)


def _safe(win: Any, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


class CursesPresenter:
    """Draws the dashboard on a curses window and polls it for ``q``."""

    def __init__(self, stdscr: Any, colors: bool = True) -> None:
        self.stdscr = stdscr
        if colors and curses.has_colors():
            _init_colors()
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        stdscr.nodelay(True)

    def _attr(self, row: int, data: DashboardData) -> int:
        if row == ROW_TITLE:
            return curses.color_pair(C_TITLE) | curses.A_BOLD
        if row == ROW_STATUS and data.alert:
            return curses.color_pair(C_CRITICAL) | curses.A_BOLD
        if row == ROW_BAR:
            return curses.color_pair(C_CRITICAL if data.alert else C_NORMAL)
        return curses.A_NORMAL

    def render(self, data: DashboardData) -> None:
        self.stdscr.erase()
        max_y, max_x = self.stdscr.getmaxyx()
        for row, line in enumerate(format_dashboard(data)):
            if row >= max_y:
                break
            _safe(self.stdscr, row, 0, line[: max(0, max_x - 1)], self._attr(row, data))
        self.stdscr.refresh()

    def poll_quit(self) -> bool:
        key = self.stdscr.getch()
        if key == curses.KEY_RESIZE:
            self.stdscr.clear()
            return False
        return key in QUIT_KEYS

    def close(self) -> None:
        self.stdscr.nodelay(False)
        self.stdscr.erase()
        self.stdscr.refresh()


# ── Plain presenter ────────────────────────────────────────────────────────


class PlainPresenter:
    """Prints each tick as a text block. Stops only on a signal."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def render(self, data: DashboardData) -> None:
        ts = time.strftime("%H:%M:%S")
        lines = [f"\n── cpumon [{ts}] ──"]
        lines.extend(f"  {line}" if line else "" for line in format_dashboard(data)[1:-2])
        print("\n".join(lines), file=self.stream, flush=True)

    def poll_quit(self) -> bool:
        return False

    def close(self) -> None:
        self.stream.flush()
