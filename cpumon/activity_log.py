"""Append-only activity log with size-based rotation.

One timestamped line per event, UTF-8, line-buffered. When the file reaches
``max_bytes`` it is renamed to ``<path>.<YYYYMMDDHHMMSS>`` and a fresh file is
opened in its place. If the file can't be opened the log prints a single
warning to stderr and then silently drops writes.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from datetime import datetime
from typing import TextIO

DEFAULT_MAX_BYTES = 1024 * 1024


def format_timestamp(moment: datetime) -> str:
    """``YYYY-MM-DD HH:MM:SS.mmm`` in local time."""
    return moment.strftime("%Y-%m-%d %H:%M:%S.") + f"{moment.microsecond // 1000:03d}"


class ActivityLog:
    def __init__(
        self,
        path: str,
        max_bytes: int = DEFAULT_MAX_BYTES,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.path = path
        self.max_bytes = max_bytes
        self._clock = clock
        self._file: TextIO | None = None
        self._warned = False
        self._open()

    @property
    def enabled(self) -> bool:
        return self._file is not None

    def _disable(self, reason: str) -> None:
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                pass
        self._file = None
        if not self._warned:
            print(f"cpumon: warning: activity log disabled: {reason}", file=sys.stderr)
            self._warned = True

    def _open(self) -> bool:
        try:
            self._file = open(self.path, "a", encoding="utf-8", buffering=1)
        except OSError as e:
            self._disable(f"cannot open {self.path}: {e}")
            return False
        return True

    def _rotated_name(self, moment: datetime) -> str:
        base = f"{self.path}.{moment.strftime('%Y%m%d%H%M%S')}"
        name, n = base, 1
        while os.path.exists(name):
            name = f"{base}.{n}"
            n += 1
        return name

    def _rotate_if_needed(self) -> None:
        if self._file is None:
            return
        try:
            size = os.fstat(self._file.fileno()).st_size
        except OSError as e:
            self._disable(f"cannot stat {self.path}: {e}")
            return
        if size < self.max_bytes:
            return

        rotated = self._rotated_name(self._clock())
        try:
            self._file.close()
        except OSError as e:
            self._file = None
            self._disable(f"cannot close {self.path} for rotation: {e}")
            return
        self._file = None
        try:
            os.rename(self.path, rotated)
        except OSError as e:
            self._disable(f"cannot rotate {self.path}: {e}")
            return
        if self._open():
            self._emit(f"Log rotated from {rotated}")

    def _emit(self, message: str) -> None:
        if self._file is None:
            return
        line = f"{format_timestamp(self._clock())} {message}\n"
        try:
            self._file.write(line)
        except OSError as e:
            self._disable(f"cannot write {self.path}: {e}")

    def write(self, message: str) -> None:
        """Append one timestamped line, rotating first if the file is full."""
        if self._file is None:
            return
        self._rotate_if_needed()
        if self._file is not None:
            self._emit(message)

    def warning(self, message: str) -> None:
        self.write(f"WARNING: {message}")

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                pass
            self._file = None
