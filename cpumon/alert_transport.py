"""Best-effort alert forwarding over UDP.

Datagrams are unacknowledged and unordered. Any socket error disables the
transport for the rest of the session; callers only ever see ``send() -> bool``.
"""

from __future__ import annotations

import socket
from typing import Protocol


class AlertTransport(Protocol):
    error: str | None

    @property
    def enabled(self) -> bool: ...

    def send(self, payload: bytes) -> bool: ...

    def close(self) -> None: ...


class NullAlertTransport:
    """Transport used when forwarding is turned off."""

    enabled = False
    error: str | None = None

    def send(self, payload: bytes) -> bool:
        return False

    def close(self) -> None:
        pass


class UdpAlertTransport:
    def __init__(self, host: str, port: int) -> None:
        self.address = (host, port)
        self.error: str | None = None
        self._sock: socket.socket | None = None
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            self.error = f"cannot create UDP socket: {e}"

    @property
    def enabled(self) -> bool:
        return self._sock is not None

    def send(self, payload: bytes) -> bool:
        if self._sock is None:
            return False
        try:
            self._sock.sendto(payload, self.address)
        except OSError as e:
            self.error = f"send to {self.address[0]}:{self.address[1]} failed: {e}"
            self.close()
            return False
        return True

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
