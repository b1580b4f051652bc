"""Tests for cpumon.alert_transport."""

from __future__ import annotations

import socket
from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest

from cpumon.alert_transport import NullAlertTransport, UdpAlertTransport


@pytest.fixture
def listener() -> Iterator[socket.socket]:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


class TestUdpAlertTransport:
    def test_delivers_datagram(self, listener: socket.socket) -> None:
        port = listener.getsockname()[1]
        transport = UdpAlertTransport("127.0.0.1", port)
        assert transport.enabled
        assert transport.send(b"ALERT CPU 91.00%") is True
        data, _ = listener.recvfrom(1024)
        assert data == b"ALERT CPU 91.00%"
        transport.close()

    @patch("cpumon.alert_transport.socket.socket", side_effect=OSError("no sockets"))
    def test_creation_failure_disables(self, mock_socket: MagicMock) -> None:
        transport = UdpAlertTransport("127.0.0.1", 5140)
        assert transport.enabled is False
        assert "no sockets" in (transport.error or "")
        assert transport.send(b"x") is False

    @patch("cpumon.alert_transport.socket.socket")
    def test_send_failure_disables(self, mock_socket: MagicMock) -> None:
        mock_socket.return_value.sendto.side_effect = OSError("unreachable")
        transport = UdpAlertTransport("192.0.2.1", 5140)
        assert transport.send(b"x") is False
        assert transport.enabled is False
        assert "unreachable" in (transport.error or "")
        mock_socket.return_value.close.assert_called_once()

    def test_close_is_idempotent(self) -> None:
        transport = UdpAlertTransport("127.0.0.1", 5140)
        transport.close()
        transport.close()
        assert transport.enabled is False


def test_null_transport() -> None:
    transport = NullAlertTransport()
    assert transport.enabled is False
    assert transport.send(b"x") is False
    transport.close()
    assert transport.error is None
