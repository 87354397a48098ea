"""Tests for SerialTransport over a fake pyserial port."""

from collections import deque

import pytest

from cvls_programmer import transport as transport_module
from cvls_programmer.sequencer import CommandSequencer, ProgramStatus
from cvls_programmer.session import DeviceSession
from cvls_programmer.transport import SerialTransport
from cvls_programmer.types import ConnectionUpdate, Profile


class FakeSerial:
    """Stands in for serial.Serial; replies are queued raw lines."""

    def __init__(self, port, baudrate, timeout=None):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.is_open = True
        self.written: list[bytes] = []
        self.replies: deque[bytes] = deque()
        self.on_read = None

    def write(self, data):
        self.written.append(data)

    def reset_input_buffer(self):
        pass

    def read_until(self, expected):
        if self.on_read is not None:
            self.on_read()
        return self.replies.popleft() if self.replies else b""

    def close(self):
        self.is_open = False


@pytest.fixture
def ports(monkeypatch):
    """Every serial.Serial opened during the test, in order."""
    opened = []

    def fake_serial(port, baudrate, timeout=None):
        ser = FakeSerial(port, baudrate, timeout)
        opened.append(ser)
        return ser

    monkeypatch.setattr(transport_module.serial, "Serial", fake_serial)
    return opened


class TestReadLine:
    def test_returns_line_and_restores_timeout(self, ports):
        transport = SerialTransport("COM9")
        transport.open()
        ser = ports[0]
        ser.replies.append(b"1.20 CVLS\r\n")

        assert transport.read_line(timeout=0.2) == b"1.20 CVLS\r\n"
        assert ser.timeout == 1.0
        assert ser.baudrate == transport_module.CVLS_BAUD

    def test_partial_line_times_out(self, ports):
        transport = SerialTransport("COM9")
        transport.open()
        ports[0].replies.append(b"1.2")

        with pytest.raises(TimeoutError):
            transport.read_line(timeout=0.01)

    def test_not_open(self):
        with pytest.raises(ConnectionError):
            SerialTransport("COM9").read_line()

    def test_closed_during_read(self, ports):
        transport = SerialTransport("COM9")
        transport.open()
        ser = ports[0]
        ser.on_read = transport.close

        with pytest.raises(ConnectionError, match="closed during read"):
            transport.read_line()
        assert not transport.is_open


class TestDetachDuringExchange:
    """The port watcher thread can detach while an exchange is blocked."""

    def test_exchange_fails_cleanly(self, ports):
        updates = []
        session = DeviceSession()
        session.add_listener(updates.append)
        session.attach(SerialTransport("COM9"), "COM9")
        ports[0].on_read = session.detach

        result = CommandSequencer().run(Profile("P", ["&o"]), session)

        assert result.status is ProgramStatus.EXCHANGE_FAILED
        assert result.events[-1].is_error
        assert result.events[-1].message.endswith("Programming aborted!")
        assert not session.is_connected
        assert updates.count(ConnectionUpdate(False, None)) == 1

    def test_detach_mid_sequence(self, ports):
        session = DeviceSession()
        session.attach(SerialTransport("COM9"), "COM9")
        ser = ports[0]
        ser.replies.extend([b"1.20 CVLS\n", b"OK\n"])
        reads = []

        def watcher_fires():
            reads.append(1)
            if len(reads) == 3:
                session.detach()

        ser.on_read = watcher_fires
        profile = Profile("P", ["&o", "&l1", "&s"])
        result = CommandSequencer().run(profile, session)

        assert result.status is ProgramStatus.EXCHANGE_FAILED
        assert result.commands_sent == ["&o"]
        assert ser.written == [b"&f\r", b"&o\r", b"&l1\r"]

    def test_link_failure_keeps_replacement_transport(self, ports):
        session = DeviceSession()
        session.attach(SerialTransport("COM9"), "COM9")

        def replugged():
            session.attach(SerialTransport("COM9"), "COM9")

        ports[0].on_read = replugged
        result = CommandSequencer().run(Profile("P", ["&o"]), session)

        assert result.status is ProgramStatus.EXCHANGE_FAILED
        assert session.is_connected
        assert ports[1].is_open
