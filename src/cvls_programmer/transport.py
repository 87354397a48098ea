"""Serial transport abstraction for CVLS units.

The CVLS speaks a line protocol: an ASCII command terminated by CR, one
response line terminated by LF.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import serial
import serial.tools.list_ports

from .commands import RESPONSE_EOL

logger = logging.getLogger(__name__)

CVLS_BAUD = 115200


@dataclass
class SerialPortInfo:
    """Information about a discovered serial port."""

    port: str
    serial_number: str
    description: str


class Transport(ABC):
    """Abstract line-oriented transport interface."""

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def write(self, data: bytes) -> None: ...

    @abstractmethod
    def read_line(self, timeout: float | None = None) -> bytes:
        """Read one response line, raising TimeoutError if none arrives."""

    @abstractmethod
    def reset_input(self) -> None:
        """Discard any unread input."""

    @property
    @abstractmethod
    def is_open(self) -> bool: ...


class SerialTransport(Transport):
    """pyserial-backed transport for a CVLS unit."""

    def __init__(self, port: str, baud: int = CVLS_BAUD):
        self._port_name = port
        self._baud = baud
        self._serial: serial.Serial | None = None

    def open(self) -> None:
        self._serial = serial.Serial(self._port_name, self._baud, timeout=1.0)
        logger.info("Opened %s at %d baud", self._port_name, self._baud)

    def close(self) -> None:
        if self._serial and self._serial.is_open:
            self._serial.close()
            logger.info("Closed %s", self._port_name)
        self._serial = None

    def write(self, data: bytes) -> None:
        ser = self._serial
        if ser is None or not ser.is_open:
            raise ConnectionError("Serial port not open")
        try:
            ser.write(data)
        except serial.SerialException as e:
            raise ConnectionError(str(e)) from e

    def read_line(self, timeout: float | None = None) -> bytes:
        # close() may run on another thread while this read is blocked
        ser = self._serial
        if ser is None or not ser.is_open:
            raise ConnectionError("Serial port not open")
        old_timeout = ser.timeout
        if timeout is not None:
            ser.timeout = timeout
        try:
            line = ser.read_until(RESPONSE_EOL.encode("ascii"))
        except serial.SerialException as e:
            raise ConnectionError(str(e)) from e
        finally:
            ser.timeout = old_timeout
        if self._serial is not ser:
            raise ConnectionError(f"{self._port_name} was closed during read")
        if not line.endswith(RESPONSE_EOL.encode("ascii")):
            raise TimeoutError(
                f"No response from {self._port_name} (got {line!r})"
            )
        return line

    def reset_input(self) -> None:
        ser = self._serial
        if ser is not None and ser.is_open:
            ser.reset_input_buffer()

    @property
    def is_open(self) -> bool:
        ser = self._serial
        return ser is not None and ser.is_open


def list_serial_ports(
    vid: int | None = None, pid: int | None = None
) -> list[SerialPortInfo]:
    """List serial ports, optionally filtered by USB VID/PID."""
    ports = []
    for port in serial.tools.list_ports.comports():
        if vid is not None and port.vid != vid:
            continue
        if pid is not None and port.pid != pid:
            continue
        ports.append(SerialPortInfo(
            port=port.device,
            serial_number=port.serial_number or "",
            description=port.description or "",
        ))
    return sorted(ports, key=lambda p: p.port)
