"""Mock transport for testing without a CVLS unit attached.

Simulates a unit that answers the serial and firmware queries and replies
to every other command with a canned response.
"""

from collections import deque

from .commands import (
    COMMAND_EOL,
    FIRMWARE_QUERY,
    RESPONSE_EOL,
    SERIAL_QUERY,
)
from .transport import Transport


def make_firmware_response(version: str = "1.20") -> str:
    """Build a firmware query response like a real unit would send."""
    return f"{version} CVLS"


class MockTransport(Transport):
    """Mock transport that simulates CVLS responses.

    Usage:
        mock = MockTransport(firmware="1.10")
        session = DeviceSession()
        session.attach(mock, "MOCK")
        session.exchange("&f")   # -> "1.10 CVLS"

    Args:
        firmware: Version reported by the firmware query.
        serial_number: Value reported by the serial query.
        responses: Replies for specific commands; others get default_response.
        silent: Commands the unit never answers (the exchange times out).
        fail_after: Drop the link once this many commands have been written.
    """

    def __init__(
        self,
        firmware: str = "1.20",
        serial_number: int | str = 12345,
        responses: dict[str, str] | None = None,
        default_response: str = "OK",
        silent: set[str] | None = None,
        fail_after: int | None = None,
    ):
        self._responses = {
            FIRMWARE_QUERY: make_firmware_response(firmware),
            SERIAL_QUERY: str(serial_number),
        }
        self._responses.update(responses or {})
        self._default_response = default_response
        self._silent = silent or set()
        self._fail_after = fail_after

        self._is_open = False
        self._read_buffer = deque[bytes]()
        self._write_log: list[str] = []

    def open(self) -> None:
        self._is_open = True

    def close(self) -> None:
        self._is_open = False
        self._read_buffer.clear()

    def write(self, data: bytes) -> None:
        if not self._is_open:
            raise ConnectionError("Not open")
        if self._fail_after is not None and len(self._write_log) >= self._fail_after:
            self._is_open = False
            raise ConnectionError("Device disconnected")

        command = data.decode("ascii").rstrip(COMMAND_EOL)
        self._write_log.append(command)
        if command in self._silent:
            return
        reply = self._responses.get(command, self._default_response)
        self._read_buffer.append((reply + RESPONSE_EOL).encode("ascii"))

    def read_line(self, timeout: float | None = None) -> bytes:
        if not self._is_open:
            raise ConnectionError("Not open")
        if self._read_buffer:
            return self._read_buffer.popleft()
        raise TimeoutError("No response")

    def reset_input(self) -> None:
        self._read_buffer.clear()

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def write_log(self) -> list[str]:
        """All commands sent to the unit, in order."""
        return self._write_log

    def set_response(self, command: str, reply: str) -> None:
        self._responses[command] = reply
