"""Types for programming profiles, connection state and status events."""

from dataclasses import dataclass, field
from enum import Enum

from .commands import join_commands, split_commands


@dataclass
class Profile:
    """A named, ordered set of device commands with a firmware gate."""

    name: str
    commands: list[str] = field(default_factory=list)
    minimum_firmware: str | None = None

    @classmethod
    def from_text(
        cls, name: str, text: str, minimum_firmware: str | None = None
    ) -> "Profile":
        """Build a profile from terminated command text like '&o;&l1;'."""
        return cls(name, split_commands(text), minimum_firmware)

    @property
    def command_text(self) -> str:
        return join_commands(self.commands)


class LogLevel(Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class LogEvent:
    """One line of operator-facing status output."""

    level: LogLevel
    message: str

    @classmethod
    def info(cls, message: str) -> "LogEvent":
        return cls(LogLevel.INFO, message)

    @classmethod
    def error(cls, message: str) -> "LogEvent":
        return cls(LogLevel.ERROR, message)

    @property
    def is_error(self) -> bool:
        return self.level is LogLevel.ERROR


@dataclass(frozen=True)
class ConnectionUpdate:
    """Connection state change reported by a DeviceSession."""

    connected: bool
    port: str | None = None
