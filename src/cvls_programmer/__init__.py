from .catalog import AmbiguousNameError, ProfileCatalog, ValidationError
from .controller import AutoProgramController
from .firmware import FirmwareParseError, FirmwareVersion, compare_versions
from .mock import MockTransport
from .sequencer import CommandSequencer, ProgramResult, ProgramStatus
from .session import DeviceSession, ExchangeError, NotConnectedError, PortWatcher
from .status import StatusLog
from .store import SettingsError, load_catalog, save_catalog
from .transport import SerialTransport, list_serial_ports
from .types import ConnectionUpdate, LogEvent, LogLevel, Profile

__all__ = [
    "Profile",
    "ProfileCatalog",
    "ValidationError",
    "AmbiguousNameError",
    "FirmwareVersion",
    "FirmwareParseError",
    "compare_versions",
    "CommandSequencer",
    "ProgramResult",
    "ProgramStatus",
    "AutoProgramController",
    "DeviceSession",
    "PortWatcher",
    "ExchangeError",
    "NotConnectedError",
    "SerialTransport",
    "MockTransport",
    "StatusLog",
    "ConnectionUpdate",
    "LogEvent",
    "LogLevel",
    "save_catalog",
    "load_catalog",
    "SettingsError",
    "list_serial_ports",
]
