"""Run a programming profile against a connected unit.

The sequencer queries the unit's firmware, checks it against the profile's
minimum, then sends each command in order, one exchange at a time. The
first failed exchange ends the run; commands already sent stay applied.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from .commands import FIRMWARE_QUERY
from .firmware import FirmwareParseError, FirmwareVersion, lowest_selectable
from .session import (
    DEFAULT_TIMEOUT,
    DeviceSession,
    ExchangeError,
    NotConnectedError,
)
from .types import LogEvent, Profile

logger = logging.getLogger(__name__)


class ProgramStatus(Enum):
    COMPLETE = "complete"
    NOT_CONNECTED = "not_connected"
    FIRMWARE_UNREADABLE = "firmware_unreadable"
    FIRMWARE_TOO_OLD = "firmware_too_old"
    EXCHANGE_FAILED = "exchange_failed"
    INVALID_PROFILE = "invalid_profile"


@dataclass
class ProgramResult:
    """Outcome of one sequencer run."""

    profile: str
    status: ProgramStatus = ProgramStatus.NOT_CONNECTED
    firmware: FirmwareVersion | None = None
    required: FirmwareVersion | None = None
    exchanges: list[tuple[str, str]] = field(default_factory=list)
    events: list[LogEvent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ProgramStatus.COMPLETE

    @property
    def commands_sent(self) -> list[str]:
        return [cmd for cmd, _ in self.exchanges]


class CommandSequencer:
    """Executes one profile against one connected DeviceSession.

    Args:
        on_event: Called with each LogEvent as it is produced.
        timeout: Per-exchange timeout in seconds.
        lowest_firmware: Gate used for profiles without a minimum.
    """

    def __init__(
        self,
        on_event: Callable[[LogEvent], None] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        lowest_firmware: FirmwareVersion | None = None,
    ):
        self._on_event = on_event
        self._timeout = timeout
        self._lowest_firmware = lowest_firmware or lowest_selectable()

    def required_firmware(self, profile: Profile) -> FirmwareVersion:
        if profile.minimum_firmware:
            return FirmwareVersion.parse(profile.minimum_firmware)
        return self._lowest_firmware

    def run(self, profile: Profile, session: DeviceSession) -> ProgramResult:
        result = ProgramResult(profile=profile.name)
        if not session.is_connected:
            logger.debug("Not connected, skipping %r", profile.name)
            return result

        try:
            response = session.exchange(FIRMWARE_QUERY, self._timeout)
        except NotConnectedError:
            return result
        except ExchangeError as e:
            return self._exchange_failed(result, e)

        try:
            result.firmware = FirmwareVersion.from_response(response)
        except FirmwareParseError:
            result.status = ProgramStatus.FIRMWARE_UNREADABLE
            self._emit(result, LogEvent.error(
                f"Unit firmware response ({response}) could not be read!"
            ))
            return result

        try:
            result.required = self.required_firmware(profile)
        except FirmwareParseError:
            result.status = ProgramStatus.INVALID_PROFILE
            self._emit(result, LogEvent.error(
                f"Profile minimum firmware ({profile.minimum_firmware}) is invalid!"
            ))
            return result

        if result.firmware < result.required:
            result.status = ProgramStatus.FIRMWARE_TOO_OLD
            self._emit(result, LogEvent.error(
                f"Unit Firmware (V{result.firmware}) does not meet the "
                f"minimum requirement (V{result.required})!"
            ))
            self._emit(result, LogEvent.error("Cannot Program Unit!"))
            return result

        logger.info(
            "Programming %r (firmware %s, %d commands)",
            profile.name, result.firmware, len(profile.commands),
        )
        for command in profile.commands:
            try:
                reply = session.exchange(command, self._timeout)
            except (ExchangeError, NotConnectedError) as e:
                return self._exchange_failed(result, e)
            result.exchanges.append((command, reply))
            self._emit(result, LogEvent.info(
                f"Sending Command ({command}) => Response ({reply})"
            ))

        result.status = ProgramStatus.COMPLETE
        self._emit(result, LogEvent.info("Programming Complete"))
        return result

    def _exchange_failed(
        self, result: ProgramResult, error: Exception
    ) -> ProgramResult:
        logger.warning("Programming %r aborted: %s", result.profile, error)
        result.status = ProgramStatus.EXCHANGE_FAILED
        self._emit(result, LogEvent.error(f"{error}. Programming aborted!"))
        return result

    def _emit(self, result: ProgramResult, event: LogEvent) -> None:
        result.events.append(event)
        if self._on_event is not None:
            self._on_event(event)
