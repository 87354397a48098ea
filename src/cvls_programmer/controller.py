"""Auto-program controller.

Connection updates arrive on the session's background thread. post() only
queues them; process_pending() handles them in order on the thread that
owns the catalog and status log, so catalog state and exchanges are never
touched from two threads at once.

Usage:
    controller = AutoProgramController(catalog, session, status)
    session.add_listener(controller.post)
    controller.arm()
    while running:
        controller.process_pending(timeout=0.5)
"""

import logging
import queue

from .catalog import ProfileCatalog
from .sequencer import CommandSequencer, ProgramResult
from .session import (
    DEFAULT_TIMEOUT,
    DeviceSession,
    ExchangeError,
    NotConnectedError,
)
from .status import StatusLog
from .types import ConnectionUpdate

logger = logging.getLogger(__name__)


class AutoProgramController:
    """Programs every newly connected unit while armed."""

    def __init__(
        self,
        catalog: ProfileCatalog,
        session: DeviceSession,
        status: StatusLog | None = None,
        sequencer: CommandSequencer | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._catalog = catalog
        self._session = session
        self.status = status if status is not None else StatusLog()
        self._sequencer = sequencer or CommandSequencer(
            on_event=self.status.append, timeout=timeout
        )
        self._timeout = timeout
        self._armed = False
        self._updates: queue.Queue[ConnectionUpdate] = queue.Queue()

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def editing_enabled(self) -> bool:
        """Profiles, firmware choice and selection are locked while armed."""
        return not self._armed

    def arm(self) -> None:
        self._armed = True
        logger.info("Auto-programming armed")

    def disarm(self) -> None:
        self._armed = False
        logger.info("Auto-programming disarmed")

    def post(self, update: ConnectionUpdate) -> None:
        """Queue a connection update. Safe to call from any thread."""
        self._updates.put(update)

    def process_pending(self, timeout: float | None = None) -> int:
        """Handle queued connection updates in arrival order.

        Args:
            timeout: Seconds to wait for the first update; None returns
                immediately when the queue is empty.

        Returns:
            Number of updates handled.
        """
        handled = 0
        block = timeout is not None
        while True:
            try:
                update = self._updates.get(block=block, timeout=timeout)
            except queue.Empty:
                return handled
            block = False
            self.handle_update(update)
            handled += 1

    def handle_update(self, update: ConnectionUpdate) -> None:
        if update.connected:
            self._on_connected(update.port)
        elif update.port is None:
            if not self.status:
                return
            self.status.write("Disconnected from Unit")
            self.status.blank()

    def program_unit(self) -> ProgramResult | None:
        """Run the selected profile against the session, if connected."""
        profile = self._catalog.selected
        if profile is None:
            if self._session.is_connected:
                self.status.error("No profile selected!")
            return None
        return self._sequencer.run(profile, self._session)

    def _on_connected(self, port: str | None) -> None:
        if not self._session.is_connected:
            # Unit went away again before this update was handled
            return
        try:
            serial_number = self._session.query_serial_number(self._timeout)
        except NotConnectedError:
            return
        except ExchangeError as e:
            self.status.error(f"Could not read serial number: {e}")
        except ValueError as e:
            self.status.error(f"Unreadable serial number: {e}")
        else:
            self.status.write(
                f"Connected to Serial ({serial_number}) on ({port})"
            )

        if self._armed:
            self.program_unit()
