"""Device session: connection state and synchronous command exchange.

A DeviceSession wraps one Transport at a time. Attaching or detaching a
transport notifies every registered listener with a ConnectionUpdate, on
whichever thread made the change. PortWatcher makes those changes from a
background thread as ports appear and disappear.
"""

import logging
import threading
import time
from collections.abc import Callable

from .commands import SERIAL_QUERY, decode_response, encode_command
from .transport import SerialTransport, Transport, list_serial_ports
from .types import ConnectionUpdate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1.0
POLL_INTERVAL = 0.5

ConnectionListener = Callable[[ConnectionUpdate], None]


class NotConnectedError(ConnectionError):
    """No unit is attached to the session."""


class ExchangeError(Exception):
    """A command exchange failed (timeout or lost link)."""

    def __init__(self, command: str, reason: str):
        super().__init__(f"Command ({command}) failed: {reason}")
        self.command = command
        self.reason = reason


class ExchangeTimeout(ExchangeError):
    pass


class DeviceSession:
    """Connection to at most one CVLS unit.

    Usage:
        session = DeviceSession()
        session.add_listener(lambda update: print(update))
        session.attach(SerialTransport("/dev/ttyUSB0"), "/dev/ttyUSB0")
        firmware = session.exchange("&f")
        session.detach()
    """

    def __init__(self):
        self._transport: Transport | None = None
        self._port: str | None = None
        self._listeners: list[ConnectionListener] = []
        self._state_lock = threading.RLock()
        self._exchange_lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        transport = self._transport
        return transport is not None and transport.is_open

    @property
    def port(self) -> str | None:
        return self._port if self.is_connected else None

    def current_update(self) -> ConnectionUpdate:
        if self.is_connected:
            return ConnectionUpdate(True, self._port)
        return ConnectionUpdate(False, None)

    def add_listener(self, listener: ConnectionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ConnectionListener) -> None:
        self._listeners.remove(listener)

    def attach(self, transport: Transport, port: str) -> None:
        """Open transport and mark the session connected to port."""
        with self._state_lock:
            if self._transport is not None:
                self._close_transport()
            transport.open()
            self._transport = transport
            self._port = port
        logger.info("Unit attached on %s", port)
        self._notify(ConnectionUpdate(True, port))

    def detach(self) -> None:
        """Close the transport, if any, and mark the session disconnected."""
        with self._state_lock:
            if self._transport is None:
                return
            port = self._port
            self._close_transport()
        logger.info("Unit detached from %s", port)
        self._notify(ConnectionUpdate(False, None))

    def exchange(self, command: str, timeout: float = DEFAULT_TIMEOUT) -> str:
        """Send one command and return its one-line response.

        Only one exchange is in flight per session; concurrent callers wait.

        Raises:
            NotConnectedError: no unit attached.
            ExchangeTimeout: the unit did not answer within timeout.
            ExchangeError: the command is not ASCII, or the link failed
                (the session is then detached).
        """
        try:
            payload = encode_command(command)
        except UnicodeEncodeError as e:
            raise ExchangeError(command, "command is not ASCII") from e

        with self._exchange_lock:
            transport = self._transport
            if transport is None or not transport.is_open:
                raise NotConnectedError("No unit connected")
            try:
                transport.reset_input()
                transport.write(payload)
                response = decode_response(transport.read_line(timeout))
            except TimeoutError as e:
                raise ExchangeTimeout(command, str(e)) from e
            except OSError as e:
                # Includes the transport being closed by detach() mid-read
                link_error = e
            else:
                logger.debug("%s => %s", command, response)
                return response

        self._drop(transport)
        raise ExchangeError(command, str(link_error)) from link_error

    def query_serial_number(self, timeout: float = DEFAULT_TIMEOUT) -> int:
        """Ask the unit for its serial number.

        Raises:
            ValueError: the response is not an integer.
        """
        return int(self.exchange(SERIAL_QUERY, timeout).strip())

    def _drop(self, transport: Transport) -> None:
        """Detach after a link failure, unless transport was already replaced."""
        with self._state_lock:
            if self._transport is not transport:
                return
            self.detach()

    def _close_transport(self) -> None:
        transport = self._transport
        self._transport = None
        self._port = None
        if transport is not None and transport.is_open:
            try:
                transport.close()
            except OSError as e:
                logger.warning("Error closing transport: %s", e)

    def _notify(self, update: ConnectionUpdate) -> None:
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:
                logger.exception("Connection listener failed for %s", update)


class PortWatcher:
    """Attach and detach a session as its serial port comes and goes.

    Args:
        session: Session to drive.
        port: Port to watch. If None, the first port matching vid/pid.
        vid, pid: Optional USB filter used when port is None.
        poll_interval: Seconds between port scans.
        factory: Builds a Transport for a port name.
    """

    def __init__(
        self,
        session: DeviceSession,
        port: str | None = None,
        vid: int | None = None,
        pid: int | None = None,
        poll_interval: float = POLL_INTERVAL,
        factory: Callable[[str], Transport] = SerialTransport,
    ):
        self._session = session
        self._port = port
        self._vid = vid
        self._pid = pid
        self._poll_interval = poll_interval
        self._factory = factory
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def __enter__(self) -> "PortWatcher":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="cvls-port-watcher", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self._session.detach()

    def poll(self) -> None:
        """Scan ports once and attach or detach as needed."""
        available = [p.port for p in list_serial_ports(self._vid, self._pid)]

        if self._session.is_connected:
            if self._session.port not in available:
                self._session.detach()
            return

        if self._port is not None:
            target = self._port if self._port in available else None
        else:
            target = available[0] if available else None
        if target is None:
            return

        try:
            self._session.attach(self._factory(target), target)
        except OSError as e:
            logger.warning("Could not open %s: %s", target, e)

    def _run(self) -> None:
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.poll()
            except Exception:
                logger.exception("Port scan failed")
            remaining = self._poll_interval - (time.monotonic() - started)
            self._stop.wait(max(remaining, 0.0))
