"""Operator-facing status log."""

from collections.abc import Callable, Iterable

from .types import LogEvent, LogLevel


class StatusLog:
    """Accumulates status events; optionally forwards each one to a sink."""

    def __init__(self, sink: Callable[[LogEvent], None] | None = None):
        self._events: list[LogEvent] = []
        self._sink = sink

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)

    @property
    def events(self) -> list[LogEvent]:
        return list(self._events)

    def append(self, event: LogEvent) -> None:
        self._events.append(event)
        if self._sink is not None:
            self._sink(event)

    def write(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        self.append(LogEvent(level, message))

    def error(self, message: str) -> None:
        self.write(message, LogLevel.ERROR)

    def blank(self) -> None:
        self.write("")

    def extend(self, events: Iterable[LogEvent]) -> None:
        for event in events:
            self.append(event)

    def clear(self) -> None:
        self._events.clear()

    def lines(self) -> list[str]:
        return [e.message for e in self._events]
