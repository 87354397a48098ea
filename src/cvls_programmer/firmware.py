"""Firmware version parsing and numeric comparison.

Versions are dotted numbers ('1.14'). Components compare as integers, so
'1.2' < '1.10', and missing trailing components count as zero.
"""

import functools
import re
from dataclasses import dataclass

_VERSION_RE = re.compile(r"^[vV]?(\d+(?:\.\d+)*)$")

# Minimum firmware choices offered to the operator, lowest first
SELECTABLE_FIRMWARE = ["1.00", "1.10", "1.14"]


class FirmwareParseError(ValueError):
    """Raised when a firmware version string cannot be parsed."""


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class FirmwareVersion:
    parts: tuple[int, ...]
    text: str = ""

    @classmethod
    def parse(cls, text: str) -> "FirmwareVersion":
        match = _VERSION_RE.match(text.strip()) if text else None
        if match is None:
            raise FirmwareParseError(f"Invalid firmware version: {text!r}")
        version = match.group(1)
        return cls(tuple(int(p) for p in version.split(".")), version)

    @classmethod
    def from_response(cls, response: str) -> "FirmwareVersion":
        """Parse the first whitespace-delimited token of a '&f' response."""
        tokens = response.split()
        if not tokens:
            raise FirmwareParseError("Empty firmware response")
        return cls.parse(tokens[0])

    def _padded(self, other: "FirmwareVersion") -> tuple[tuple, tuple]:
        width = max(len(self.parts), len(other.parts))
        a = self.parts + (0,) * (width - len(self.parts))
        b = other.parts + (0,) * (width - len(other.parts))
        return a, b

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FirmwareVersion):
            return NotImplemented
        a, b = self._padded(other)
        return a == b

    def __lt__(self, other: "FirmwareVersion") -> bool:
        if not isinstance(other, FirmwareVersion):
            return NotImplemented
        a, b = self._padded(other)
        return a < b

    def __hash__(self) -> int:
        parts = list(self.parts)
        while len(parts) > 1 and parts[-1] == 0:
            parts.pop()
        return hash(tuple(parts))

    def __str__(self) -> str:
        if self.text:
            return self.text
        return ".".join(str(p) for p in self.parts)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as version a is below, equal to or above b."""
    va, vb = FirmwareVersion.parse(a), FirmwareVersion.parse(b)
    if va < vb:
        return -1
    return 1 if va > vb else 0


def lowest_selectable() -> FirmwareVersion:
    return min(FirmwareVersion.parse(v) for v in SELECTABLE_FIRMWARE)
