"""Profile catalog: ordered, uniquely named programming profiles.

Usage:
    catalog = ProfileCatalog()            # starts with the factory profiles
    catalog.upsert("Bright", "&o;&l1;", minimum_firmware="1.14")
    profile = catalog.find("Bright")
    catalog.remove(profile)
    catalog.reset()                       # back to factory defaults
"""

import logging
from collections.abc import Iterable, Iterator

from .commands import split_commands
from .firmware import FirmwareParseError, FirmwareVersion
from .types import Profile

logger = logging.getLogger(__name__)

# (name, command text, minimum firmware)
FACTORY_PROFILES: list[tuple[str, str, str | None]] = [
    ("Restore Factory Defaults", "&o;", None),
    ("DCR III Remote Emulator", "&o;&l1;&hl0;&m1;&s;", "1.14"),
    ("LED Output On At Powerup", "&o;&l1;&m0;&s;", "1.14"),
]


class ValidationError(ValueError):
    """Profile data rejected before any catalog change."""


class AmbiguousNameError(ValidationError):
    """More than one profile carries the same name."""

    def __init__(self, name: str, count: int):
        super().__init__(f"There are {count} profiles already named '{name}'")
        self.name = name
        self.count = count


class ProfileCatalog:
    """Ordered collection of profiles keyed by exact, case-sensitive name.

    Also holds the operator's current selection, which is what the
    sequencer programs when no profile is named explicitly.
    """

    def __init__(self, profiles: Iterable[Profile] | None = None):
        self._profiles: list[Profile] = []
        self.selected: Profile | None = None
        if profiles is None:
            self.reset()
        else:
            self._profiles.extend(profiles)
            self.selected = self._profiles[0] if self._profiles else None

    @classmethod
    def from_profiles(cls, profiles: Iterable[Profile]) -> "ProfileCatalog":
        """Build a catalog from stored profiles, keeping any duplicates.

        Duplicate names can only come from a corrupted store. They are kept
        so the operator can see and remove them; upserting such a name
        raises AmbiguousNameError.
        """
        catalog = cls(profiles)
        seen: set[str] = set()
        for p in catalog:
            if p.name in seen:
                logger.warning("Duplicate profile name in catalog: %r", p.name)
            seen.add(p.name)
        return catalog

    def __iter__(self) -> Iterator[Profile]:
        return iter(list(self._profiles))

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, profile: object) -> bool:
        return any(p is profile for p in self._profiles)

    def names(self) -> list[str]:
        return [p.name for p in self._profiles]

    def find(self, name: str) -> Profile | None:
        """Return the profile called name, or None."""
        matches = [p for p in self._profiles if p.name == name]
        if len(matches) > 1:
            raise AmbiguousNameError(name, len(matches))
        return matches[0] if matches else None

    def upsert(
        self,
        name: str,
        commands: str | list[str],
        minimum_firmware: str | None = None,
    ) -> Profile:
        """Add a profile, or update the one with the same name in place.

        A newly added profile becomes the current selection. An existing one
        keeps its identity and position.

        Raises:
            ValidationError: name is empty, a command is not ASCII or
                minimum_firmware is invalid.
            AmbiguousNameError: the catalog already holds duplicates of name.
        """
        if not name:
            raise ValidationError("You must enter a profile name")
        if minimum_firmware:
            try:
                FirmwareVersion.parse(minimum_firmware)
            except FirmwareParseError as e:
                raise ValidationError(str(e)) from e
        else:
            minimum_firmware = None

        if isinstance(commands, str):
            tokens = split_commands(commands)
        else:
            tokens = [c for c in commands if c]
        for token in tokens:
            if not token.isascii():
                raise ValidationError(f"Command ({token}) is not ASCII")

        existing = self.find(name)
        if existing is not None:
            existing.commands = tokens
            existing.minimum_firmware = minimum_firmware
            logger.debug("Updated profile %r", name)
            return existing

        profile = Profile(name, tokens, minimum_firmware)
        self._profiles.append(profile)
        self.selected = profile
        logger.debug("Added profile %r", name)
        return profile

    def remove(self, profile: Profile) -> None:
        """Remove a profile by identity.

        Raises:
            KeyError: profile is not in this catalog.
        """
        for idx, p in enumerate(self._profiles):
            if p is profile:
                del self._profiles[idx]
                break
        else:
            raise KeyError(profile.name)
        if self.selected is profile:
            self.selected = None

    def select(self, name: str) -> Profile:
        profile = self.find(name)
        if profile is None:
            raise KeyError(name)
        self.selected = profile
        return profile

    def reset(self) -> None:
        """Replace all contents with the factory profiles."""
        self._profiles = [
            Profile.from_text(name, text, fw)
            for name, text, fw in FACTORY_PROFILES
        ]
        self.selected = self._profiles[0]

