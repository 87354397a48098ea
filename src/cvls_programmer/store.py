"""Save and load the profile catalog as a JSON settings file.

File layout:
    {
      "format_version": 1,
      "selected": "DCR III Remote Emulator",
      "profiles": [
        {"name": "...", "commands": "&o;&l1;", "minimum_firmware": "1.14"},
        ...
      ]
    }
"""

import json
import logging
import os
from pathlib import Path

from .catalog import ProfileCatalog
from .types import Profile

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
SETTINGS_ENV = "CVLS_PROGRAMMER_SETTINGS"


class SettingsError(ValueError):
    """The settings file exists but cannot be read as a catalog."""


def default_settings_path() -> Path:
    """Settings file location, overridable with $CVLS_PROGRAMMER_SETTINGS."""
    env = os.environ.get(SETTINGS_ENV)
    if env:
        return Path(env)
    return Path.home() / ".config" / "cvls-programmer" / "settings.json"


def catalog_to_dict(catalog: ProfileCatalog) -> dict:
    return {
        "format_version": FORMAT_VERSION,
        "selected": catalog.selected.name if catalog.selected else None,
        "profiles": [
            {
                "name": p.name,
                "commands": p.command_text,
                "minimum_firmware": p.minimum_firmware,
            }
            for p in catalog
        ],
    }


def catalog_from_dict(data: dict) -> ProfileCatalog:
    profiles = [
        Profile.from_text(
            entry["name"],
            entry.get("commands", ""),
            entry.get("minimum_firmware") or None,
        )
        for entry in data.get("profiles", [])
    ]
    catalog = ProfileCatalog.from_profiles(profiles)

    selected = data.get("selected")
    catalog.selected = None
    if selected is not None:
        # First match wins; a corrupt store may hold duplicates
        catalog.selected = next(
            (p for p in catalog if p.name == selected), None
        )
    return catalog


def save_catalog(catalog: ProfileCatalog, path: str | Path) -> None:
    """Write the catalog and current selection to a JSON settings file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(catalog_to_dict(catalog), indent=2))
    logger.info("Saved %d profiles to %s", len(catalog), path)


def load_catalog(path: str | Path) -> ProfileCatalog:
    """Load a catalog from a settings file.

    A missing file yields the factory profiles.

    Raises:
        SettingsError: the file is not valid JSON or an entry is malformed.
    """
    path = Path(path)
    if not path.exists():
        logger.info("No settings at %s, using factory profiles", path)
        return ProfileCatalog()
    try:
        return catalog_from_dict(json.loads(path.read_text()))
    except json.JSONDecodeError as e:
        raise SettingsError(f"Settings file {path} is not valid JSON: {e}") from e
    except (KeyError, TypeError, AttributeError) as e:
        raise SettingsError(f"Settings file {path} is malformed: {e!r}") from e
