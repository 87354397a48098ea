"""CVLS programmer command-line interface.

Usage:
    cvls-programmer ports                          List serial ports
    cvls-programmer profiles                       List programming profiles
    cvls-programmer show NAME                      Show one profile
    cvls-programmer add NAME "&o;&l1;" [--min-firmware 1.14]
                                                   Add or update a profile
    cvls-programmer remove NAME                    Remove a profile
    cvls-programmer reset                          Restore factory profiles
    cvls-programmer select NAME                    Set the default profile
    cvls-programmer info [--port ...]              Show unit serial and firmware
    cvls-programmer program [NAME] [--port ...]    Program the connected unit
    cvls-programmer auto [NAME] [--port ...]       Program every unit that connects
"""

import argparse
import logging
import sys
from pathlib import Path

from .catalog import AmbiguousNameError, ProfileCatalog, ValidationError
from .store import (
    SettingsError,
    default_settings_path,
    load_catalog,
    save_catalog,
)
from .types import LogEvent, Profile

logger = logging.getLogger(__name__)


def _print_event(event: LogEvent) -> None:
    if event.is_error:
        print(f"!! {event.message}")
    else:
        print(event.message)


def _settings_path(args: argparse.Namespace) -> Path:
    return Path(args.settings) if args.settings else default_settings_path()


def _load(args: argparse.Namespace) -> ProfileCatalog:
    return load_catalog(_settings_path(args))


def _save(catalog: ProfileCatalog, args: argparse.Namespace) -> None:
    save_catalog(catalog, _settings_path(args))


def _find(catalog: ProfileCatalog, name: str) -> Profile | None:
    """Look up a profile, printing a user-friendly error on failure."""
    try:
        profile = catalog.find(name)
    except AmbiguousNameError as e:
        print(f"Error: {e}")
        return None
    if profile is None:
        print(f"Error: no profile named '{name}'")
    return profile


def _resolve_port(port: str | None) -> str:
    from .transport import list_serial_ports

    if port:
        return port
    ports = list_serial_ports()
    if not ports:
        print("Error: no serial ports found")
        sys.exit(1)
    return ports[0].port


def _select_for_run(catalog: ProfileCatalog, name: str | None) -> Profile | None:
    if name is None:
        if catalog.selected is None:
            print("Error: no profile selected")
        return catalog.selected
    profile = _find(catalog, name)
    if profile is not None:
        catalog.selected = profile
    return profile


def cmd_ports(args: argparse.Namespace) -> int:
    """List serial ports."""
    from .transport import list_serial_ports

    ports = list_serial_ports()
    if not ports:
        print("No serial ports found.")
        return 1

    for p in ports:
        print(f"{p.port}  serial={p.serial_number}  {p.description}")
    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List programming profiles."""
    catalog = _load(args)
    if not len(catalog):
        print("No profiles. Run 'reset' to restore the factory profiles.")
        return 0

    for p in catalog:
        marker = "*" if p is catalog.selected else " "
        firmware = p.minimum_firmware or "-"
        print(f"{marker} {p.name:<32} min={firmware:<6} {p.command_text}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show a profile's commands."""
    profile = _find(_load(args), args.name)
    if profile is None:
        return 1

    print(f"Name:     {profile.name}")
    print(f"Firmware: {profile.minimum_firmware or '(none)'}")
    print("Commands:")
    for cmd in profile.commands:
        print(f"  {cmd}")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    """Add a profile or update an existing one."""
    catalog = _load(args)
    try:
        profile = catalog.upsert(args.name, args.commands, args.min_firmware)
    except ValidationError as e:
        print(f"Error: {e}")
        return 1

    _save(catalog, args)
    print(f"Saved profile '{profile.name}': {profile.command_text}")
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    """Remove a profile."""
    catalog = _load(args)
    profile = _find(catalog, args.name)
    if profile is None:
        return 1

    catalog.remove(profile)
    _save(catalog, args)
    print(f"Removed profile '{args.name}'")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    """Restore the factory profiles."""
    catalog = _load(args)
    catalog.reset()
    _save(catalog, args)
    print(f"Restored {len(catalog)} factory profiles")
    return 0


def cmd_select(args: argparse.Namespace) -> int:
    """Set the profile used when none is named."""
    catalog = _load(args)
    profile = _find(catalog, args.name)
    if profile is None:
        return 1

    catalog.selected = profile
    _save(catalog, args)
    print(f"Selected profile '{profile.name}'")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Show the connected unit's serial number and firmware."""
    from .commands import FIRMWARE_QUERY
    from .session import DeviceSession, ExchangeError
    from .transport import SerialTransport

    port = _resolve_port(args.port)
    session = DeviceSession()
    try:
        session.attach(SerialTransport(port), port)
    except OSError as e:
        print(f"Error: {e}")
        return 1

    try:
        print(f"Port:     {port}")
        print(f"Serial:   {session.query_serial_number(args.timeout)}")
        print(f"Firmware: {session.exchange(FIRMWARE_QUERY, args.timeout)}")
    except (ExchangeError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        session.detach()
    return 0


def cmd_program(args: argparse.Namespace) -> int:
    """Program the connected unit once."""
    from .controller import AutoProgramController
    from .session import DeviceSession
    from .status import StatusLog
    from .transport import SerialTransport

    catalog = _load(args)
    if _select_for_run(catalog, args.name) is None:
        return 1

    port = _resolve_port(args.port)
    session = DeviceSession()
    controller = AutoProgramController(
        catalog, session, StatusLog(sink=_print_event), timeout=args.timeout
    )
    session.add_listener(controller.post)

    try:
        session.attach(SerialTransport(port), port)
    except OSError as e:
        print(f"Error: {e}")
        return 1

    try:
        controller.process_pending()
        result = controller.program_unit()
    finally:
        session.detach()
        controller.process_pending()

    return 0 if result is not None and result.ok else 1


def cmd_auto(args: argparse.Namespace) -> int:
    """Program every unit that connects until interrupted."""
    from .controller import AutoProgramController
    from .session import DeviceSession, PortWatcher
    from .status import StatusLog
    from .transport import SerialTransport

    catalog = _load(args)
    profile = _select_for_run(catalog, args.name)
    if profile is None:
        return 1

    session = DeviceSession()
    controller = AutoProgramController(
        catalog, session, StatusLog(sink=_print_event), timeout=args.timeout
    )
    session.add_listener(controller.post)
    controller.arm()

    where = args.port or "the first serial port found"
    print(f"Auto-programming '{profile.name}' on {where}. Ctrl-C to stop.")
    watcher = PortWatcher(
        session, port=args.port, poll_interval=args.poll, factory=SerialTransport
    )
    with watcher:
        try:
            while True:
                try:
                    controller.process_pending(timeout=args.poll)
                except Exception:
                    logger.exception("Unexpected error handling unit")
        except KeyboardInterrupt:
            print("\nStopping auto-programming")
        finally:
            controller.disarm()
    return 0


def main(argv: list[str] | None = None) -> int:
    from .session import DEFAULT_TIMEOUT, POLL_INTERVAL

    parser = argparse.ArgumentParser(
        prog="cvls-programmer",
        description="Apply programming profiles to CVLS light sources",
    )
    parser.add_argument("--settings", help="Settings file (default: ~/.config/cvls-programmer/settings.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # --- Profile commands ---

    sub.add_parser("ports", help="List serial ports")
    sub.add_parser("profiles", help="List programming profiles")

    p_show = sub.add_parser("show", help="Show a profile")
    p_show.add_argument("name", help="Profile name")

    p_add = sub.add_parser("add", help="Add or update a profile")
    p_add.add_argument("name", help="Profile name (case-sensitive)")
    p_add.add_argument("commands", help="Commands, each terminated by ';' (e.g. \"&o;&l1;\")")
    p_add.add_argument("--min-firmware", help="Minimum unit firmware (e.g. 1.14)")

    p_remove = sub.add_parser("remove", help="Remove a profile")
    p_remove.add_argument("name", help="Profile name")

    sub.add_parser("reset", help="Restore the factory profiles")

    p_select = sub.add_parser("select", help="Set the default profile")
    p_select.add_argument("name", help="Profile name")

    # --- Unit commands ---

    p_info = sub.add_parser("info", help="Show unit serial number and firmware")
    p_info.add_argument("--port", help="Serial port (first port if omitted)")
    p_info.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Response timeout (s)")

    p_program = sub.add_parser("program", help="Program the connected unit")
    p_program.add_argument("name", nargs="?", help="Profile name (selected profile if omitted)")
    p_program.add_argument("--port", help="Serial port (first port if omitted)")
    p_program.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Response timeout (s)")

    p_auto = sub.add_parser("auto", help="Program every unit that connects")
    p_auto.add_argument("name", nargs="?", help="Profile name (selected profile if omitted)")
    p_auto.add_argument("--port", help="Serial port to watch (first port if omitted)")
    p_auto.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Response timeout (s)")
    p_auto.add_argument("--poll", type=float, default=POLL_INTERVAL, help="Port scan interval (s)")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.command:
        parser.print_help()
        return 0

    handlers = {
        "ports": cmd_ports,
        "profiles": cmd_profiles,
        "show": cmd_show,
        "add": cmd_add,
        "remove": cmd_remove,
        "reset": cmd_reset,
        "select": cmd_select,
        "info": cmd_info,
        "program": cmd_program,
        "auto": cmd_auto,
    }
    try:
        return handlers[args.command](args)
    except SettingsError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
