"""Simulate an auto-programming station without hardware.

Demonstrates the auto-program flow:
1. Load the profile catalog and pick a profile
2. Arm an AutoProgramController on a DeviceSession
3. Units connect and disconnect; each new one is programmed

Here MockTransport units are attached by hand. With real hardware a
PortWatcher attaches and detaches the session instead:

    cvls-programmer auto "DCR III Remote Emulator" --port /dev/ttyUSB0
"""

from cvls_programmer import (
    AutoProgramController,
    DeviceSession,
    MockTransport,
    ProfileCatalog,
    StatusLog,
)


def main() -> None:
    catalog = ProfileCatalog()
    catalog.select("DCR III Remote Emulator")

    session = DeviceSession()
    status = StatusLog(sink=lambda event: print(event.message))
    controller = AutoProgramController(catalog, session, status)
    session.add_listener(controller.post)
    controller.arm()

    # One unit new enough, one too old for the profile
    for serial_number, firmware in [(1001, "1.20"), (1002, "1.10")]:
        session.attach(
            MockTransport(firmware=firmware, serial_number=serial_number),
            "MOCK",
        )
        controller.process_pending()
        session.detach()
        controller.process_pending()

    controller.disarm()


if __name__ == "__main__":
    main()
