"""Tests for CommandSequencer against a mock CVLS unit."""

import pytest

from cvls_programmer.firmware import FirmwareVersion, lowest_selectable
from cvls_programmer.mock import MockTransport
from cvls_programmer.sequencer import CommandSequencer, ProgramStatus
from cvls_programmer.session import DeviceSession
from cvls_programmer.types import LogLevel, Profile

DCR = Profile.from_text("DCR III Remote Emulator", "&o;&l1;&hl0;&m1;&s;", "1.14")


def _connected(mock: MockTransport) -> DeviceSession:
    session = DeviceSession()
    session.attach(mock, "COM3")
    return session


class TestRun:
    def test_sends_every_command_in_order(self):
        mock = MockTransport(firmware="1.20")
        result = CommandSequencer().run(DCR, _connected(mock))

        assert result.ok
        assert mock.write_log == ["&f", "&o", "&l1", "&hl0", "&m1", "&s"]
        assert result.commands_sent == DCR.commands
        assert result.firmware == FirmwareVersion.parse("1.20")
        assert result.required == FirmwareVersion.parse("1.14")

    def test_event_stream(self):
        mock = MockTransport(firmware="1.20", responses={"&l1": "L1"})
        profile = Profile.from_text("Two", "&o;&l1;")
        result = CommandSequencer().run(profile, _connected(mock))

        assert [e.message for e in result.events] == [
            "Sending Command (&o) => Response (OK)",
            "Sending Command (&l1) => Response (L1)",
            "Programming Complete",
        ]
        assert all(e.level is LogLevel.INFO for e in result.events)

    def test_on_event_callback_sees_each_event(self):
        seen = []
        result = CommandSequencer(on_event=seen.append).run(
            DCR, _connected(MockTransport())
        )
        assert seen == result.events

    def test_firmware_equal_to_minimum_passes(self):
        result = CommandSequencer().run(DCR, _connected(MockTransport(firmware="1.14")))
        assert result.ok

    def test_numeric_firmware_gate(self):
        # 1.2 < 1.10 numerically, so a 1.2 unit cannot take a 1.10 profile
        profile = Profile.from_text("P", "&o;", "1.10")
        result = CommandSequencer().run(profile, _connected(MockTransport(firmware="1.2")))
        assert result.status is ProgramStatus.FIRMWARE_TOO_OLD


class TestFirmwareGate:
    def test_below_minimum_sends_nothing(self):
        mock = MockTransport(firmware="1.10")
        profile = Profile.from_text("Newer", "&o;&l1;", "1.15")
        result = CommandSequencer().run(profile, _connected(mock))

        assert result.status is ProgramStatus.FIRMWARE_TOO_OLD
        assert mock.write_log == ["&f"]
        assert result.exchanges == []
        assert [e.message for e in result.events] == [
            "Unit Firmware (V1.10) does not meet the minimum requirement (V1.15)!",
            "Cannot Program Unit!",
        ]
        assert all(e.is_error for e in result.events)

    def test_no_minimum_uses_lowest_selectable(self):
        profile = Profile.from_text("Any", "&o;")
        sequencer = CommandSequencer()
        assert sequencer.required_firmware(profile) == lowest_selectable()

        low = str(lowest_selectable())
        result = sequencer.run(profile, _connected(MockTransport(firmware=low)))
        assert result.ok

    def test_no_minimum_below_lowest_is_refused(self):
        sequencer = CommandSequencer(lowest_firmware=FirmwareVersion.parse("2.0"))
        result = sequencer.run(Profile.from_text("Any", "&o;"), _connected(MockTransport(firmware="1.99")))
        assert result.status is ProgramStatus.FIRMWARE_TOO_OLD


class TestFailures:
    def test_not_connected_is_silent_noop(self):
        result = CommandSequencer().run(DCR, DeviceSession())
        assert result.status is ProgramStatus.NOT_CONNECTED
        assert result.events == []

    @pytest.mark.parametrize("reply", ["", "ERR", "version?"])
    def test_unreadable_firmware(self, reply):
        mock = MockTransport(responses={"&f": reply})
        result = CommandSequencer().run(DCR, _connected(mock))

        assert result.status is ProgramStatus.FIRMWARE_UNREADABLE
        assert mock.write_log == ["&f"]
        assert len(result.events) == 1
        assert result.events[0].is_error

    def test_firmware_query_timeout(self):
        mock = MockTransport(silent={"&f"})
        result = CommandSequencer(timeout=0.01).run(DCR, _connected(mock))
        assert result.status is ProgramStatus.EXCHANGE_FAILED
        assert mock.write_log == ["&f"]

    def test_timeout_mid_sequence_stops_run(self):
        mock = MockTransport(silent={"&hl0"})
        result = CommandSequencer(timeout=0.01).run(DCR, _connected(mock))

        assert result.status is ProgramStatus.EXCHANGE_FAILED
        assert mock.write_log == ["&f", "&o", "&l1", "&hl0"]
        assert result.commands_sent == ["&o", "&l1"]
        assert result.events[-1].is_error
        assert "Programming Complete" not in [e.message for e in result.events]

    def test_disconnect_mid_sequence_stops_run(self):
        mock = MockTransport(fail_after=3)
        session = _connected(mock)
        result = CommandSequencer().run(DCR, session)

        assert result.status is ProgramStatus.EXCHANGE_FAILED
        assert result.commands_sent == ["&o", "&l1"]
        assert not session.is_connected

    def test_profile_is_not_modified(self):
        profile = Profile.from_text("P", "&o;&s;", "1.14")
        CommandSequencer().run(profile, _connected(MockTransport(silent={"&s"})))
        assert profile.commands == ["&o", "&s"]
        assert profile.minimum_firmware == "1.14"


def test_invalid_profile_minimum_is_reported():
    # Only reachable through a hand-edited settings file
    mock = MockTransport()
    profile = Profile.from_text("Broken", "&o;", "latest")
    result = CommandSequencer().run(profile, _connected(mock))

    assert result.status is ProgramStatus.INVALID_PROFILE
    assert mock.write_log == ["&f"]
    assert result.events[0].is_error


def test_non_ascii_command_fails_the_run():
    # Profiles from a hand-edited settings file skip catalog validation
    mock = MockTransport()
    session = _connected(mock)
    profile = Profile("Accent", ["&o", "&é", "&s"])
    result = CommandSequencer().run(profile, session)

    assert result.status is ProgramStatus.EXCHANGE_FAILED
    assert result.commands_sent == ["&o"]
    assert mock.write_log == ["&f", "&o"]
    assert "not ASCII" in result.events[-1].message
    assert session.is_connected
