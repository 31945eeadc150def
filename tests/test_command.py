from dispenser.command import (
    AckResult,
    AckStatus,
    Command,
    CommandKind,
    MAX_ERROR_MESSAGE_LEN,
)


class TestCommandKind:
    def test_parse_is_case_insensitive(self):
        assert CommandKind.parse("Extend") == CommandKind.EXTEND
        assert CommandKind.parse(" HOME ") == CommandKind.HOME

    def test_unrecognised_names_map_to_unknown(self):
        assert CommandKind.parse("ball_dispenser") == CommandKind.UNKNOWN
        assert CommandKind.parse("") == CommandKind.UNKNOWN


class TestCommand:
    def test_from_payload_full(self):
        cmd = Command.from_payload({"id": 42, "command": "extend", "duration_ms": 500})
        assert cmd == Command(id=42, kind=CommandKind.EXTEND, name="extend", duration_ms=500)

    def test_from_payload_message(self):
        cmd = Command.from_payload({"id": 45, "command": "message", "message": "Hello Device!"})
        assert cmd.kind == CommandKind.MESSAGE
        assert cmd.message == "Hello Device!"
        assert cmd.duration_ms is None

    def test_null_command_means_nothing_pending(self):
        assert Command.from_payload({"command": None}) is None
        assert Command.from_payload({}) is None

    def test_unknown_keeps_original_name(self):
        cmd = Command.from_payload({"id": 47, "command": "ball_dispenser"})
        assert cmd.kind == CommandKind.UNKNOWN
        assert cmd.name == "ball_dispenser"

    def test_resolve_duration(self):
        assert Command(1, CommandKind.EXTEND, "extend", duration_ms=500).resolve_duration(2.0) == 0.5
        assert Command(1, CommandKind.EXTEND, "extend", duration_ms=0).resolve_duration(2.0) == 2.0
        assert Command(1, CommandKind.EXTEND, "extend", duration_ms=-10).resolve_duration(2.0) == 2.0
        assert Command(1, CommandKind.EXTEND, "extend").resolve_duration(3.5) == 3.5

    def test_to_dict_omits_empty_fields(self):
        assert Command(7, CommandKind.HOME, "home").to_dict() == {"id": 7, "command": "home"}


class TestAckResult:
    def test_success_has_empty_error(self):
        assert AckResult.success().to_dict() == {"status": AckStatus.SUCCESS, "error_message": ""}

    def test_failed_keeps_short_message(self):
        result = AckResult.failed(ValueError("gpio write failed"))
        assert result.status == AckStatus.FAILED
        assert result.error_message == "gpio write failed"

    def test_failed_truncates_long_message(self):
        result = AckResult.failed("e" * 5000)
        assert len(result.error_message) == MAX_ERROR_MESSAGE_LEN == 1000
