"""
==============================================================================
Scan Gate and Code Validator Tests
==============================================================================
"""

import pytest

from livescan.scanner.gate import ScanGate
from livescan.scanner.models import RejectReason, ScanEvent
from livescan.utils.validators import CodeValidator


def event_for(raw_text: str, symbology: str = "EAN13") -> ScanEvent:
    return ScanEvent(
        raw_text=raw_text,
        normalized_code=CodeValidator.normalize(raw_text),
        symbology=symbology
    )


class TestCodeValidator:
    """Tests for normalization and length validation."""

    @pytest.mark.parametrize("raw, expected", [
        ("12-34-56", "123456"),
        ("ABC123", "123"),
        (" 123 456 789 ", "123456789"),
        ("", ""),
        ("no digits", ""),
    ])
    def test_normalize(self, raw: str, expected: str):
        assert CodeValidator.normalize(raw) == expected

    def test_accepts_default_lengths(self):
        validator = CodeValidator()
        assert validator.validate("12-34-56") == (True, "123456", None)
        assert validator.is_valid("123456789")

    def test_rejects_other_lengths(self):
        is_valid, code, error = CodeValidator().validate("ABC123")
        assert not is_valid
        assert code == "123"
        assert error == "Code must have 6 or 9 digits, got 3"

    def test_rejects_code_without_digits(self):
        is_valid, code, error = CodeValidator().validate("ABCDEF")
        assert not is_valid
        assert code == ""
        assert error == "Code contains no digits"

    def test_custom_lengths(self):
        validator = CodeValidator([13])
        assert validator.is_valid("7891234567895")
        assert not validator.is_valid("123456")

    def test_empty_lengths_rejected(self):
        with pytest.raises(ValueError):
            CodeValidator([])


class TestScanGate:
    """Tests for the two-stage gate."""

    def test_accepts_valid_code(self):
        result = ScanGate().accept(event_for("12-34-56"), now=0.0)
        assert result.accepted
        assert result.code == "123456"
        assert result.reason is None

    def test_rejects_invalid_length(self):
        result = ScanGate().accept(event_for("ABC123"), now=0.0)
        assert not result.accepted
        assert result.code == "123"
        assert result.reason == RejectReason.VALIDATION_FAILURE
        assert "got 3" in result.message

    def test_debounce_scenario(self):
        gate = ScanGate(debounce_ms=800)

        assert gate.accept(event_for("123456789"), now=0.0).accepted

        duplicate = gate.accept(event_for("123456789"), now=0.5)
        assert not duplicate.accepted
        assert duplicate.reason == RejectReason.DUPLICATE

        assert gate.accept(event_for("123456789"), now=0.9).accepted

    def test_frames_within_window_accept_once(self):
        gate = ScanGate(debounce_ms=800)
        accepted = [
            gate.accept(event_for("123-456"), now=t / 100).accepted
            for t in range(0, 80, 4)
        ]
        assert accepted.count(True) == 1
        assert accepted[0]

    def test_gaps_of_window_accept_each(self):
        gate = ScanGate(debounce_ms=500)
        results = [gate.accept(event_for("123456"), now=i * 0.5).accepted for i in range(5)]
        assert all(results)

    def test_different_code_accepted_immediately(self):
        gate = ScanGate()
        assert gate.accept(event_for("123456"), now=0.0).accepted
        assert gate.accept(event_for("654321"), now=0.01).accepted
        # Window is per last accepted code
        assert gate.accept(event_for("123456"), now=0.02).accepted

    def test_rejected_decodes_do_not_move_window(self):
        gate = ScanGate()
        assert gate.accept(event_for("123456"), now=0.0).accepted
        assert not gate.accept(event_for("12345"), now=0.5).accepted
        assert gate.accept(event_for("123456"), now=0.85).accepted

    def test_reset_forgets_last_code(self):
        gate = ScanGate()
        assert gate.accept(event_for("123456"), now=0.0).accepted
        gate.reset()
        assert gate.accept(event_for("123456"), now=0.1).accepted

    def test_uses_clock_when_now_omitted(self, clock):
        gate = ScanGate(clock=clock)
        assert gate.accept(event_for("123456")).accepted
        clock.now = 0.3
        assert not gate.accept(event_for("123456")).accepted
        clock.now = 1.2
        assert gate.accept(event_for("123456")).accepted

    def test_accepted_codes_are_digits_of_accepted_length(self):
        gate = ScanGate()
        samples = ["12-34-56", "ABC123", "x1y2z3w4v5u6", "123.456.789", "1234567", "a", "9" * 9]
        for i, raw in enumerate(samples):
            result = gate.accept(event_for(raw), now=float(i))
            if result.accepted:
                assert result.code.isdigit()
                assert len(result.code) in {6, 9}

    def test_debounce_window_property(self):
        assert ScanGate(debounce_ms=250).debounce_window == 0.25
