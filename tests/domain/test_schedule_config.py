"""Tests for the stop schedule configuration types.

Verifies:
- Duration totals fold out-of-range fields instead of rejecting them
- Structural validation per schedule type
- The {type, duration, absolute} wire shape
"""

from __future__ import annotations

import pytest

from ytlive.domain.schedule import AbsoluteConfig, DurationConfig, ScheduleConfig
from ytlive.domain.types import ScheduleType
from ytlive.infra.exceptions import ValidationError


class TestDurationConfig:
    def test_total_seconds(self):
        assert DurationConfig(hours=1, minutes=2, seconds=3).total_seconds() == 3723

    def test_out_of_range_fields_fold_into_total(self):
        """90 minutes and 75 seconds are accepted and normalized for display."""
        duration = DurationConfig(hours=0, minutes=90, seconds=75)
        assert duration.total_seconds() == 5475
        assert not duration.in_natural_range
        assert duration.normalized() == DurationConfig(hours=1, minutes=31, seconds=15)
        assert duration.normalized().in_natural_range

    def test_from_dict_accepts_numeric_strings(self):
        assert DurationConfig.from_dict({"hours": "1", "minutes": 2.0}) == DurationConfig(1, 2, 0)

    def test_from_dict_rejects_booleans_and_text(self):
        with pytest.raises(ValidationError):
            DurationConfig.from_dict({"hours": True})
        with pytest.raises(ValidationError):
            DurationConfig.from_dict({"minutes": "ten"})


class TestScheduleConfigValidation:
    def test_manual_is_always_valid(self):
        assert ScheduleConfig.manual().validate().type == ScheduleType.MANUAL

    def test_zero_duration_is_valid(self):
        schedule = ScheduleConfig.for_duration().validate()
        assert schedule.duration.total_seconds() == 0

    def test_duration_without_payload_rejected(self):
        with pytest.raises(ValidationError):
            ScheduleConfig(type=ScheduleType.DURATION).validate()

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            ScheduleConfig.for_duration(hours=0, minutes=-5).validate()

    @pytest.mark.parametrize("fields", [("1", 0, 0), (0, 1.5, 0), (0, 0, True), (0, None, 0)])
    def test_non_integer_fields_rejected(self, fields):
        with pytest.raises(ValidationError, match="must be an integer"):
            ScheduleConfig.for_duration(*fields).validate()

    def test_absolute_requires_timezone(self):
        with pytest.raises(ValidationError, match="timezone"):
            ScheduleConfig.for_absolute("2025-06-01T18:30:00", "").validate()

    def test_absolute_requires_datetime(self):
        with pytest.raises(ValidationError, match="datetime"):
            ScheduleConfig.for_absolute("", "Europe/Berlin").validate()


class TestScheduleConfigWireShape:
    def test_to_dict(self):
        assert ScheduleConfig.for_duration(0, 0, 5).to_dict() == {
            "type": "duration",
            "duration": {"hours": 0, "minutes": 0, "seconds": 5},
            "absolute": None,
        }

    def test_from_dict_none_is_manual(self):
        assert ScheduleConfig.from_dict(None) == ScheduleConfig.manual()

    def test_from_dict_absolute_strips_whitespace(self):
        schedule = ScheduleConfig.from_dict(
            {"type": "absolute", "absolute": {"datetime": " 2025-06-01T18:30 ", "timezone": "Europe/Berlin "}}
        )
        assert schedule.absolute == AbsoluteConfig(datetime="2025-06-01T18:30", timezone="Europe/Berlin")

    def test_from_dict_ignores_payload_for_other_type(self):
        schedule = ScheduleConfig.from_dict(
            {"type": "manual", "duration": {"hours": 1, "minutes": 0, "seconds": 0}}
        )
        assert schedule.duration is None

    def test_from_dict_unknown_type(self):
        with pytest.raises(ValidationError, match="unknown schedule type"):
            ScheduleConfig.from_dict({"type": "weekly"})
