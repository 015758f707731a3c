"""Tests for engine/service.py -- LeaveCalendarEngine over an in-memory source."""

from __future__ import annotations

from datetime import date

import pytest

from conftest import (
    FOUNDERS_DAY,
    TODAY,
    StaticSource,
    make_holiday,
    make_snapshot,
    unavailable_source,
)
from engine import CalendarSource, LeaveCalendarEngine, SaturdayPolicy
from engine.errors import InputError
from engine.models import DayClassification, HolidayType, LeaveType, SaturdayOverride
from engine.validation import UNABLE_TO_VALIDATE


def _calendar_source(*, stale: bool = False) -> StaticSource:
    return StaticSource(
        make_snapshot(
            holidays=[
                make_holiday(date(2026, 3, 20), "Spring Break", holiday_type=HolidayType.STATE),
                make_holiday(FOUNDERS_DAY),
                make_holiday(date(2026, 2, 24), "Campus Sports Day", campus="TRP"),
            ],
            overrides=[SaturdayOverride(date=date(2026, 2, 14), is_holiday=False, campus="TRP")],
            stale=stale,
        )
    )


def _engine(source: StaticSource | None = None, **kwargs) -> LeaveCalendarEngine:
    return LeaveCalendarEngine(source or _calendar_source(), today=lambda: TODAY, **kwargs)


class TestSourceProtocol:
    def test_static_source_is_calendar_source(self) -> None:
        assert isinstance(_calendar_source(), CalendarSource)


class TestQueries:
    async def test_classify_accepts_strings_and_campus(self) -> None:
        engine = _engine()
        assert await engine.classify("2026-02-11") is DayClassification.HOLIDAY
        assert await engine.classify("2026-02-14", "trp") is DayClassification.SATURDAY_WORKING
        assert await engine.is_working_day("2026-02-14", "RMP") is False

    async def test_saturday_policy_passed_through(self) -> None:
        engine = _engine(saturday_policy=SaturdayPolicy.WORKING_UNLESS_HOLIDAY)
        assert await engine.classify("2026-02-07") is DayClassification.SATURDAY_WORKING

    async def test_working_days_between(self) -> None:
        engine = _engine()
        assert await engine.get_working_days_between("2026-02-09", "2026-02-15") == 4
        assert await engine.get_working_days_between("2026-02-09", "2026-02-15", "TRP") == 5

    async def test_blocked_dates(self) -> None:
        blocked = await _engine().blocked_dates_in_range("2026-02-09", "2026-02-15")
        assert blocked == [FOUNDERS_DAY, date(2026, 2, 14), date(2026, 2, 15)]

    async def test_working_day_stepping(self) -> None:
        engine = _engine()
        assert await engine.next_working_day("2026-02-10") == date(2026, 2, 12)
        assert await engine.previous_working_day("2026-02-09") == date(2026, 2, 6)
        assert await engine.add_working_days("2026-02-06", 3) == date(2026, 2, 12)

    async def test_working_days_on_last_day_of_calendar(self) -> None:
        assert await _engine().get_working_days_between("9999-12-31", "9999-12-31") == 1

    async def test_holidays_in_range_filters_campus(self) -> None:
        engine = _engine()
        rmp = await engine.holidays_in_range("2026-02-01", "2026-02-28", "RMP")
        trp = await engine.holidays_in_range("2026-02-01", "2026-02-28", "TRP")
        assert [h.name for h in rmp] == ["Founders Day"]
        assert [h.name for h in trp] == ["Founders Day", "Campus Sports Day"]

    async def test_upcoming_holidays_sorted(self) -> None:
        upcoming = await _engine().upcoming_holidays(days_ahead=60, campus="TRP")
        assert [h.date for h in upcoming] == [
            FOUNDERS_DAY,
            date(2026, 2, 24),
            date(2026, 3, 20),
        ]

    async def test_upcoming_holidays_window(self) -> None:
        upcoming = await _engine().upcoming_holidays(days_ahead=5)
        assert upcoming == []

    async def test_holidays_by_type(self) -> None:
        engine = _engine()
        state = await engine.holidays_by_type("state", 2026)
        assert [h.name for h in state] == ["Spring Break"]
        assert await engine.holidays_by_type(HolidayType.NATIONAL) == []

    async def test_holidays_by_unknown_type(self) -> None:
        with pytest.raises(InputError):
            await _engine().holidays_by_type("galactic")


class TestValidateLeaveRequest:
    async def test_weekend_sandwich_rejected(self) -> None:
        result = await _engine().validate_leave_request("2026-02-06", "2026-02-09", "Leave")

        assert result.is_valid is False
        assert result.errors == [
            "Cannot take leave on both Friday (06/02/2026) and Monday (09/02/2026) "
            "as it creates continuous leave around the weekend"
        ]
        assert any("07/02/2026, 08/02/2026" in w for w in result.warnings)

    async def test_holiday_sandwich_rejected(self) -> None:
        result = await _engine().validate_leave_request(
            date(2026, 2, 10), date(2026, 2, 12), LeaveType.ON_DUTY
        )

        assert result.is_valid is False
        assert "continuous leave around Founders Day (11/02/2026)" in result.errors[0]
        assert result.warnings[0] == (
            "Your leave request includes a holiday: Founders Day (11/02/2026). "
            "Consider adjusting your dates."
        )

    async def test_single_holiday_is_valid_with_warning(self) -> None:
        result = await _engine().validate_leave_request(FOUNDERS_DAY, None, "Leave")

        assert result.is_valid is True
        assert result.errors == []
        assert len(result.warnings) == 1
        assert "Founders Day (11/02/2026)" in result.warnings[0]

    async def test_plain_working_days_valid(self) -> None:
        result = await _engine().validate_leave_request("2026-02-03", "2026-02-05", "Leave")
        assert result.to_dict() == {"is_valid": True, "errors": [], "warnings": []}

    async def test_permission_skips_sandwich_check(self) -> None:
        result = await _engine().validate_leave_request("2026-02-06", "2026-02-09", "Permission")
        assert result.is_valid is True
        assert result.warnings

    async def test_multiple_holidays_warning(self) -> None:
        result = await _engine().validate_leave_request(
            "2026-02-11", "2026-02-24", "Permission", "TRP"
        )
        assert any(w.startswith("Your leave request includes holidays:") for w in result.warnings)

    async def test_compensation_always_valid(self) -> None:
        source = unavailable_source()
        result = await _engine(source).validate_leave_request("2026-01-04", "2026-01-01", "Compensation")
        assert result.is_valid is True
        assert result.errors == []
        assert source.calls == 0

    async def test_past_date(self) -> None:
        result = await _engine().validate_leave_request("2026-01-28", "2026-01-28", "Leave")
        assert result.is_valid is False
        assert "Cannot request leave for past dates" in result.errors

    async def test_from_after_to(self) -> None:
        result = await _engine().validate_leave_request("2026-02-12", "2026-02-10", "Leave")
        assert result.is_valid is False
        assert result.errors == ["From date cannot be after to date"]

    async def test_span_limit(self) -> None:
        result = await _engine().validate_leave_request("2026-03-02", "2026-12-31", "Leave")
        assert result.is_valid is False
        assert any("exceeding the maximum" in e for e in result.errors)

    async def test_bad_date_and_leave_type(self) -> None:
        engine = _engine()
        bad_date = await engine.validate_leave_request("02/10/2026", None, "Leave")
        bad_type = await engine.validate_leave_request("2026-02-10", None, "Sabbatical")
        assert bad_date.is_valid is False and "YYYY-MM-DD" in bad_date.errors[0]
        assert bad_type.is_valid is False and "Unknown leave type" in bad_type.errors[0]

    async def test_permission_time_policy(self) -> None:
        engine = _engine()
        short = await engine.validate_leave_request(
            "2026-02-10", None, "Permission", from_time="09:00", to_time="09:05"
        )
        long = await engine.validate_leave_request(
            "2026-02-10", None, "Permission", from_time="09:00", to_time="11:30"
        )
        ok = await engine.validate_leave_request(
            "2026-02-10", None, "Permission", from_time="09:00", to_time="10:00"
        )
        assert short.errors == ["Permission duration must be at least 10 minutes"]
        assert long.errors == ["Permission duration cannot exceed 2 hours"]
        assert ok.is_valid is True

    async def test_fail_closed_when_store_down(self) -> None:
        result = await _engine(unavailable_source()).validate_leave_request(
            "2026-02-10", None, "Leave"
        )
        assert result.is_valid is False
        assert result.errors == [UNABLE_TO_VALIDATE]

    async def test_fail_open_when_configured(self) -> None:
        result = await _engine(unavailable_source(), fail_open=True).validate_leave_request(
            "2026-02-10", None, "Leave"
        )
        assert result.is_valid is True
        assert result.errors == []
        assert "unavailable" in result.warnings[0]

    async def test_fail_open_keeps_input_errors(self) -> None:
        result = await _engine(unavailable_source(), fail_open=True).validate_leave_request(
            "2026-01-28", None, "Leave"
        )
        assert result.is_valid is False
        assert result.errors == ["Cannot request leave for past dates"]

    async def test_stale_snapshot_warns(self) -> None:
        result = await _engine(_calendar_source(stale=True)).validate_leave_request(
            "2026-02-10", None, "Leave"
        )
        assert result.is_valid is True
        assert result.warnings == [
            "Holiday calendar could not be refreshed; the last known calendar was used."
        ]

    async def test_skipped_records_warn(self) -> None:
        source = StaticSource(
            make_snapshot(holidays=[make_holiday(FOUNDERS_DAY)], skipped_records=2)
        )
        result = await _engine(source).validate_leave_request("2026-02-10", None, "Leave")
        assert result.is_valid is True
        assert result.warnings == [
            "2 holiday calendar entries could not be read; this request may not reflect "
            "every holiday."
        ]

    async def test_last_day_of_calendar(self) -> None:
        result = await _engine().validate_leave_request("9999-12-30", "9999-12-31", "Leave")
        assert result.to_dict() == {"is_valid": True, "errors": [], "warnings": []}

    async def test_oversized_span_skips_calendar_checks(self) -> None:
        result = await _engine().validate_leave_request("2026-10-19", "3026-10-19", "On Duty")
        assert result.is_valid is False
        assert len(result.errors) == 1
        assert "exceeding the maximum of 90 days" in result.errors[0]
        assert result.warnings == []


class TestComputeDuration:
    async def test_multi_day_leave_uses_calendar(self) -> None:
        source = _calendar_source()
        label = await _engine(source).compute_duration("Leave", "2026-02-09", "2026-02-15")
        assert label == "4 working days (7 total days)"
        assert source.calls == 1

    async def test_campus_working_saturday_counted(self) -> None:
        label = await _engine().compute_duration(
            "On Duty", "2026-02-13", "2026-02-14", campus="TRP"
        )
        assert label == "2 working days"

    async def test_single_day_and_permission_skip_calendar(self) -> None:
        source = unavailable_source()
        engine = _engine(source)
        assert await engine.compute_duration("Leave", "2026-02-10") == "1 day"
        assert (
            await engine.compute_duration(
                "Permission", "2026-02-10", None, from_time="09:00", to_time="10:30"
            )
            == "1h 30m"
        )
        assert await engine.compute_duration("Compensation", None) == "1 day (compensation)"
        assert source.calls == 0
