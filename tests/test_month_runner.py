"""
Tests for pipeline/month_runner.py
"""

import pytest

from core.models import DayResult, MonthResult
from pipeline.day_runner import emit_progress
from pipeline.month_runner import days_in_month, generate_month, parse_month


class FakeDayGenerator:
    """Records invocations; configured dates fail or report already complete."""

    def __init__(self, fail=(), raise_on=(), complete=()):
        self.fail = set(fail)
        self.raise_on = set(raise_on)
        self.complete = set(complete)
        self.dates: list[str] = []

    async def run(self, date, mode, on_progress=None):
        self.dates.append(date)
        emit_progress(on_progress, "create_row", f"Created content row for {date}")
        if date in self.raise_on:
            raise RuntimeError("database is locked")
        if date in self.fail:
            return DayResult(success=False, error="LLM unavailable")
        return DayResult(success=True, already_complete=date in self.complete)


class TestParseMonth:
    def test_valid(self):
        assert parse_month("2026-02") == (2026, 2)
        assert parse_month("2026-2") == (2026, 2)

    @pytest.mark.parametrize("month", ["2026-13", "2026-00", "2026", "26-02", "2026-02-01", "", "feb"])
    def test_invalid(self, month):
        with pytest.raises(ValueError, match="Invalid month format"):
            parse_month(month)


class TestDaysInMonth:
    @pytest.mark.parametrize("year,month,expected", [
        (2026, 2, 28),
        (2028, 2, 29),
        (2100, 2, 28),
        (2000, 2, 29),
        (2026, 4, 30),
        (2026, 12, 31),
    ])
    def test_days(self, year, month, expected):
        assert days_in_month(year, month) == expected


class TestGenerateMonth:
    @pytest.mark.asyncio
    async def test_february_runs_every_day_in_order(self, events):
        generator = FakeDayGenerator(fail={"2026-02-05"})

        result = await generate_month(None, "2026-02", "devotional", events, day_generator=generator)

        assert len(generator.dates) == 28
        assert generator.dates == sorted(generator.dates)
        assert generator.dates[0] == "2026-02-01"
        assert generator.dates[-1] == "2026-02-28"
        assert result == MonthResult(generated=27, failed=1, skipped=0, failed_dates=["2026-02-05"])

    @pytest.mark.asyncio
    async def test_raising_day_does_not_stop_loop(self):
        generator = FakeDayGenerator(raise_on={"2026-02-05"})

        result = await generate_month(None, "2026-02", "devotional", day_generator=generator)

        assert len(generator.dates) == 28
        assert result.failed == 1
        assert result.failed_dates == ["2026-02-05"]
        assert result.generated == 27

    @pytest.mark.asyncio
    async def test_leap_year(self):
        generator = FakeDayGenerator()

        result = await generate_month(None, "2028-02", "affirmation", day_generator=generator)

        assert len(generator.dates) == 29
        assert result.generated == 29

    @pytest.mark.asyncio
    async def test_invalid_month(self, events):
        generator = FakeDayGenerator()

        result = await generate_month(None, "2026-13", "devotional", events, day_generator=generator)

        assert result == MonthResult(generated=0, failed=1, skipped=0, failed_dates=["2026-13"])
        assert generator.dates == []
        assert events.events[-1].kind == "error"

    @pytest.mark.asyncio
    async def test_invalid_mode_raises(self):
        with pytest.raises(ValueError):
            await generate_month(None, "2026-02", "sermon", day_generator=FakeDayGenerator())

    @pytest.mark.asyncio
    async def test_already_complete_days_are_skipped(self):
        generator = FakeDayGenerator(complete={"2026-04-01", "2026-04-02"})

        result = await generate_month(None, "2026-04", "devotional", day_generator=generator)

        assert result.skipped == 2
        assert result.generated == 28
        assert result.failed == 0

    @pytest.mark.asyncio
    async def test_progress_is_annotated(self, events):
        generator = FakeDayGenerator()

        await generate_month(None, "2026-04", "devotional", events, day_generator=generator)

        day_events = [e for e in events.events if e.step == "create_row"]
        assert len(day_events) == 30
        assert (day_events[0].day, day_events[0].total) == (1, 30)
        assert (day_events[-1].day, day_events[-1].total) == (30, 30)

        starting = [e for e in events.events if e.step == "starting"]
        assert len(starting) == 30

        complete = [e for e in events.events if e.kind == "complete"]
        assert len(complete) == 1
        assert complete[0] is events.events[-1]
        assert "30 generated" in complete[0].message


class TestGenerateMonthIntegration:
    @pytest.mark.asyncio
    async def test_rerun_skips_every_day(self, make_services):
        services = make_services()

        first = await generate_month(services, "2026-02", "affirmation")
        second = await generate_month(services, "2026-02", "affirmation")

        assert first == MonthResult(generated=28, failed=0, skipped=0, failed_dates=[])
        assert second == MonthResult(generated=0, failed=0, skipped=28, failed_dates=[])
