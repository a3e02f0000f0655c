"""
Daily Devotional - Month Orchestrator

Runs the day orchestrator for every date of a month, in ascending order.
A failing day is counted and recorded but never stops the loop.
"""

import calendar
import re
from typing import Optional

from core.constants import ProgressKindEnum
from core.logging import get_logger
from core.models import MonthResult, ProgressEvent
from pipeline.day_runner import DayGenerator, ProgressCallback, emit_progress, validate_mode
from pipeline.services import PipelineServices

logger = get_logger(__name__)

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})$")


def parse_month(month: str) -> tuple[int, int]:
    """
    Parse "YYYY-MM" into (year, month).

    Raises:
        ValueError: If the string is malformed or the month is outside 1-12
    """
    match = MONTH_PATTERN.match(month.strip()) if month else None
    if not match:
        raise ValueError(f'Invalid month format: "{month}". Expected YYYY-MM.')

    year, month_num = int(match.group(1)), int(match.group(2))
    if not 1 <= month_num <= 12:
        raise ValueError(f'Invalid month format: "{month}". Expected YYYY-MM.')
    return year, month_num


def days_in_month(year: int, month: int) -> int:
    """Number of days in a month, leap years included."""
    return calendar.monthrange(year, month)[1]


def _forward(on_progress: Optional[ProgressCallback], day: int, total: int) -> ProgressCallback:
    def forward(event: ProgressEvent) -> None:
        if on_progress is not None:
            on_progress(event.model_copy(update={"day": day, "total": total}))
    return forward


async def generate_month(
    services: PipelineServices,
    month: str,
    mode: str,
    on_progress: Optional[ProgressCallback] = None,
    day_generator: Optional[DayGenerator] = None,
) -> MonthResult:
    """
    Generate every day of a month.

    An invalid month string fails immediately with zero days attempted:
    {generated: 0, failed: 1, skipped: 0, failed_dates: [month]}.
    Days that were already complete count as skipped.

    Raises:
        ValueError: On an unknown mode
    """
    mode = validate_mode(mode)

    try:
        year, month_num = parse_month(month)
    except ValueError as e:
        emit_progress(on_progress, "parse_month", str(e), kind=ProgressKindEnum.ERROR, error=str(e))
        return MonthResult(generated=0, failed=1, skipped=0, failed_dates=[month])

    generator = day_generator or DayGenerator(services)
    total = days_in_month(year, month_num)
    result = MonthResult()

    for day in range(1, total + 1):
        date = f"{year:04d}-{month_num:02d}-{day:02d}"
        emit_progress(
            on_progress,
            "starting",
            f"Starting day {day}/{total}: {date}",
            day=day,
            total=total,
        )

        try:
            day_result = await generator.run(date, mode, _forward(on_progress, day, total))
        except Exception as e:
            # The day orchestrator reports its own failures; this only guards the loop
            logger.exception(f"Day {date} raised")
            emit_progress(
                on_progress,
                "fatal",
                f"Pipeline failed for {date}: {e}",
                kind=ProgressKindEnum.ERROR,
                error=str(e),
                day=day,
                total=total,
            )
            result.failed += 1
            result.failed_dates.append(date)
            continue

        if not day_result.success:
            result.failed += 1
            result.failed_dates.append(date)
        elif day_result.already_complete:
            result.skipped += 1
        else:
            result.generated += 1

    summary = (
        f"Month {month} complete: {result.generated} generated, "
        f"{result.failed} failed, {result.skipped} skipped"
    )
    emit_progress(on_progress, "month_complete", summary, kind=ProgressKindEnum.COMPLETE)
    return result
