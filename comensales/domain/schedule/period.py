"""
Affected-period calculation.

Meal requests close at weekly cutoffs, while an alternative's request
window may open the day before its meal. When a window opens before its
governing cutoff in the same week, the occurrence still open for
requests belongs to next week, so the loaded period must stretch to
cover it.
"""

from __future__ import annotations

from datetime import date, timedelta

import structlog

from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.dates import week_of
from comensales.domain.shared.value_objects import DateRange, DayOfWeek, combine

logger = structlog.get_logger(__name__)


def calculate_affected_period(today: date, config: ResidenceConfig) -> DateRange:
    """
    Compute the inclusive date range the current request cycle can touch.

    Starts from the ISO week of ``today`` and extends it:
    - forward, to next week's occurrence of any slot whose alternative
      window opens before the alternative's request cutoff
    - backward, to the preceding Sunday, when a Monday slot has an
      alternative whose window starts the day before

    Args:
        today: Local calendar date in the residence timezone
        config: Residence schedule snapshot

    Returns:
        DateRange with ``start <= end``

    Example:
        >>> calculate_affected_period(date(2025, 1, 8), empty_config)
        DateRange(start=datetime.date(2025, 1, 6), end=datetime.date(2025, 1, 12))
    """
    week = week_of(today)
    monday = week.start
    start, end = week.start, week.end

    active_alternatives = [a for a in config.alternatives if a.active]

    for schedule in config.active_request_schedules():
        cutoff = combine(schedule.day.in_week(monday), schedule.cutoff_time)

        for alternative in active_alternatives:
            if alternative.request_schedule_id != schedule.id:
                continue

            slot = config.meal_slot(alternative.meal_slot_id)
            if slot is None or slot.day is None:
                logger.debug(
                    "Skipping alternative without a dated slot",
                    alternative_id=alternative.id,
                    meal_slot_id=alternative.meal_slot_id,
                )
                continue

            slot_date = slot.day.in_week(monday)
            window_day = slot_date - timedelta(days=1) if alternative.starts_day_before else slot_date
            window_start = combine(window_day, alternative.window_start)

            if window_start < cutoff:
                occurrence = slot_date + timedelta(days=7)
                if occurrence > end:
                    logger.debug(
                        "Extending period end",
                        alternative_id=alternative.id,
                        request_schedule_id=schedule.id,
                        occurrence=occurrence.isoformat(),
                    )
                    end = occurrence

    preceding_sunday = monday - timedelta(days=1)
    for alternative in active_alternatives:
        if not alternative.starts_day_before:
            continue
        slot = config.meal_slot(alternative.meal_slot_id)
        if slot is not None and slot.day == DayOfWeek.LUNES and preceding_sunday < start:
            logger.debug("Extending period start", alternative_id=alternative.id)
            start = preceding_sunday

    if start > end:
        logger.warning(
            "Conflicting period extensions, falling back to ISO week",
            start=start.isoformat(),
            end=end.isoformat(),
        )
        start, end = week.start, week.end

    return DateRange(start=start, end=end)
