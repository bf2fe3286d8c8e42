"""Next-execution computation for scheduled automation rules."""

import calendar
from datetime import datetime, timedelta

from models.utils import utc_now

_FIXED_INTERVALS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "biweekly": timedelta(days=14),
}


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month is Feb 28 (or 29), never Mar 3.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


class ScheduleCalculator:
    """Pure, calendar-aware schedule arithmetic."""

    @staticmethod
    def next_execution(
        frequency: str,
        reference_time: datetime,
        trigger_type: str = "schedule",
    ) -> datetime:
        """Compute the next execution instant for a rule.

        Args:
            frequency: "daily" | "weekly" | "biweekly" | "monthly"
            reference_time: Instant to count from (time of day is preserved)
            trigger_type: Non-schedule triggers are not time-gated and
                get the current instant back.

        Returns:
            The next execution instant.

        Raises:
            ValueError: Unknown frequency. Rule validation rejects these
                before they reach the calculator.
        """
        if trigger_type != "schedule":
            return utc_now()

        if frequency == "monthly":
            return add_months(reference_time, 1)

        try:
            return reference_time + _FIXED_INTERVALS[frequency]
        except KeyError:
            raise ValueError(f"Unknown frequency: {frequency!r}") from None
