from datetime import datetime, timedelta, timezone
from typing import List, Optional

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger

# crontab numbers weekdays from Sunday (0 or 7); APScheduler numbers them from Monday
CRONTAB_WEEKDAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


class InvalidCronExpressionError(ValueError):
    """Raised when a cron expression is not a valid five-field crontab entry."""


def _weekday_names(field: str) -> str:
    if not any(char.isdigit() for char in field):
        return field
    days: List[str] = []
    for part in field.split(","):
        spec, _, step = part.partition("/")
        if spec == "*":
            start, end = 0, 6
        elif "-" in spec:
            first, last = spec.split("-", 1)
            start, end = int(first), int(last)
        else:
            start = int(spec)
            end = 6 if step else start
        if not 0 <= start <= end <= 7:
            raise ValueError(f"day of week out of range: {part}")
        for day in range(start, end + 1, int(step) if step else 1):
            name = CRONTAB_WEEKDAYS[day % 7]
            if name not in days:
                days.append(name)
    return ",".join(days)


def _restricted(field: str) -> bool:
    return not field.startswith("*")


def parse_cron(expression: str, tz: str = "UTC") -> BaseTrigger:
    """
    Build an APScheduler trigger for a crontab expression.

    crontab fires when either day field matches if both are restricted, while
    CronTrigger requires both, so that case becomes an OrTrigger of two
    schedules that each restrict one of the day fields.
    """
    fields = (expression or "").split()
    if len(fields) != 5:
        raise InvalidCronExpressionError(f"Expected 5 cron fields, got {len(fields)}: {expression!r}")
    minute, hour, day, month, day_of_week = fields
    try:
        weekdays = _weekday_names(day_of_week)
        if _restricted(day) and _restricted(day_of_week):
            return OrTrigger(
                [
                    CronTrigger(minute=minute, hour=hour, day=day, month=month, timezone=tz),
                    CronTrigger(minute=minute, hour=hour, month=month, day_of_week=weekdays, timezone=tz),
                ]
            )
        return CronTrigger(minute=minute, hour=hour, day=day, month=month, day_of_week=weekdays, timezone=tz)
    except ValueError as exc:
        raise InvalidCronExpressionError(f"Invalid cron expression {expression!r}: {exc}") from exc


def next_run_times(expression: str, count: int = 5, start: Optional[datetime] = None, tz: str = "UTC") -> List[datetime]:
    """Upcoming fire times of a cron schedule, for previewing a scheduled workflow."""
    trigger = parse_cron(expression, tz=tz)
    now = start or datetime.now(timezone.utc)
    runs: List[datetime] = []
    previous: Optional[datetime] = None
    while len(runs) < count:
        fire_time = trigger.get_next_fire_time(previous, now)
        if fire_time is None:
            break
        runs.append(fire_time)
        previous = fire_time
        now = fire_time + timedelta(microseconds=1)
    return runs
