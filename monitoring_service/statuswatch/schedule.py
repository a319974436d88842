"""
Cron-style cadence expressions.

Expressions use six fields ``second minute hour day month day_of_week``
or the classic five (``second`` then defaults to ``0``)::

    */5 * * * * *      every 5 seconds
    0 */10 * * * *     every 10 minutes
    0 0 * * 1-5        midnight on weekdays

Day-of-week numbers follow cron (0 and 7 are Sunday). They are rewritten
to weekday names before being handed to APScheduler, whose numbering
starts at Monday.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from apscheduler.triggers.cron import CronTrigger

_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")


def _weekday_name(token: str) -> str:
    number = int(token)
    if number >= len(_WEEKDAYS):
        raise ValueError(f"Day of week out of range: {token}")
    return _WEEKDAYS[number]


def _cron_weekdays(field: str) -> str:
    """Rewrite numeric cron weekdays as names (``1-5`` -> ``mon-fri``)."""
    parts = []
    for part in field.split(","):
        base, slash, step = part.partition("/")
        first, dash, last = base.partition("-")
        if not slash and dash and first == "0" and last.isdigit() and int(last) > 0:
            # sun-<day> would run backwards in a Monday-first week
            tail = "mon" if int(last) == 1 else f"mon-{_weekday_name(last)}"
            parts.append(f"sun,{tail}")
            continue
        base = re.sub(r"\d+", lambda m: _weekday_name(m.group(0)), base)
        parts.append(f"{base}{slash}{step}")
    return ",".join(parts)


@dataclass(frozen=True)
class CronSchedule:
    """A parsed cadence expression with its individual fields."""

    second: str
    minute: str
    hour: str
    day: str
    month: str
    day_of_week: str
    expression: str = ""

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        fields = expression.split()
        if len(fields) == 5:
            fields = ["0", *fields]
        if len(fields) != 6:
            raise ValueError(
                f"Invalid cron expression {expression!r}: expected 5 or 6 fields, got {len(fields)}"
            )

        schedule = cls(*fields, expression=expression.strip())
        # Reject bad field values and impossible dates (31 February) now
        # rather than inside a running trigger
        schedule.next_fire_time(datetime.now(timezone.utc))
        return schedule

    def trigger(self) -> CronTrigger:
        try:
            return CronTrigger(
                second=self.second,
                minute=self.minute,
                hour=self.hour,
                day=self.day,
                month=self.month,
                day_of_week=_cron_weekdays(self.day_of_week),
                timezone=timezone.utc,
            )
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression {self.expression!r}: {exc}") from exc

    def next_fire_time(self, after: datetime) -> datetime:
        """Return the first fire instant strictly later than ``after``."""
        if after.tzinfo is None:
            after = after.replace(tzinfo=timezone.utc)
        # CronTrigger rounds partial seconds up, so one microsecond past
        # ``after`` never matches ``after`` itself
        fire_time = self.trigger().get_next_fire_time(None, after + timedelta(microseconds=1))
        if fire_time is None:
            raise ValueError(f"Cron expression {self.expression!r} never fires")
        return fire_time.astimezone(timezone.utc)


def is_valid_expression(expression: str) -> bool:
    try:
        CronSchedule.parse(expression)
    except ValueError:
        return False
    return True


DAILY_AT_MIDNIGHT = "0 0 0 * * *"
