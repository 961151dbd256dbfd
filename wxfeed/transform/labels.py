"""Absolute and relative labels for forecast periods.

Absolute labels come from the period's calendar date in its own UTC offset
(``Jan_5_2025_7_PM``). Relative labels count from the current moment
(``Now``, ``_23Hrs``) or from the start of the forecast (``Day1``,
``Night1``). Every label is passed through ``sanitize`` so it can be used
directly as an XML element name.
"""

from datetime import datetime

from wxfeed.transform.tags import sanitize

DAY_START_HOUR = 6
NIGHT_START_HOUR = 18


def date_label(t: datetime) -> str:
    return f"{t.strftime('%b')} {t.day} {t.year}"


def hour_label(t: datetime) -> str:
    hour = t.hour % 12 or 12
    return f"{hour} {'AM' if t.hour < 12 else 'PM'}"


def weekday_abbrev(t: datetime) -> str:
    return t.strftime("%a")


def absolute_hourly_label(t: datetime) -> str:
    return sanitize(f"{date_label(t)} {hour_label(t)}")


def absolute_day_night_label(t: datetime) -> str:
    suffix = "Day" if DAY_START_HOUR <= t.hour < NIGHT_START_HOUR else "Night"
    return sanitize(f"{date_label(t)} {suffix}")


def absolute_daily_label(t: datetime) -> str:
    return sanitize(date_label(t))


def relative_hourly_label(t: datetime, now: datetime) -> str:
    if t <= now:
        return "Now"
    hours = int((t - now).total_seconds() // 3600)
    return sanitize(f"{hours}Hrs")


class DayNightCounter:
    """Assigns Day1, Night1, Day2, ... in period order.

    A night that arrives before any day has been labeled gets no label.
    """

    def __init__(self) -> None:
        self.days = 0
        self.nights = 0

    def next_label(self, is_daytime: bool) -> str | None:
        if is_daytime:
            self.days += 1
            return f"Day{self.days}"
        if self.days == 0:
            return None
        self.nights += 1
        return f"Night{self.nights}"
