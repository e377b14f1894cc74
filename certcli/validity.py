import calendar
from datetime import datetime, timedelta, timezone


def now():
    return datetime.now(timezone.utc)


def add_months(when, months):
    """
    Shift `when` by a number of months. If the day of month does not exist in
    the target month it is clamped to that month's last day.
    """
    month_idx = when.year * 12 + (when.month - 1) + months
    year, month = divmod(month_idx, 12)
    month += 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


def expiration_months(months, start=None):
    return add_months(start or now(), months)


def expiration_days(days, start=None):
    return (start or now()) + timedelta(days=days)
