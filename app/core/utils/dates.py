"""Calendar helpers used by the retention sweeper."""
import calendar
from datetime import datetime


def subtract_months(moment: datetime, months: int) -> datetime:
    """
    Move `moment` back by whole calendar months.
    The day is clamped to the last day of the target month (Mar 31 - 1 -> Feb 28/29).
    """
    if months < 0:
        raise ValueError("months must be non-negative")
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
