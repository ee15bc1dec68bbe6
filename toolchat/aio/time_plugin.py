from datetime import datetime, timedelta, timezone
from typing import ClassVar, Literal
from ._function import BaseFunctionModel
from .._common import InvocationError

__all__ = [
    "TIME_PLUGIN",
    "TimeFunction",
    "local_now",
    "Date",
    "Today",
    "Now",
    "UtcNow",
    "Time",
    "Year",
    "Month",
    "MonthNumber",
    "Day",
    "DayOfWeek",
    "Hour",
    "HourNumber",
    "Minute",
    "Second",
    "TimeZoneOffset",
    "TimeZoneName",
    "DaysAgo",
    "DateMatchingLastDayName",
]

DATE_FORMAT = "%A, %d %B, %Y"
DATETIME_FORMAT = "%A, %B %d, %Y %I:%M %p"

type DayName = Literal[
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"
]


def local_now() -> datetime:
    """Current local time, timezone aware."""
    return datetime.now().astimezone()


class TimeFunction(BaseFunctionModel):
    model_function_namespace: ClassVar[str] = "TimePlugin"


class Date(TimeFunction):
    """Get the current date, e.g. Sunday, 12 January, 2031"""

    async def model_function_handler(self) -> str:
        return local_now().strftime(DATE_FORMAT)


class Today(TimeFunction):
    """Get the current date, e.g. Sunday, 12 January, 2031"""

    async def model_function_handler(self) -> str:
        return local_now().strftime(DATE_FORMAT)


class Now(TimeFunction):
    """Get the current date and time in the local time zone"""

    async def model_function_handler(self) -> str:
        return local_now().strftime(DATETIME_FORMAT)


class UtcNow(TimeFunction):
    """Get the current UTC date and time"""

    async def model_function_handler(self) -> str:
        return local_now().astimezone(timezone.utc).strftime(DATETIME_FORMAT)


class Time(TimeFunction):
    """Get the current time, e.g. 09:15 PM"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%I:%M %p")


class Year(TimeFunction):
    """Get the current year"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%Y")


class Month(TimeFunction):
    """Get the current month name, e.g. January"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%B")


class MonthNumber(TimeFunction):
    """Get the current month number, e.g. 01"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%m")


class Day(TimeFunction):
    """Get the current day of the month, e.g. 12"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%d")


class DayOfWeek(TimeFunction):
    """Get the current day of the week, e.g. Sunday"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%A")


class Hour(TimeFunction):
    """Get the current clock hour, e.g. 9 PM"""

    async def model_function_handler(self) -> str:
        now = local_now()
        return f"{now.hour % 12 or 12} {now.strftime('%p')}"


class HourNumber(TimeFunction):
    """Get the current clock 24-hour number, e.g. 21"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%H")


class Minute(TimeFunction):
    """Get the minutes on the current hour, e.g. 05"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%M")


class Second(TimeFunction):
    """Get the seconds on the current minute, e.g. 07"""

    async def model_function_handler(self) -> str:
        return local_now().strftime("%S")


class TimeZoneOffset(TimeFunction):
    """Get the local time zone offset from UTC, e.g. +03:00"""

    async def model_function_handler(self) -> str:
        offset = local_now().strftime("%z")
        return f"{offset[:3]}:{offset[3:]}" if offset else "+00:00"


class TimeZoneName(TimeFunction):
    """Get the local time zone name"""

    async def model_function_handler(self) -> str:
        return local_now().tzname() or "UTC"


class DaysAgo(TimeFunction):
    """Get the date a number of days before today, e.g. Sunday, 12 January, 2031"""

    input: int
    """Number of days to subtract from today."""

    async def model_function_handler(self) -> str:
        try:
            day = local_now() - timedelta(days=self.input)
        except OverflowError as e:
            raise InvocationError(f"{self.input} days ago is out of range.") from e
        return day.strftime(DATE_FORMAT)


class DateMatchingLastDayName(TimeFunction):
    """Get the date of the last day with the given name, e.g. Sunday, 7 June, 2031"""

    input: DayName
    """Day name to match, e.g. Sunday."""

    async def model_function_handler(self) -> str:
        today = local_now()
        for back in range(1, 8):
            day = today - timedelta(days=back)
            if day.strftime("%A") == self.input:
                return day.strftime(DATE_FORMAT)
        raise InvocationError(f"No day named {self.input} in the last week.")


TIME_PLUGIN: list[type[TimeFunction]] = [
    Date,
    Today,
    Now,
    UtcNow,
    Time,
    Year,
    Month,
    MonthNumber,
    Day,
    DayOfWeek,
    Hour,
    HourNumber,
    Minute,
    Second,
    TimeZoneOffset,
    TimeZoneName,
    DaysAgo,
    DateMatchingLastDayName,
]
