# icalexpand
# Copyright (C) 2017 Jelmer Vernooĳ <jelmer@jelmer.uk>, et al.
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; version 3
# of the License or (at your option) any later version of
# the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston,
# MA  02110-1301, USA.

"""Calendar date/time values and Gregorian calendar arithmetic."""

import enum
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from .duration import SECONDS_PER_DAY, Duration
from .timezones import (
    FLOATING_TIMEZONE,
    UTC_TIMEZONE,
    Timezone,
    TimezoneRegistry,
    TzinfoTimezone,
    resolve_timezone,
)

MIN_YEAR = 1
MAX_YEAR = 9999


class Weekday(enum.IntEnum):
    """Days of the week, numbered the way iCalendar tools number them."""

    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7


DEFAULT_WEEK_START = Weekday.MONDAY

_DAYS_IN_MONTH = [0, 31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
_DAYS_BEFORE_MONTH = [0, 0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334]

# Proleptic Gregorian ordinal of 1970-01-01, as date.toordinal() counts.
_EPOCH_ORDINAL = 719163


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(month: int, year: int) -> int:
    if month == 2 and is_leap_year(year):
        return 29
    return _DAYS_IN_MONTH[month]


def days_in_year(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def to_ordinal(year: int, month: int, day: int) -> int:
    """Day number with 0001-01-01 as day 1, like date.toordinal().

    Works for any year, so that intermediate values during normalization
    may fall outside the range date supports.
    """
    y = year - 1
    days = 365 * y + y // 4 - y // 100 + y // 400
    days += _DAYS_BEFORE_MONTH[month]
    if month > 2 and is_leap_year(year):
        days += 1
    return days + day


def from_ordinal(ordinal: int) -> tuple[int, int, int]:
    d = date.fromordinal(ordinal)
    return (d.year, d.month, d.day)


def weekday_of_ordinal(ordinal: int) -> Weekday:
    # Ordinal 1 (0001-01-01) was a Monday.
    return Weekday(ordinal % 7 + 1)


def weekday_of(year: int, month: int, day: int) -> Weekday:
    return weekday_of_ordinal(to_ordinal(year, month, day))


def day_of_year_of(year: int, month: int, day: int) -> int:
    doy = _DAYS_BEFORE_MONTH[month] + day
    if month > 2 and is_leap_year(year):
        doy += 1
    return doy


def _week_one_start_ordinal(year: int, week_start: int) -> int:
    # Week one is the week that contains January 4th.
    jan4 = to_ordinal(year, 1, 4)
    return jan4 - (weekday_of_ordinal(jan4) - week_start) % 7


def week_one_starts(year: int, week_start: int = DEFAULT_WEEK_START) -> "CalendarTime":
    """Return the date on which week number one of a year starts."""
    ret = CalendarTime(year, 1, 1, is_date=True)
    ret.day += _week_one_start_ordinal(year, week_start) - to_ordinal(year, 1, 1)
    return ret


def weeks_in_year(year: int, week_start: int = DEFAULT_WEEK_START) -> int:
    return (
        _week_one_start_ordinal(year + 1, week_start)
        - _week_one_start_ordinal(year, week_start)
    ) // 7


def iso_week_of(
    year: int, month: int, day: int, week_start: int = DEFAULT_WEEK_START
) -> tuple[int, int]:
    """Return (week-numbering year, week number) for a date.

    The first week of a year is the one containing its first Thursday
    (for a Monday week start); days before it belong to the last week of
    the previous year, and the last days of December may belong to week one
    of the next year.
    """
    ordinal = to_ordinal(year, month, day)
    if ordinal >= _week_one_start_ordinal(year + 1, week_start):
        return (year + 1, 1)
    start = _week_one_start_ordinal(year, week_start)
    if ordinal < start:
        year -= 1
        start = _week_one_start_ordinal(year, week_start)
    return (year, (ordinal - start) // 7 + 1)


def get_dominical_letter(year: int) -> str:
    """Return the dominical letter(s) of a year, e.g. "GF" for 2024."""
    letters = "GFEDCBA"
    dom = (year + year // 4 + year // 400 - year // 100 - 1) % 7
    if is_leap_year(year):
        return letters[(dom + 6) % 7] + letters[dom]
    return letters[dom]


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


class CalendarTime:
    """A date or date-time in a particular zone.

    Fields can be set to out-of-range values (day 33, hour -1); they are
    normalized by rolling into the neighbouring units the next time any
    field is read. Instances are mutable values: use clone() to keep an
    unmodified copy.
    """

    __slots__ = (
        "_year",
        "_month",
        "_day",
        "_hour",
        "_minute",
        "_second",
        "_is_date",
        "zone",
        "_pending",
    )

    def __init__(
        self,
        year: int = 1970,
        month: int = 1,
        day: int = 1,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        is_date: bool = False,
        zone: Optional[Timezone] = None,
    ) -> None:
        self._year = year
        self._month = month
        self._day = day
        self._hour = hour
        self._minute = minute
        self._second = second
        self._is_date = is_date
        if zone is None:
            zone = FLOATING_TIMEZONE
        self.zone = zone
        self._pending = True

    def _get(self, name):
        if self._pending:
            self._normalize()
        return getattr(self, name)

    def _set(self, name, value):
        setattr(self, name, value)
        self._pending = True

    year = property(
        lambda self: self._get("_year"), lambda self, v: self._set("_year", v)
    )
    month = property(
        lambda self: self._get("_month"), lambda self, v: self._set("_month", v)
    )
    day = property(lambda self: self._get("_day"), lambda self, v: self._set("_day", v))
    hour = property(
        lambda self: self._get("_hour"), lambda self, v: self._set("_hour", v)
    )
    minute = property(
        lambda self: self._get("_minute"), lambda self, v: self._set("_minute", v)
    )
    second = property(
        lambda self: self._get("_second"), lambda self, v: self._set("_second", v)
    )
    is_date = property(
        lambda self: self._get("_is_date"), lambda self, v: self._set("_is_date", v)
    )

    @property
    def is_floating(self) -> bool:
        return self.zone.is_floating

    def _normalize(self) -> None:
        self._pending = False
        carry, self._second = divmod(self._second, 60)
        carry, self._minute = divmod(self._minute + carry, 60)
        day_carry, self._hour = divmod(self._hour + carry, 24)
        carry, month = divmod(self._month - 1, 12)
        ordinal = to_ordinal(self._year + carry, month + 1, 1)
        ordinal += self._day - 1 + day_carry
        self._year, self._month, self._day = from_ordinal(ordinal)
        if self._is_date:
            self._hour = self._minute = self._second = 0

    def normalize(self) -> "CalendarTime":
        if self._pending:
            self._normalize()
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, zone={self.zone.tzid!r})"

    def __str__(self) -> str:
        ret = "%04d-%02d-%02d" % (self.year, self.month, self.day)
        if not self.is_date:
            ret += "T%02d:%02d:%02d" % (self.hour, self.minute, self.second)
            if self.zone is UTC_TIMEZONE:
                ret += "Z"
        return ret

    def to_ical(self) -> str:
        ret = "%04d%02d%02d" % (self.year, self.month, self.day)
        if not self.is_date:
            ret += "T%02d%02d%02d" % (self.hour, self.minute, self.second)
            if self.zone is UTC_TIMEZONE:
                ret += "Z"
        return ret

    def clone(self) -> "CalendarTime":
        self.normalize()
        return CalendarTime(
            self._year,
            self._month,
            self._day,
            self._hour,
            self._minute,
            self._second,
            self._is_date,
            self.zone,
        )

    def reset_to(
        self,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        zone: Optional[Timezone] = None,
    ) -> None:
        self._year = year
        self._month = month
        self._day = day
        self._hour = hour
        self._minute = minute
        self._second = second
        if zone is not None:
            self.zone = zone
        self._pending = True

    def _date_tuple(self):
        return (self.year, self.month, self.day)

    def _wall_tuple(self):
        return (self.year, self.month, self.day, self.hour, self.minute, self.second)

    def _wall_seconds(self) -> int:
        return (
            to_ordinal(self.year, self.month, self.day) * SECONDS_PER_DAY
            + self.hour * 3600
            + self.minute * 60
            + self.second
        )

    def day_of_week(self) -> Weekday:
        return weekday_of(self.year, self.month, self.day)

    def day_of_year(self) -> int:
        return day_of_year_of(self.year, self.month, self.day)

    def start_of_week(self, week_start: int = DEFAULT_WEEK_START) -> "CalendarTime":
        ret = self.clone()
        ret.is_date = True
        ret.day -= (self.day_of_week() - week_start) % 7
        return ret.normalize()

    def end_of_week(self, week_start: int = DEFAULT_WEEK_START) -> "CalendarTime":
        ret = self.start_of_week(week_start)
        ret.day += 6
        return ret.normalize()

    def start_of_month(self) -> "CalendarTime":
        ret = self.clone()
        ret.is_date = True
        ret.day = 1
        return ret.normalize()

    def end_of_month(self) -> "CalendarTime":
        ret = self.clone()
        ret.is_date = True
        ret.day = days_in_month(self.month, self.year)
        return ret.normalize()

    def start_of_year(self) -> "CalendarTime":
        ret = self.clone()
        ret.is_date = True
        ret.month = 1
        ret.day = 1
        return ret.normalize()

    def end_of_year(self) -> "CalendarTime":
        ret = self.clone()
        ret.is_date = True
        ret.month = 12
        ret.day = 31
        return ret.normalize()

    def start_doy_week(self, week_start: int = DEFAULT_WEEK_START) -> int:
        """Day of year of the start of this week; zero or negative if it
        falls in the previous year."""
        return self.day_of_year() - (self.day_of_week() - week_start) % 7

    def week_number(self, week_start: int = DEFAULT_WEEK_START) -> int:
        return iso_week_of(self.year, self.month, self.day, week_start)[1]

    def nth_week_day(self, weekday: int, pos: int) -> int:
        """Find the day of this month that is the pos'th given weekday.

        A pos of 0 or 1 means the first one, negative values count from the
        end of the month. The result can lie outside the month (e.g. the
        fifth Monday of a month with four), in which case it is larger than
        the number of days in the month or smaller than one.
        """
        dim = days_in_month(self.month, self.year)
        if pos >= 0:
            first = weekday_of(self.year, self.month, 1)
            return 1 + (weekday - first) % 7 + (max(pos, 1) - 1) * 7
        last = weekday_of(self.year, self.month, dim)
        return dim - (last - weekday) % 7 + (pos + 1) * 7

    def is_nth_week_day(self, weekday: int, pos: int) -> bool:
        if self.day_of_week() != weekday:
            return False
        if pos == 0:
            return True
        return self.nth_week_day(weekday, pos) == self.day

    def add_duration(self, duration: Duration) -> None:
        """Add a duration to this time, in place."""
        mult = -1 if duration.is_negative else 1
        self.normalize()
        self._second += mult * duration.seconds
        self._minute += mult * duration.minutes
        self._hour += mult * duration.hours
        self._day += mult * (7 * duration.weeks + duration.days)
        self._pending = True

    def adjust(
        self, days: int = 0, hours: int = 0, minutes: int = 0, seconds: int = 0
    ) -> None:
        """Shift this time by the given amounts, in place."""
        self.normalize()
        self._second += seconds
        self._minute += minutes
        self._hour += hours
        self._day += days
        self._pending = True

    def subtract_date(self, other: "CalendarTime") -> Duration:
        """Difference of the wall-clock values, ignoring zones."""
        return Duration.from_seconds(self._wall_seconds() - other._wall_seconds())

    def subtract_date_tz(self, other: "CalendarTime") -> Duration:
        """Difference of the represented instants."""
        return Duration.from_seconds(self.to_unix_time() - other.to_unix_time())

    def compare(self, other: "CalendarTime") -> int:
        """Compare with another time, returning -1, 0 or 1.

        Date values compare by calendar date only. Two times bound to real
        zones compare by instant; if either is floating, the wall-clock
        fields are compared.
        """
        if self.is_date or other.is_date:
            return _cmp(self._date_tuple(), other._date_tuple())
        if self.zone.is_floating or other.zone.is_floating:
            return _cmp(self._wall_tuple(), other._wall_tuple())
        return _cmp(self.to_unix_time(), other.to_unix_time())

    def compare_date_only_tz(self, other: "CalendarTime", zone: Timezone) -> int:
        a = self.convert_to_zone(zone)
        b = other.convert_to_zone(zone)
        return _cmp(a._date_tuple(), b._date_tuple())

    def __eq__(self, other):
        if not isinstance(other, CalendarTime):
            return NotImplemented
        return self.compare(other) == 0

    __hash__ = None  # type: ignore

    def __lt__(self, other):
        return self.compare(other) < 0

    def __le__(self, other):
        return self.compare(other) <= 0

    def __gt__(self, other):
        return self.compare(other) > 0

    def __ge__(self, other):
        return self.compare(other) >= 0

    def utc_offset(self) -> int:
        if self.is_date:
            return 0
        return self.zone.utc_offset(self)

    def to_unix_time(self) -> int:
        return (
            self._wall_seconds()
            - _EPOCH_ORDINAL * SECONDS_PER_DAY
            - self.utc_offset()
        )

    @classmethod
    def from_unix_time(
        cls, seconds: int, zone: Optional[Timezone] = None
    ) -> "CalendarTime":
        if zone is None:
            zone = UTC_TIMEZONE
        seconds = int(seconds) + zone.utc_offset_at_instant(int(seconds))
        days, remainder = divmod(seconds, SECONDS_PER_DAY)
        ret = cls(1970, 1, 1 + days, zone=zone)
        ret.second = remainder
        return ret.normalize()

    def convert_to_zone(self, zone: Timezone) -> "CalendarTime":
        """Return a copy of this time expressed in another zone.

        Dates and floating times keep their fields and only change zone.
        """
        if (
            self.is_date
            or self.zone is zone
            or self.zone.tzid == zone.tzid
            or self.zone.is_floating
            or zone.is_floating
        ):
            ret = self.clone()
            ret.zone = zone
            return ret
        return CalendarTime.from_unix_time(self.to_unix_time(), zone)

    def exists(self) -> bool:
        """Whether this wall-clock time occurs in its zone.

        Local times skipped by a forward DST transition do not exist.
        """
        if self.is_date or self.zone.is_floating:
            return True
        local = CalendarTime.from_unix_time(self.to_unix_time(), self.zone)
        return local._wall_tuple() == self._wall_tuple()

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    def to_datetime(self) -> datetime:
        """Convert to a Python datetime.

        Floating times become naive datetimes; dates become midnight.
        """
        if self.zone.is_floating:
            tz = None
        elif self.zone is UTC_TIMEZONE:
            tz = timezone.utc
        elif isinstance(self.zone, TzinfoTimezone):
            tz = self.zone.tzinfo
        else:
            tz = timezone(timedelta(seconds=self.utc_offset()), self.zone.tzid)
        return datetime(
            self.year, self.month, self.day, self.hour, self.minute, self.second,
            tzinfo=tz,
        )

    @classmethod
    def from_date(cls, d: date, zone: Optional[Timezone] = None) -> "CalendarTime":
        return cls(d.year, d.month, d.day, is_date=True, zone=zone)

    @classmethod
    def from_datetime(
        cls, dt: Union[date, datetime], zone: Optional[Timezone] = None
    ) -> "CalendarTime":
        """Convert a Python date or datetime.

        Args:
          dt: date or datetime; naive datetimes are floating
          zone: Zone to use instead of deriving one from dt.tzinfo
        """
        if not isinstance(dt, datetime):
            return cls.from_date(dt, zone)
        if zone is None:
            zone = zone_for_tzinfo(dt)
        return cls(
            dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, zone=zone
        )

    @classmethod
    def from_day_of_year(cls, day_of_year: int, year: int) -> "CalendarTime":
        ret = cls(year, 1, day_of_year, is_date=True)
        return ret.normalize()

    @classmethod
    def now(cls) -> "CalendarTime":
        return cls.from_datetime(datetime.now(timezone.utc))

    def to_json(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "minute": self.minute,
            "second": self.second,
            "isDate": self.is_date,
            "timezone": self.zone.tzid,
        }

    @classmethod
    def from_json(
        cls, data: dict, registry: Optional[TimezoneRegistry] = None
    ) -> "CalendarTime":
        zone = resolve_timezone(data.get("timezone", "floating"), registry)
        return cls(
            data["year"],
            data["month"],
            data["day"],
            data.get("hour", 0),
            data.get("minute", 0),
            data.get("second", 0),
            is_date=data.get("isDate", False),
            zone=zone,
        ).normalize()


def zone_for_tzinfo(dt: datetime) -> Timezone:
    if dt.tzinfo is None:
        return FLOATING_TIMEZONE
    key = getattr(dt.tzinfo, "key", None) or getattr(dt.tzinfo, "zone", None)
    if dt.tzinfo is timezone.utc or key == "UTC":
        return UTC_TIMEZONE
    if key is None:
        key = dt.tzname() or str(dt.tzinfo)
    return TzinfoTimezone(key, dt.tzinfo)
