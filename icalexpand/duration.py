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

"""Signed spans of time, as used by DURATION values."""

from datetime import timedelta

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_WEEK = 7 * SECONDS_PER_DAY


class Duration:
    """A signed span of weeks, days, hours, minutes and seconds.

    The individual fields may be denormalized (e.g. 90 seconds); the value
    returned by to_seconds() is what counts.
    """

    __slots__ = ("weeks", "days", "hours", "minutes", "seconds", "is_negative")

    def __init__(
        self,
        weeks: int = 0,
        days: int = 0,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        is_negative: bool = False,
    ) -> None:
        self.weeks = weeks
        self.days = days
        self.hours = hours
        self.minutes = minutes
        self.seconds = seconds
        self.is_negative = is_negative

    def __repr__(self) -> str:
        return "{}({!r})".format(type(self).__name__, self.to_ical())

    def __eq__(self, other):
        if not isinstance(other, Duration):
            return NotImplemented
        return self.to_seconds() == other.to_seconds()

    __hash__ = None  # type: ignore

    def clone(self) -> "Duration":
        return Duration(
            self.weeks,
            self.days,
            self.hours,
            self.minutes,
            self.seconds,
            self.is_negative,
        )

    def to_seconds(self) -> int:
        total = (
            self.seconds
            + SECONDS_PER_MINUTE * self.minutes
            + SECONDS_PER_HOUR * self.hours
            + SECONDS_PER_DAY * self.days
            + SECONDS_PER_WEEK * self.weeks
        )
        if self.is_negative:
            return -total
        return total

    @classmethod
    def from_seconds(cls, seconds: int) -> "Duration":
        """Create a normalized duration from a number of seconds.

        Whole weeks are only used when the day count is a multiple of seven,
        so 8 days stays "P8D" rather than becoming "P1W1D".
        """
        ret = cls()
        ret._set_seconds(seconds)
        return ret

    def _set_seconds(self, seconds: int) -> None:
        self.is_negative = seconds < 0
        remainder = abs(int(seconds))
        days, remainder = divmod(remainder, SECONDS_PER_DAY)
        if days % 7 == 0:
            self.weeks = days // 7
            self.days = 0
        else:
            self.weeks = 0
            self.days = days
        self.hours, remainder = divmod(remainder, SECONDS_PER_HOUR)
        self.minutes, self.seconds = divmod(remainder, SECONDS_PER_MINUTE)

    def normalize(self) -> None:
        """Redistribute the fields without changing to_seconds()."""
        self._set_seconds(self.to_seconds())

    def compare(self, other: "Duration") -> int:
        a = self.to_seconds()
        b = other.to_seconds()
        return (a > b) - (a < b)

    def __lt__(self, other):
        return self.compare(other) < 0

    def __le__(self, other):
        return self.compare(other) <= 0

    def __gt__(self, other):
        return self.compare(other) > 0

    def __ge__(self, other):
        return self.compare(other) >= 0

    def to_timedelta(self) -> timedelta:
        return timedelta(seconds=self.to_seconds())

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> "Duration":
        return cls.from_seconds(int(delta.total_seconds()))

    def to_ical(self) -> str:
        """Format as an RFC 5545 DURATION value, e.g. "-P1DT2H"."""
        if self.to_seconds() == 0:
            return "PT0S"
        ret = "-P" if self.is_negative else "P"
        if self.weeks:
            ret += "%dW" % self.weeks
        if self.days:
            ret += "%dD" % self.days
        if self.hours or self.minutes or self.seconds:
            ret += "T"
            if self.hours:
                ret += "%dH" % self.hours
            if self.minutes:
                ret += "%dM" % self.minutes
            if self.seconds:
                ret += "%dS" % self.seconds
        return ret

    __str__ = to_ical

    def to_json(self) -> dict:
        return {
            "weeks": self.weeks,
            "days": self.days,
            "hours": self.hours,
            "minutes": self.minutes,
            "seconds": self.seconds,
            "isNegative": self.is_negative,
        }

    @classmethod
    def from_json(cls, data: dict) -> "Duration":
        return cls(
            weeks=data.get("weeks", 0),
            days=data.get("days", 0),
            hours=data.get("hours", 0),
            minutes=data.get("minutes", 0),
            seconds=data.get("seconds", 0),
            is_negative=data.get("isNegative", False),
        )
