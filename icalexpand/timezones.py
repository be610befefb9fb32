# icalexpand
# Copyright (C) 2016-2017 Jelmer Vernooĳ <jelmer@jelmer.uk>, et al.
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

"""Timezone handling.

Only the UTC offset of a given time is needed here; where the transition
data comes from (zoneinfo, a VTIMEZONE component, a fixed offset) is up to
whoever constructs the zone.
"""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC_TZID = "UTC"
FLOATING_TZID = "floating"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Offsets wrap around after UTC+14:00, the hour after that is UTC-12:00.
_MAX_OFFSET = 14 * 3600
_MIN_OFFSET = -12 * 3600
_OFFSET_RANGE = _MAX_OFFSET - _MIN_OFFSET + 3600

# tzid given to fixed offset zones that were created without one
_FIXED_OFFSET_TZID = re.compile(r"^UTC([+-])(\d\d):(\d\d)$")


class UnknownTimezone(KeyError):
    def __init__(self, tzid: str) -> None:
        super().__init__(f"Timezone {tzid!r} is not known")
        self.tzid = tzid


class UtcOffset:
    """An offset from UTC, stored as hours and minutes plus a sign."""

    __slots__ = ("hours", "minutes", "factor")

    def __init__(self, hours: int = 0, minutes: int = 0, factor: int = 1) -> None:
        if factor not in (-1, 1):
            raise ValueError(f"invalid factor {factor!r}")
        self.hours = hours
        self.minutes = minutes
        self.factor = factor

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"

    def __eq__(self, other):
        if not isinstance(other, UtcOffset):
            return NotImplemented
        return self.to_seconds() == other.to_seconds()

    __hash__ = None  # type: ignore

    def clone(self) -> "UtcOffset":
        return UtcOffset(self.hours, self.minutes, self.factor)

    def to_seconds(self) -> int:
        return self.factor * (self.hours * 3600 + self.minutes * 60)

    @classmethod
    def from_seconds(cls, seconds: int) -> "UtcOffset":
        """Create an offset from seconds, truncated to the minute."""
        seconds = int(seconds)
        if seconds > _MAX_OFFSET or seconds < _MIN_OFFSET:
            seconds = (seconds - _MIN_OFFSET) % _OFFSET_RANGE + _MIN_OFFSET
        secs = abs(seconds)
        return cls(secs // 3600, (secs % 3600) // 60, -1 if seconds < 0 else 1)

    def compare(self, other: "UtcOffset") -> int:
        a = self.to_seconds()
        b = other.to_seconds()
        return (a > b) - (a < b)

    def to_ical(self) -> str:
        return "%s%02d%02d" % (
            "-" if self.factor < 0 else "+",
            self.hours,
            self.minutes,
        )

    def __str__(self) -> str:
        return "%s%02d:%02d" % (
            "-" if self.factor < 0 else "+",
            self.hours,
            self.minutes,
        )


class Timezone:
    """A zone that can report its UTC offset at a given time."""

    tzid: str

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.tzid!r})>"

    def __str__(self) -> str:
        return self.tzid

    @property
    def is_floating(self) -> bool:
        return False

    def utc_offset(self, tt) -> int:
        """Return the UTC offset in seconds of a wall-clock time in this zone.

        Args:
          tt: A CalendarTime (only its date and time fields are used)
        """
        raise NotImplementedError(self.utc_offset)

    def utc_offset_at_instant(self, unix_seconds: int) -> int:
        """Return the UTC offset in seconds in effect at an instant."""
        raise NotImplementedError(self.utc_offset_at_instant)


class UtcTimezone(Timezone):
    tzid = UTC_TZID

    def utc_offset(self, tt) -> int:
        return 0

    def utc_offset_at_instant(self, unix_seconds):
        return 0


class FloatingTimezone(Timezone):
    """The zone of times that are not bound to any zone.

    Floating times are treated as having a zero offset whenever an instant
    has to be derived from them.
    """

    tzid = FLOATING_TZID

    @property
    def is_floating(self) -> bool:
        return True

    def utc_offset(self, tt) -> int:
        return 0

    def utc_offset_at_instant(self, unix_seconds):
        return 0


UTC_TIMEZONE = UtcTimezone()
FLOATING_TIMEZONE = FloatingTimezone()


class FixedOffsetTimezone(Timezone):
    def __init__(self, offset: UtcOffset, tzid: Optional[str] = None) -> None:
        self.offset = offset.clone()
        if tzid is None:
            tzid = "UTC" + str(offset)
        self.tzid = tzid

    def utc_offset(self, tt) -> int:
        return self.offset.to_seconds()

    def utc_offset_at_instant(self, unix_seconds):
        return self.offset.to_seconds()


class TzinfoTimezone(Timezone):
    """Zone backed by a Python tzinfo (zoneinfo, or icalendar's to_tz())."""

    def __init__(self, tzid: str, tz: tzinfo) -> None:
        self.tzid = tzid
        self.tzinfo = tz

    @classmethod
    def from_zoneinfo(cls, tzid: str) -> "TzinfoTimezone":
        try:
            return cls(tzid, ZoneInfo(tzid))
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise UnknownTimezone(tzid) from exc

    def utc_offset(self, tt) -> int:
        dt = datetime(
            tt.year, tt.month, tt.day, tt.hour, tt.minute, tt.second, tzinfo=self.tzinfo
        )
        offset = dt.utcoffset()
        if offset is None:
            return 0
        return int(offset.total_seconds())

    def utc_offset_at_instant(self, unix_seconds):
        dt = (_EPOCH + timedelta(seconds=unix_seconds)).astimezone(self.tzinfo)
        offset = dt.utcoffset()
        if offset is None:
            return 0
        return int(offset.total_seconds())


class TimezoneRegistry:
    """Caller-owned lookup table from TZID to Timezone.

    Populate it up front, then freeze() it before handing it to code that
    expands recurrences.
    """

    def __init__(self, zones=None, use_zoneinfo: bool = True) -> None:
        self._zones: dict[str, Timezone] = {}
        self._frozen = False
        self.use_zoneinfo = use_zoneinfo
        for zone in zones or []:
            self.register(zone)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({sorted(self._zones)!r})"

    def __contains__(self, tzid: str) -> bool:
        return self.has(tzid)

    def __iter__(self):
        return iter(self._zones.values())

    def __len__(self) -> int:
        return len(self._zones)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self):
        if self._frozen:
            raise RuntimeError("timezone registry is read-only")

    def register(self, zone: Timezone, name: Optional[str] = None) -> None:
        self._check_mutable()
        if name is None:
            name = zone.tzid
        self._zones[name] = zone

    def remove(self, tzid: str) -> Timezone:
        self._check_mutable()
        try:
            return self._zones.pop(tzid)
        except KeyError as exc:
            raise UnknownTimezone(tzid) from exc

    def has(self, tzid: str) -> bool:
        return tzid in self._zones

    def get(self, tzid: str) -> Timezone:
        """Look up a zone.

        Args:
          tzid: Timezone identifier
        Raises:
          UnknownTimezone: if the zone is neither built in, registered, a
            fixed offset name such as "UTC+05:30", nor (when use_zoneinfo
            is set) an IANA zone name
        """
        if tzid == UTC_TZID or tzid == "Z":
            return UTC_TIMEZONE
        if tzid == FLOATING_TZID:
            return FLOATING_TIMEZONE
        try:
            return self._zones[tzid]
        except KeyError:
            pass
        m = _FIXED_OFFSET_TZID.match(tzid)
        if m:
            factor = -1 if m.group(1) == "-" else 1
            return FixedOffsetTimezone(
                UtcOffset(int(m.group(2)), int(m.group(3)), factor)
            )
        if not self.use_zoneinfo:
            raise UnknownTimezone(tzid)
        return TzinfoTimezone.from_zoneinfo(tzid)


def resolve_timezone(tzid: str, registry: Optional[TimezoneRegistry] = None) -> Timezone:
    """Find the zone for a tzid, falling back to zoneinfo."""
    if registry is None:
        registry = TimezoneRegistry()
    return registry.get(tzid)
