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

"""Recurrence rules (RRULE values).

See https://datatracker.ietf.org/doc/html/rfc5545#section-3.3.10
"""

import enum
from collections.abc import Iterable, Mapping
from typing import Optional, Union

from .caltime import DEFAULT_WEEK_START, CalendarTime, Weekday
from .timezones import TimezoneRegistry


class MalformedRule(Exception):
    def __init__(self, reason: str, part=None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.part = part


class Frequency(enum.Enum):
    SECONDLY = 0
    MINUTELY = 1
    HOURLY = 2
    DAILY = 3
    WEEKLY = 4
    MONTHLY = 5
    YEARLY = 6

    @property
    def is_sub_daily(self) -> bool:
        return self.value < Frequency.DAILY.value


class ByPart(enum.Enum):
    BYSECOND = "BYSECOND"
    BYMINUTE = "BYMINUTE"
    BYHOUR = "BYHOUR"
    BYDAY = "BYDAY"
    BYMONTHDAY = "BYMONTHDAY"
    BYYEARDAY = "BYYEARDAY"
    BYWEEKNO = "BYWEEKNO"
    BYMONTH = "BYMONTH"
    BYSETPOS = "BYSETPOS"


# (minimum, maximum, whether negative values are allowed)
_PART_RANGES = {
    ByPart.BYSECOND: (0, 59, False),
    ByPart.BYMINUTE: (0, 59, False),
    ByPart.BYHOUR: (0, 23, False),
    ByPart.BYMONTHDAY: (1, 31, True),
    ByPart.BYYEARDAY: (1, 366, True),
    ByPart.BYWEEKNO: (1, 53, True),
    ByPart.BYMONTH: (1, 12, False),
    ByPart.BYSETPOS: (1, 366, True),
}

_ICAL_DAYS = {
    "SU": Weekday.SUNDAY,
    "MO": Weekday.MONDAY,
    "TU": Weekday.TUESDAY,
    "WE": Weekday.WEDNESDAY,
    "TH": Weekday.THURSDAY,
    "FR": Weekday.FRIDAY,
    "SA": Weekday.SATURDAY,
}
_NUMERIC_DAYS = {v: k for (k, v) in _ICAL_DAYS.items()}


def weekday_from_ical(name: str) -> Weekday:
    """Convert "MO", "TU", ... into a Weekday."""
    try:
        return _ICAL_DAYS[name.upper()]
    except KeyError as exc:
        raise MalformedRule(f"invalid weekday {name!r}", ByPart.BYDAY) from exc


def weekday_to_ical(weekday: int) -> str:
    return _NUMERIC_DAYS[Weekday(weekday)]


def encode_weekday(weekday: int, ordinal: int = 0) -> int:
    """Pack a BYDAY entry ("2TU", "-1FR", "MO") into a single integer."""
    if ordinal < 0:
        return -(-ordinal * 8 + weekday)
    return ordinal * 8 + weekday


def decode_weekday(value: int) -> tuple[Weekday, int]:
    """Unpack an integer BYDAY entry into (weekday, ordinal)."""
    ordinal, weekday = divmod(abs(value), 8)
    if value < 0:
        ordinal = -ordinal
    return (Weekday(weekday), ordinal)


def byday_from_ical(value: str) -> int:
    """Parse a single BYDAY entry such as "-1FR" into its encoded form."""
    value = value.strip()
    ordinal = int(value[:-2]) if len(value) > 2 else 0
    return encode_weekday(weekday_from_ical(value[-2:]), ordinal)


def byday_to_ical(value: int) -> str:
    weekday, ordinal = decode_weekday(value)
    if ordinal:
        return "%d%s" % (ordinal, weekday_to_ical(weekday))
    return weekday_to_ical(weekday)


def _check_part(kind: ByPart, values: Iterable[int], freq: Frequency) -> tuple:
    values = tuple(int(v) for v in values)
    if kind == ByPart.BYDAY:
        for v in values:
            try:
                weekday, ordinal = decode_weekday(v)
            except ValueError as exc:
                raise MalformedRule(f"invalid BYDAY value {v!r}", kind) from exc
            if abs(ordinal) > 53:
                raise MalformedRule(f"BYDAY ordinal {ordinal} out of range", kind)
            if ordinal and freq not in (Frequency.MONTHLY, Frequency.YEARLY):
                raise MalformedRule(
                    f"BYDAY ordinals are not allowed with FREQ={freq.name}", kind
                )
        return values
    (lo, hi, negative) = _PART_RANGES[kind]
    for v in values:
        if negative and lo <= -v <= hi:
            continue
        if not (lo <= v <= hi):
            raise MalformedRule(f"{kind.value} value {v} out of range", kind)
    return values


class RecurrenceRule:
    """A parsed recurrence rule.

    The rule is validated when it is constructed and whenever one of its
    parts is changed, so that iterating it can not run into values that
    make no sense for its frequency.
    """

    def __init__(
        self,
        freq: Union[Frequency, str, None],
        interval: int = 1,
        wkst: int = DEFAULT_WEEK_START,
        until: Optional[CalendarTime] = None,
        count: Optional[int] = None,
        parts: Optional[Mapping[ByPart, Iterable[int]]] = None,
    ) -> None:
        if freq is None:
            raise MalformedRule("missing FREQ")
        if isinstance(freq, str):
            try:
                freq = Frequency[freq.upper()]
            except KeyError as exc:
                raise MalformedRule(f"unknown FREQ {freq!r}") from exc
        self.freq = freq
        if interval is None:
            interval = 1
        if interval < 1:
            raise MalformedRule(f"INTERVAL must be positive, not {interval}")
        self.interval = interval
        self.wkst = Weekday(wkst)
        if until is not None and count is not None:
            raise MalformedRule("UNTIL and COUNT are mutually exclusive")
        if count is not None and count < 1:
            raise MalformedRule(f"COUNT must be positive, not {count}")
        self.until = until.clone() if until is not None else None
        self.count = count
        self._parts: dict[ByPart, tuple[int, ...]] = {}
        for kind, values in (parts or {}).items():
            self._parts[kind] = _check_part(kind, values, freq)
        self._validate()

    def _validate(self) -> None:
        freq = self.freq
        parts = self._parts
        if ByPart.BYWEEKNO in parts and freq != Frequency.YEARLY:
            raise MalformedRule("BYWEEKNO is only valid with FREQ=YEARLY", ByPart.BYWEEKNO)
        if ByPart.BYYEARDAY in parts and freq in (
            Frequency.DAILY,
            Frequency.WEEKLY,
            Frequency.MONTHLY,
        ):
            raise MalformedRule(
                f"BYYEARDAY is not valid with FREQ={freq.name}", ByPart.BYYEARDAY
            )
        if ByPart.BYMONTHDAY in parts and freq == Frequency.WEEKLY:
            raise MalformedRule("BYMONTHDAY is not valid with FREQ=WEEKLY", ByPart.BYMONTHDAY)
        if ByPart.BYWEEKNO in parts and any(
            decode_weekday(v)[1] for v in parts.get(ByPart.BYDAY, ())
        ):
            raise MalformedRule(
                "BYDAY ordinals can not be combined with BYWEEKNO", ByPart.BYDAY
            )
        if ByPart.BYSETPOS in parts and len(parts) == 1:
            raise MalformedRule(
                "BYSETPOS requires another BYxxx rule part", ByPart.BYSETPOS
            )
        for kind, values in parts.items():
            if not values:
                raise MalformedRule(f"{kind.value} has no values", kind)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    def __str__(self) -> str:
        ret = ["FREQ=" + self.freq.name]
        if self.count is not None:
            ret.append("COUNT=%d" % self.count)
        if self.until is not None:
            ret.append("UNTIL=" + self.until.to_ical())
        if self.interval != 1:
            ret.append("INTERVAL=%d" % self.interval)
        if self.wkst != DEFAULT_WEEK_START:
            ret.append("WKST=" + weekday_to_ical(self.wkst))
        for kind in ByPart:
            if kind not in self._parts:
                continue
            if kind == ByPart.BYDAY:
                values = [byday_to_ical(v) for v in self._parts[kind]]
            else:
                values = [str(v) for v in self._parts[kind]]
            ret.append(kind.value + "=" + ",".join(values))
        return ";".join(ret)

    @property
    def parts(self) -> dict[ByPart, tuple[int, ...]]:
        return dict(self._parts)

    def has_part(self, kind: ByPart) -> bool:
        return kind in self._parts

    def get_part(self, kind: ByPart) -> tuple[int, ...]:
        return self._parts.get(kind, ())

    def set_part(self, kind: ByPart, values: Iterable[int]) -> None:
        values = _check_part(kind, values, self.freq)
        old = self._parts.get(kind)
        self._parts[kind] = values
        try:
            self._validate()
        except MalformedRule:
            if old is None:
                del self._parts[kind]
            else:
                self._parts[kind] = old
            raise

    def add_part(self, kind: ByPart, value: Union[int, Iterable[int]]) -> None:
        if isinstance(value, int):
            value = [value]
        self.set_part(kind, self.get_part(kind) + tuple(value))

    def clone(self) -> "RecurrenceRule":
        return RecurrenceRule(
            self.freq,
            interval=self.interval,
            wkst=self.wkst,
            until=self.until,
            count=self.count,
            parts=self._parts,
        )

    def is_finite(self) -> bool:
        return self.count is not None or self.until is not None

    def is_by_count(self) -> bool:
        return self.count is not None and self.until is None

    def iterator(self, dtstart: CalendarTime, **kwargs):
        """Create an iterator over the occurrences of this rule.

        Args:
          dtstart: Start of the event (not the start of a search range)
        """
        from .recur_iterator import RuleIterator

        return RuleIterator(self, dtstart, **kwargs)

    def get_next_occurrence(
        self, start: CalendarTime, recurrence_id: CalendarTime
    ) -> Optional[CalendarTime]:
        """Return the first occurrence after recurrence_id.

        This walks the series from its start, so avoid calling it in a loop.
        """
        iterator = self.iterator(start)
        for occurrence in iterator:
            if occurrence.compare(recurrence_id) > 0:
                return occurrence
        return None

    def to_dict(self) -> dict:
        ret: dict = {"freq": self.freq.name, "interval": self.interval}
        if self.wkst != DEFAULT_WEEK_START:
            ret["wkst"] = weekday_to_ical(self.wkst)
        if self.count is not None:
            ret["count"] = self.count
        if self.until is not None:
            ret["until"] = self.until.to_json()
        for kind, values in self._parts.items():
            ret[kind.value.lower()] = list(values)
        return ret

    @classmethod
    def from_dict(
        cls, data: Mapping, registry: Optional[TimezoneRegistry] = None
    ) -> "RecurrenceRule":
        parts = {}
        for kind in ByPart:
            if kind.value.lower() in data:
                parts[kind] = data[kind.value.lower()]
        until = data.get("until")
        if until is not None:
            until = CalendarTime.from_json(until, registry)
        wkst = data.get("wkst")
        return cls(
            data.get("freq"),
            interval=data.get("interval", 1),
            wkst=weekday_from_ical(wkst) if wkst else DEFAULT_WEEK_START,
            until=until,
            count=data.get("count"),
            parts=parts,
        )
