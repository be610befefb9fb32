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

"""Iteration over the occurrences of a single recurrence rule.

The iterator walks the rule period by period (a year for FREQ=YEARLY, a
month for FREQ=MONTHLY, and so on). For every period the full, sorted list
of candidate date-times is computed from the BY-parts, BYSETPOS is applied
to it, and the candidates are handed out one by one. The cursor is just the
period and the position within its candidate list, which makes it cheap to
save and restore.
"""

import logging
from typing import Optional

from .caltime import (
    MAX_YEAR,
    CalendarTime,
    day_of_year_of,
    days_in_month,
    days_in_year,
    from_ordinal,
    iso_week_of,
    to_ordinal,
    weekday_of,
    weeks_in_year,
)
from .duration import SECONDS_PER_DAY
from .recur import ByPart, Frequency, MalformedRule, RecurrenceRule, decode_weekday
from .timezones import TimezoneRegistry

# Number of consecutive periods without any candidates after which a rule is
# considered unable to ever produce another occurrence.
DEFAULT_MAX_EMPTY_PERIODS = 10000

_UNIT_SECONDS = {
    Frequency.WEEKLY: 7 * SECONDS_PER_DAY,
    Frequency.DAILY: SECONDS_PER_DAY,
    Frequency.HOURLY: 3600,
    Frequency.MINUTELY: 60,
    Frequency.SECONDLY: 1,
}

_MAX_SECONDS = to_ordinal(MAX_YEAR, 1, 1) * SECONDS_PER_DAY


class NonProgressing(Exception):
    def __init__(self, rule: RecurrenceRule, empty_periods: int) -> None:
        super().__init__(
            f"Rule {rule} produced no candidates in {empty_periods} "
            "consecutive periods"
        )
        self.rule = rule
        self.empty_periods = empty_periods


def _seconds_to_fields(secs: int) -> tuple[int, int, int, int, int, int]:
    days, remainder = divmod(secs, SECONDS_PER_DAY)
    (year, month, day) = from_ordinal(days)
    hour, remainder = divmod(remainder, 3600)
    minute, second = divmod(remainder, 60)
    return (year, month, day, hour, minute, second)


def _fields_to_seconds(fields) -> int:
    (year, month, day, hour, minute, second) = fields
    return (
        to_ordinal(year, month, day) * SECONDS_PER_DAY
        + hour * 3600
        + minute * 60
        + second
    )


class RuleIterator:
    """Produces the occurrences of a rule in ascending order.

    next() returns None once the rule is exhausted (COUNT reached, UNTIL
    passed, or the end of the supported calendar range). The iterator is
    also a regular Python iterator.
    """

    def __init__(
        self,
        rule: RecurrenceRule,
        dtstart: CalendarTime,
        max_empty_periods: Optional[int] = None,
    ) -> None:
        if dtstart.is_date and rule.freq.is_sub_daily:
            raise MalformedRule(
                f"FREQ={rule.freq.name} can not be used with a DATE start"
            )
        self.rule = rule
        self.dtstart = dtstart.clone()
        if max_empty_periods is None:
            max_empty_periods = DEFAULT_MAX_EMPTY_PERIODS
        self.max_empty_periods = max_empty_periods
        self.last: Optional[CalendarTime] = None
        self.occurrence_number = 0
        self.completed = False
        self._period = self._initial_period()
        self._period_index = 0
        self._candidates: Optional[list[tuple[int, ...]]] = None
        self._init_parts()

    def __repr__(self) -> str:
        return "<{}({!r}, dtstart={}, occurrence_number={})>".format(
            type(self).__name__, self.rule, self.dtstart, self.occurrence_number
        )

    def __iter__(self):
        return self

    def __next__(self) -> CalendarTime:
        ret = self.next()
        if ret is None:
            raise StopIteration
        return ret

    def _init_parts(self) -> None:
        rule = self.rule
        start = self.dtstart
        freq = rule.freq

        def part(kind):
            values = rule.get_part(kind)
            return tuple(sorted(set(values))) if values else None

        self._bymonth = part(ByPart.BYMONTH)
        self._byweekno = part(ByPart.BYWEEKNO)
        self._byyearday = part(ByPart.BYYEARDAY)
        self._bymonthday = part(ByPart.BYMONTHDAY)
        self._bysetpos = part(ByPart.BYSETPOS)
        byday = rule.get_part(ByPart.BYDAY)
        self._byday = [decode_weekday(v) for v in byday] if byday else None

        if not (self._byweekno or self._byyearday or self._bymonthday or self._byday):
            if freq == Frequency.YEARLY:
                if not self._bymonth:
                    self._bymonth = (start.month,)
                self._bymonthday = (start.day,)
            elif freq == Frequency.MONTHLY:
                self._bymonthday = (start.day,)
            elif freq == Frequency.WEEKLY:
                self._byday = [(start.day_of_week(), 0)]

        self._byhour = part(ByPart.BYHOUR)
        if self._byhour is None and freq.value > Frequency.HOURLY.value:
            self._byhour = (start.hour,)
        self._byminute = part(ByPart.BYMINUTE)
        if self._byminute is None and freq.value > Frequency.MINUTELY.value:
            self._byminute = (start.minute,)
        self._bysecond = part(ByPart.BYSECOND)
        if self._bysecond is None and freq.value > Frequency.SECONDLY.value:
            self._bysecond = (start.second,)

    def _initial_period(self) -> tuple[int, int, int, int, int, int]:
        s = self.dtstart
        freq = self.rule.freq
        if freq == Frequency.YEARLY:
            return (s.year, 1, 1, 0, 0, 0)
        if freq == Frequency.MONTHLY:
            return (s.year, s.month, 1, 0, 0, 0)
        if freq == Frequency.WEEKLY:
            ordinal = to_ordinal(s.year, s.month, s.day)
            ordinal -= (s.day_of_week() - self.rule.wkst) % 7
            return from_ordinal(ordinal) + (0, 0, 0)
        if freq == Frequency.DAILY:
            return (s.year, s.month, s.day, 0, 0, 0)
        if freq == Frequency.HOURLY:
            return (s.year, s.month, s.day, s.hour, 0, 0)
        if freq == Frequency.MINUTELY:
            return (s.year, s.month, s.day, s.hour, s.minute, 0)
        return (s.year, s.month, s.day, s.hour, s.minute, s.second)

    def _advance(self, steps: int = 1) -> None:
        """Move the cursor forward by steps times the rule interval."""
        n = self.rule.interval * steps
        freq = self.rule.freq
        (year, month, day, hour, minute, second) = self._period
        if freq == Frequency.YEARLY:
            fields = (year + n, 1, 1, 0, 0, 0)
        elif freq == Frequency.MONTHLY:
            carry, month = divmod(month - 1 + n, 12)
            fields = (year + carry, month + 1, 1, 0, 0, 0)
        else:
            secs = _fields_to_seconds(self._period) + n * _UNIT_SECONDS[freq]
            if secs >= _MAX_SECONDS:
                fields = (MAX_YEAR, 1, 1, 0, 0, 0)
            else:
                fields = _seconds_to_fields(secs)
        self._period_index = 0
        self._candidates = None
        if fields[0] >= MAX_YEAR:
            logging.debug("Rule %s ran past year %d, stopping.", self.rule, MAX_YEAR)
            self.completed = True
            return
        self._period = fields

    def _skip_to(self, boundary: int) -> None:
        unit = _UNIT_SECONDS[self.rule.freq] * self.rule.interval
        remaining = boundary - _fields_to_seconds(self._period)
        self._advance(max(1, -(-remaining // unit)))

    def _fast_forward_boundary(self) -> Optional[int]:
        """For sub-daily rules, find where the next possible match starts.

        Returns None if the current period may contain candidates.
        """
        freq = self.rule.freq
        if not freq.is_sub_daily:
            return None
        (year, month, day, hour, minute, second) = self._period
        if not self._day_matches(year, month, day):
            return (to_ordinal(year, month, day) + 1) * SECONDS_PER_DAY
        base = _fields_to_seconds((year, month, day, hour, 0, 0))
        if freq != Frequency.HOURLY and self._byhour and hour not in self._byhour:
            return base + 3600
        if (
            freq == Frequency.SECONDLY
            and self._byminute
            and minute not in self._byminute
        ):
            return base + (minute + 1) * 60
        return None

    def _byday_matches(self, year, month, day, weekday, ordinal) -> bool:
        if weekday_of(year, month, day) != weekday:
            return False
        if not ordinal:
            return True
        if self.rule.freq == Frequency.YEARLY and not self._bymonth:
            pos = day_of_year_of(year, month, day)
            length = days_in_year(year)
        else:
            pos = day
            length = days_in_month(month, year)
        if ordinal > 0:
            return (pos - 1) // 7 + 1 == ordinal
        return (length - pos) // 7 + 1 == -ordinal

    def _day_matches(self, year: int, month: int, day: int) -> bool:
        if self._bymonth and month not in self._bymonth:
            return False
        if self._byweekno:
            (week_year, week) = iso_week_of(year, month, day, self.rule.wkst)
            if (
                week not in self._byweekno
                and week - weeks_in_year(week_year, self.rule.wkst) - 1
                not in self._byweekno
            ):
                return False
        if self._byyearday:
            doy = day_of_year_of(year, month, day)
            if (
                doy not in self._byyearday
                and doy - days_in_year(year) - 1 not in self._byyearday
            ):
                return False
        if self._bymonthday:
            if (
                day not in self._bymonthday
                and day - days_in_month(month, year) - 1 not in self._bymonthday
            ):
                return False
        if self._byday:
            if not any(
                self._byday_matches(year, month, day, weekday, ordinal)
                for (weekday, ordinal) in self._byday
            ):
                return False
        return True

    def _period_days(self) -> list[tuple[int, int, int]]:
        freq = self.rule.freq
        (year, month, day) = self._period[:3]
        if freq == Frequency.YEARLY:
            months = self._bymonth or range(1, 13)
            return [
                (year, m, d) for m in months for d in range(1, days_in_month(m, year) + 1)
            ]
        if freq == Frequency.MONTHLY:
            if self._bymonth and month not in self._bymonth:
                return []
            return [(year, month, d) for d in range(1, days_in_month(month, year) + 1)]
        if freq == Frequency.WEEKLY:
            ordinal = to_ordinal(year, month, day)
            return [from_ordinal(ordinal + i) for i in range(7)]
        return [(year, month, day)]

    def _period_times(self) -> list[tuple[int, int, int]]:
        if self.dtstart.is_date:
            return [(0, 0, 0)]
        freq = self.rule.freq
        (hour, minute, second) = self._period[3:]

        def values(fixed, value, by):
            if fixed:
                return [value] if not by or value in by else []
            return by

        hours = values(freq.value <= Frequency.HOURLY.value, hour, self._byhour)
        minutes = values(freq.value <= Frequency.MINUTELY.value, minute, self._byminute)
        seconds = values(freq == Frequency.SECONDLY, second, self._bysecond)
        return [(h, m, s) for h in hours for m in minutes for s in seconds]

    def _expand_period(self) -> list[tuple[int, ...]]:
        """Compute the sorted candidates of the current period."""
        days = [d for d in self._period_days() if self._day_matches(*d)]
        if not days:
            return []
        times = self._period_times()
        candidates = sorted({d + t for d in days for t in times})
        if self._bysetpos and candidates:
            n = len(candidates)
            selected = set()
            for pos in self._bysetpos:
                idx = pos - 1 if pos > 0 else n + pos
                if 0 <= idx < n:
                    selected.add(idx)
            candidates = [candidates[i] for i in sorted(selected)]
        return candidates

    def _count_empty(self, empty: int) -> int:
        empty += 1
        if empty > self.max_empty_periods:
            logging.warning(
                "Rule %s produced nothing for %d periods, giving up.",
                self.rule,
                empty,
            )
            raise NonProgressing(self.rule, empty)
        return empty

    def _make_time(self, fields) -> CalendarTime:
        return CalendarTime(
            *fields, is_date=self.dtstart.is_date, zone=self.dtstart.zone
        )

    def next(self) -> Optional[CalendarTime]:
        """Return the next occurrence, or None if there are no more."""
        empty = 0
        count = self.rule.count
        until = self.rule.until
        while not self.completed:
            if count is not None and self.occurrence_number >= count:
                self.completed = True
                break
            if self._candidates is None:
                boundary = self._fast_forward_boundary()
                if boundary is not None:
                    empty = self._count_empty(empty)
                    self._skip_to(boundary)
                    continue
                self._candidates = self._expand_period()
            while self._period_index < len(self._candidates):
                fields = self._candidates[self._period_index]
                self._period_index += 1
                occurrence = self._make_time(fields)
                if occurrence.compare(self.dtstart) < 0:
                    continue
                if not occurrence.exists():
                    logging.debug(
                        "Skipping nonexistent local time %s in %s.",
                        occurrence,
                        occurrence.zone.tzid,
                    )
                    continue
                if until is not None and occurrence.compare(until) > 0:
                    self.completed = True
                    return None
                self.occurrence_number += 1
                self.last = occurrence
                return occurrence.clone()
            if not self._candidates:
                empty = self._count_empty(empty)
            self._advance()
        return None

    def clone(self) -> "RuleIterator":
        ret = RuleIterator(self.rule, self.dtstart, self.max_empty_periods)
        ret.last = self.last.clone() if self.last is not None else None
        ret.occurrence_number = self.occurrence_number
        ret.completed = self.completed
        ret._period = self._period
        ret._period_index = self._period_index
        return ret

    def to_dict(self) -> dict:
        """Convert the iterator state into plain data.

        The result can be passed to from_dict() to continue iteration where
        this iterator left off.
        """
        return {
            "rule": self.rule.to_dict(),
            "dtstart": self.dtstart.to_json(),
            "last": self.last.to_json() if self.last is not None else None,
            "occurrence_number": self.occurrence_number,
            "completed": self.completed,
            "period": list(self._period),
            "period_index": self._period_index,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        registry: Optional[TimezoneRegistry] = None,
        rule: Optional[RecurrenceRule] = None,
        max_empty_periods: Optional[int] = None,
    ) -> "RuleIterator":
        """Restore an iterator saved with to_dict().

        Args:
          data: Output of to_dict()
          registry: Registry for resolving the zones of saved times
          rule: Already constructed rule to share, instead of rebuilding it
          max_empty_periods: Override for the empty period limit
        """
        if rule is None:
            rule = RecurrenceRule.from_dict(data["rule"], registry)
        ret = cls(
            rule,
            CalendarTime.from_json(data["dtstart"], registry),
            max_empty_periods=max_empty_periods,
        )
        if data.get("last") is not None:
            ret.last = CalendarTime.from_json(data["last"], registry)
        ret.occurrence_number = data["occurrence_number"]
        ret.completed = data["completed"]
        ret._period = tuple(data["period"])
        ret._period_index = data["period_index"]
        return ret
