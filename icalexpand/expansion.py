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

"""Merging of RRULE, RDATE and EXDATE into a single occurrence sequence."""

import logging
from collections.abc import Iterable
from typing import Optional

from .caltime import CalendarTime
from .recur import RecurrenceRule
from .recur_iterator import RuleIterator
from .timezones import TimezoneRegistry


def coerce_to_start(value: CalendarTime, dtstart: CalendarTime) -> CalendarTime:
    """Make an RDATE or RECURRENCE-ID value comparable with the series start.

    DATE values for a DATE-TIME series get the start's time of day and zone;
    DATE-TIME values for an all-day series are truncated to their date.
    """
    ret = value.clone()
    if dtstart.is_date and not ret.is_date:
        ret.is_date = True
    elif ret.is_date and not dtstart.is_date:
        ret.is_date = False
        ret.hour = dtstart.hour
        ret.minute = dtstart.minute
        ret.second = dtstart.second
        ret.zone = dtstart.zone
    return ret.normalize()


def _sorted_times(values: Iterable[CalendarTime], dtstart: CalendarTime):
    return sorted(coerce_to_start(v, dtstart) for v in values)


class OccurrenceExpander:
    """Produces the occurrences of a series in ascending order.

    Candidates come from the rule (if any) and the extra dates; without a
    rule the start date itself is an occurrence. Equal candidates are only
    produced once and candidates equal to an excluded date are dropped.
    """

    def __init__(
        self,
        dtstart: CalendarTime,
        rule: Optional[RecurrenceRule] = None,
        extra_dates: Iterable[CalendarTime] = (),
        excluded_dates: Iterable[CalendarTime] = (),
        max_empty_periods: Optional[int] = None,
    ) -> None:
        self.dtstart = dtstart.clone()
        if rule is not None:
            self.rule_iterator: Optional[RuleIterator] = rule.iterator(
                self.dtstart, max_empty_periods=max_empty_periods
            )
        else:
            self.rule_iterator = None
            extra_dates = list(extra_dates) + [self.dtstart]
        self.extra_dates = _sorted_times(extra_dates, self.dtstart)
        self.extra_index = 0
        # Excluded DATE values keep matching every occurrence on their day.
        self.excluded_dates = sorted(v.clone() for v in excluded_dates)
        self.excluded_index = 0
        self._rule_pending: Optional[CalendarTime] = None
        self.last: Optional[CalendarTime] = None
        self.complete = False

    def __repr__(self) -> str:
        return "<{}(dtstart={}, rule={!r}, complete={!r})>".format(
            type(self).__name__,
            self.dtstart,
            self.rule_iterator.rule if self.rule_iterator else None,
            self.complete,
        )

    def __iter__(self):
        return self

    def __next__(self) -> CalendarTime:
        ret = self.next()
        if ret is None:
            raise StopIteration
        return ret

    def _peek_rule(self) -> Optional[CalendarTime]:
        if (
            self._rule_pending is None
            and self.rule_iterator is not None
            and not self.rule_iterator.completed
        ):
            self._rule_pending = self.rule_iterator.next()
        return self._rule_pending

    def _next_candidate(self) -> Optional[CalendarTime]:
        from_rule = self._peek_rule()
        if self.extra_index < len(self.extra_dates):
            from_extra = self.extra_dates[self.extra_index]
        else:
            from_extra = None
        if from_rule is None and from_extra is None:
            return None
        if from_extra is None or (
            from_rule is not None and from_rule.compare(from_extra) <= 0
        ):
            self._rule_pending = None
            return from_rule
        self.extra_index += 1
        return from_extra

    def _is_excluded(self, candidate: CalendarTime) -> bool:
        # The cursor stays on a match, so that one DATE exclusion can remove
        # several occurrences on the same day.
        while (
            self.excluded_index < len(self.excluded_dates)
            and self.excluded_dates[self.excluded_index].compare(candidate) < 0
        ):
            self.excluded_index += 1
        return (
            self.excluded_index < len(self.excluded_dates)
            and self.excluded_dates[self.excluded_index].compare(candidate) == 0
        )

    def next(self) -> Optional[CalendarTime]:
        """Return the next occurrence, or None once all sources are exhausted."""
        while not self.complete:
            candidate = self._next_candidate()
            if candidate is None:
                self.complete = True
                break
            if self.last is not None and candidate.compare(self.last) <= 0:
                continue
            self.last = candidate
            if self._is_excluded(candidate):
                logging.debug("Skipping excluded occurrence %s.", candidate)
                continue
            return candidate.clone()
        return None

    def to_dict(self) -> dict:
        def times(values):
            return [v.to_json() for v in values]

        return {
            "dtstart": self.dtstart.to_json(),
            "rule_iterator": (
                self.rule_iterator.to_dict() if self.rule_iterator is not None else None
            ),
            "extra_dates": times(self.extra_dates),
            "extra_index": self.extra_index,
            "excluded_dates": times(self.excluded_dates),
            "excluded_index": self.excluded_index,
            "rule_pending": (
                self._rule_pending.to_json() if self._rule_pending is not None else None
            ),
            "last": self.last.to_json() if self.last is not None else None,
            "complete": self.complete,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        registry: Optional[TimezoneRegistry] = None,
        rule: Optional[RecurrenceRule] = None,
        max_empty_periods: Optional[int] = None,
    ) -> "OccurrenceExpander":
        """Restore an expander saved with to_dict().

        Args:
          data: Output of to_dict()
          registry: Registry for resolving the zones of saved times
          rule: Already constructed rule to share with the restored iterator
          max_empty_periods: Override for the empty period limit
        """

        def time(value):
            if value is None:
                return None
            return CalendarTime.from_json(value, registry)

        ret = cls(time(data["dtstart"]))
        if data.get("rule_iterator") is not None:
            ret.rule_iterator = RuleIterator.from_dict(
                data["rule_iterator"],
                registry,
                rule=rule,
                max_empty_periods=max_empty_periods,
            )
        ret.extra_dates = [time(v) for v in data["extra_dates"]]
        ret.extra_index = data["extra_index"]
        ret.excluded_dates = [time(v) for v in data["excluded_dates"]]
        ret.excluded_index = data["excluded_index"]
        ret._rule_pending = time(data.get("rule_pending"))
        ret.last = time(data.get("last"))
        ret.complete = data["complete"]
        return ret
