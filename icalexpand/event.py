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

"""Events, their recurrence exceptions and per-occurrence resolution."""

import bisect
import heapq
import logging
from collections.abc import Iterable, Iterator
from typing import Optional

from .caltime import CalendarTime
from .duration import Duration
from .expansion import OccurrenceExpander, coerce_to_start
from .recur import Frequency, RecurrenceRule
from .timezones import UTC_TIMEZONE, Timezone


class InvalidRelation(Exception):
    def __init__(self, reason: str, uid: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.uid = uid


def _recurrence_key(recurrence_id: CalendarTime) -> str:
    """Return the key under which an exception is stored.

    Zoned times are normalized to UTC, so that a RECURRENCE-ID written in
    another zone still finds the occurrence it refers to.
    """
    if recurrence_id.is_date or recurrence_id.is_floating:
        return recurrence_id.to_ical()
    return recurrence_id.convert_to_zone(UTC_TIMEZONE).to_ical()


class OccurrenceDetails:
    """The effective data of a single occurrence.

    Attributes:
      recurrence_id: The occurrence time as produced by the expander
      item: The Event whose fields apply (the base event or an exception)
      start_date: Effective start of the occurrence
      end_date: Effective end of the occurrence
    """

    __slots__ = ("recurrence_id", "item", "start_date", "end_date")

    def __init__(
        self,
        recurrence_id: CalendarTime,
        item: "Event",
        start_date: CalendarTime,
        end_date: CalendarTime,
    ) -> None:
        self.recurrence_id = recurrence_id
        self.item = item
        self.start_date = start_date
        self.end_date = end_date

    def __repr__(self) -> str:
        return "{}(recurrence_id={}, start_date={}, end_date={}, summary={!r})".format(
            type(self).__name__,
            self.recurrence_id,
            self.start_date,
            self.end_date,
            self.summary,
        )

    @property
    def summary(self) -> Optional[str]:
        return self.item.summary


class Event:
    """A (possibly recurring) event.

    Either end_date or duration may be given; the other is derived. With
    neither, all-day events last one day and other events take no time.
    """

    def __init__(
        self,
        uid: str,
        start_date: CalendarTime,
        end_date: Optional[CalendarTime] = None,
        duration: Optional[Duration] = None,
        summary: Optional[str] = None,
        rule: Optional[RecurrenceRule] = None,
        extra_dates: Iterable[CalendarTime] = (),
        excluded_dates: Iterable[CalendarTime] = (),
        recurrence_id: Optional[CalendarTime] = None,
        range_this_and_future: bool = False,
        description: Optional[str] = None,
        location: Optional[str] = None,
        component=None,
    ) -> None:
        self.uid = uid
        self.start_date = start_date
        self._end_date = end_date
        self._duration = duration
        self.summary = summary
        self.description = description
        self.location = location
        self.rule = rule
        self.extra_dates = list(extra_dates)
        self.excluded_dates = list(excluded_dates)
        self.recurrence_id = recurrence_id
        self.range_this_and_future = range_this_and_future
        # The parsed component this event was built from, if any.
        self.component = component
        self.exceptions: dict[str, Event] = {}
        self._range_ids: list[CalendarTime] = []
        self._range_keys: list[str] = []

    def __repr__(self) -> str:
        ret = f"{type(self).__name__}({self.uid!r}, {self.start_date}"
        if self.recurrence_id is not None:
            ret += f", recurrence_id={self.recurrence_id}"
        return ret + ")"

    @property
    def duration(self) -> Duration:
        if self._duration is not None:
            return self._duration
        if self._end_date is not None:
            return self._end_date.subtract_date_tz(self.start_date)
        if self.start_date.is_date:
            return Duration(days=1)
        return Duration()

    @duration.setter
    def duration(self, value: Duration) -> None:
        self._duration = value
        self._end_date = None

    @property
    def end_date(self) -> CalendarTime:
        if self._end_date is not None:
            return self._end_date
        ret = self.start_date.clone()
        ret.add_duration(self.duration)
        return ret.normalize()

    @end_date.setter
    def end_date(self, value: CalendarTime) -> None:
        self._end_date = value
        self._duration = None

    def is_recurring(self) -> bool:
        return self.rule is not None or bool(self.extra_dates)

    def is_recurrence_exception(self) -> bool:
        return self.recurrence_id is not None

    def modifies_future(self) -> bool:
        """Whether this exception has RANGE=THISANDFUTURE."""
        return self.range_this_and_future

    def get_recurrence_types(self) -> set[Frequency]:
        if self.rule is None:
            return set()
        return {self.rule.freq}

    def relate_exception(self, exception: "Event") -> None:
        """Register an exception that overrides one of our occurrences.

        Raises:
          InvalidRelation: if this event is itself an exception, or the
            exception has a different uid or no recurrence id
        """
        if self.is_recurrence_exception():
            raise InvalidRelation(
                "a recurrence exception can not have exceptions of its own",
                self.uid,
            )
        if exception.uid != self.uid:
            raise InvalidRelation(
                f"exception uid {exception.uid!r} does not match {self.uid!r}",
                exception.uid,
            )
        if exception.recurrence_id is None:
            raise InvalidRelation("exception has no recurrence id", exception.uid)
        recurrence_id = coerce_to_start(exception.recurrence_id, self.start_date)
        key = _recurrence_key(recurrence_id)
        self.exceptions[key] = exception
        if key in self._range_keys:
            idx = self._range_keys.index(key)
            del self._range_keys[idx]
            del self._range_ids[idx]
        if exception.modifies_future():
            idx = bisect.bisect_right(self._range_ids, recurrence_id)
            self._range_ids.insert(idx, recurrence_id)
            self._range_keys.insert(idx, key)

    def find_range_exception(self, time: CalendarTime) -> Optional["Event"]:
        """Find the THISANDFUTURE exception in effect at time.

        Returns:
          the exception with the latest recurrence id at or before time, or
          None
        """
        idx = bisect.bisect_right(self._range_ids, time)
        if idx == 0:
            return None
        return self.exceptions[self._range_keys[idx - 1]]

    def get_occurrence_details(self, occurrence: CalendarTime) -> OccurrenceDetails:
        """Work out the effective start and end of an occurrence.

        Args:
          occurrence: An occurrence time produced by iterator()
        """
        item = self.exceptions.get(_recurrence_key(occurrence))
        if item is not None:
            return OccurrenceDetails(
                occurrence.clone(), item, item.start_date.clone(), item.end_date.clone()
            )
        start = occurrence.clone()
        range_item = self.find_range_exception(occurrence)
        if range_item is not None:
            start.add_duration(
                range_item.start_date.subtract_date_tz(range_item.recurrence_id)
            )
            start.normalize()
            end = start.clone()
            end.add_duration(range_item.duration)
            return OccurrenceDetails(
                occurrence.clone(), range_item, start, end.normalize()
            )
        end = start.clone()
        end.add_duration(self.duration)
        return OccurrenceDetails(occurrence.clone(), self, start, end.normalize())

    def iterator(
        self,
        start_time: Optional[CalendarTime] = None,
        max_empty_periods: Optional[int] = None,
    ) -> OccurrenceExpander:
        """Create an expander for the occurrences of this event.

        Args:
          start_time: Series start to use instead of the event's start
        """
        if start_time is None:
            start_time = self.start_date
        return OccurrenceExpander(
            start_time,
            rule=self.rule,
            extra_dates=self.extra_dates,
            excluded_dates=self.excluded_dates,
            max_empty_periods=max_empty_periods,
        )


def _as_instant(t: CalendarTime, zone: Timezone) -> CalendarTime:
    if not t.is_date:
        return t
    ret = t.clone()
    ret.is_date = False
    ret.zone = zone
    return ret


def _overlaps(start, end, range_start, range_end) -> bool:
    zone = range_start.zone
    start = _as_instant(start, zone)
    end = _as_instant(end, zone)
    range_start = _as_instant(range_start, zone)
    range_end = _as_instant(range_end, zone)
    if start.compare(range_end) >= 0:
        return False
    if end.compare(start) <= 0:
        return start.compare(range_start) >= 0
    return end.compare(range_start) > 0


def expand(
    event: Event,
    range_start: CalendarTime,
    range_end: CalendarTime,
    max_occurrences: Optional[int] = None,
    max_empty_periods: Optional[int] = None,
) -> Iterator[CalendarTime]:
    """Yield the occurrences of an event that overlap a time range.

    Args:
      event: Event to expand
      range_start: Start of the range (inclusive)
      range_end: End of the range (exclusive)
      max_occurrences: Stop after yielding this many occurrences
      max_empty_periods: Limit on consecutive rule periods without candidates
    Returns:
      iterator over occurrence times, in ascending order
    """
    expander = event.iterator(max_empty_periods=max_empty_periods)
    limit = _as_instant(range_end, range_start.zone)
    found = 0
    for occurrence in expander:
        if _as_instant(occurrence, range_start.zone).compare(limit) >= 0:
            break
        details = event.get_occurrence_details(occurrence)
        if not _overlaps(details.start_date, details.end_date, range_start, range_end):
            continue
        yield occurrence
        found += 1
        if max_occurrences is not None and found >= max_occurrences:
            logging.debug(
                "Stopping expansion of %s after %d occurrences.", event.uid, found
            )
            break


def iter_occurrences(
    events: Iterable[Event],
    range_start: CalendarTime,
    range_end: CalendarTime,
    max_occurrences: Optional[int] = None,
    max_empty_periods: Optional[int] = None,
) -> Iterator[tuple[Event, CalendarTime]]:
    """Yield (event, occurrence) pairs for several events, in time order."""

    def pairs(event):
        for t in expand(
            event,
            range_start,
            range_end,
            max_occurrences=max_occurrences,
            max_empty_periods=max_empty_periods,
        ):
            yield (event, t)

    return heapq.merge(*[pairs(event) for event in events], key=lambda pair: pair[1])


def resolve(event: Event, occurrence: CalendarTime) -> OccurrenceDetails:
    """Return the effective data of an occurrence of event."""
    return event.get_occurrence_details(occurrence)
