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

"""Conversion of parsed icalendar components into events."""

import logging
from collections.abc import Iterator
from datetime import date, datetime, timedelta
from typing import Optional, Union

from icalendar.cal import Calendar, Component

from .caltime import DEFAULT_WEEK_START, CalendarTime, zone_for_tzinfo
from .config import ExpansionConfig
from .duration import Duration
from .event import Event, iter_occurrences
from .recur import (
    ByPart,
    MalformedRule,
    RecurrenceRule,
    byday_from_ical,
    weekday_from_ical,
)
from .timezones import Timezone, TimezoneRegistry, TzinfoTimezone

EVENT_COMPONENTS = ("VEVENT",)


class MissingProperty(Exception):
    def __init__(self, property_name) -> None:
        super().__init__(f"Property {property_name!r} missing")
        self.property_name = property_name


def time_from_ical(
    value: Union[date, datetime],
    registry: Optional[TimezoneRegistry] = None,
    tzid: Optional[str] = None,
    default_timezone: Optional[Timezone] = None,
) -> CalendarTime:
    """Convert a date or datetime as produced by icalendar.

    Args:
      value: date or datetime
      registry: Registry to look up tzid in
      tzid: TZID parameter of the property, if any
      default_timezone: Zone to assign to floating datetimes
    """
    if not isinstance(value, datetime):
        return CalendarTime.from_date(value)
    if tzid is not None and registry is not None and registry.has(tzid):
        return CalendarTime.from_datetime(value, zone=registry.get(tzid))
    if value.tzinfo is None:
        return CalendarTime.from_datetime(value, zone=default_timezone)
    return CalendarTime.from_datetime(value, zone=zone_for_tzinfo(value))


def _time_from_prop(prop, registry, default_timezone) -> CalendarTime:
    params = getattr(prop, "params", {})
    return time_from_ical(
        prop.dt, registry, tzid=params.get("TZID"), default_timezone=default_timezone
    )


def _date_list(comp: Component, name: str, registry, default_timezone):
    value = comp.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    ret = []
    for dates in value:
        tzid = getattr(dates, "params", {}).get("TZID")
        for prop in dates.dts:
            dt = prop.dt
            if isinstance(dt, tuple):
                # PERIOD values only contribute their start.
                dt = dt[0]
            ret.append(
                time_from_ical(
                    dt, registry, tzid=tzid, default_timezone=default_timezone
                )
            )
    return ret


def registry_from_calendar(
    cal: Calendar, registry: Optional[TimezoneRegistry] = None
) -> TimezoneRegistry:
    """Register the VTIMEZONE definitions of a calendar.

    Args:
      cal: Parsed calendar
      registry: Registry to add to; a new one is created if not given
    Returns:
      the registry
    """
    if registry is None:
        registry = TimezoneRegistry()
    for comp in cal.walk("VTIMEZONE"):
        tzid = str(comp["TZID"])
        try:
            tz = comp.to_tz()
        except (ValueError, KeyError) as exc:
            logging.warning("Unable to load timezone %s: %s", tzid, exc)
            continue
        registry.register(TzinfoTimezone(tzid, tz))
    return registry


_INT_PARTS = [
    ByPart.BYSECOND,
    ByPart.BYMINUTE,
    ByPart.BYHOUR,
    ByPart.BYMONTHDAY,
    ByPart.BYYEARDAY,
    ByPart.BYWEEKNO,
    ByPart.BYMONTH,
    ByPart.BYSETPOS,
]


def rule_from_vrecur(
    vrecur,
    registry: Optional[TimezoneRegistry] = None,
    week_start: int = DEFAULT_WEEK_START,
) -> RecurrenceRule:
    """Build a RecurrenceRule from an icalendar vRecur.

    Args:
      vrecur: Value of an RRULE property
      registry: Registry for the zone of UNTIL
      week_start: Week start to use if the rule has no WKST
    Raises:
      MalformedRule: if the rule is invalid
    """

    def first(name):
        values = vrecur.get(name)
        if not values:
            return None
        if isinstance(values, list):
            return values[0]
        return values

    freq = first("FREQ")
    parts = {}
    for kind in _INT_PARTS:
        if kind.value in vrecur:
            try:
                parts[kind] = [int(v) for v in vrecur[kind.value]]
            except (TypeError, ValueError) as exc:
                raise MalformedRule(f"invalid {kind.value} value", kind) from exc
    if "BYDAY" in vrecur:
        parts[ByPart.BYDAY] = [byday_from_ical(str(v)) for v in vrecur["BYDAY"]]
    until = first("UNTIL")
    if until is not None:
        until = time_from_ical(until, registry)
    count = first("COUNT")
    interval = first("INTERVAL")
    wkst = first("WKST")
    return RecurrenceRule(
        str(freq) if freq is not None else None,
        interval=int(interval) if interval is not None else 1,
        wkst=weekday_from_ical(str(wkst)) if wkst is not None else week_start,
        until=until,
        count=int(count) if count is not None else None,
        parts=parts,
    )


def event_from_component(
    comp: Component,
    registry: Optional[TimezoneRegistry] = None,
    default_timezone: Optional[Timezone] = None,
    week_start: int = DEFAULT_WEEK_START,
) -> Event:
    """Build an Event from a VEVENT component.

    Exceptions (RECURRENCE-ID components) are not related here; see
    events_from_calendar.

    Raises:
      MissingProperty: if UID or DTSTART is missing
      MalformedRule: if the RRULE is invalid
    """
    if "UID" not in comp:
        raise MissingProperty("UID")
    if "DTSTART" not in comp:
        raise MissingProperty("DTSTART")
    start = _time_from_prop(comp["DTSTART"], registry, default_timezone)
    end = None
    duration = None
    if "DTEND" in comp:
        end = _time_from_prop(comp["DTEND"], registry, default_timezone)
    elif "DURATION" in comp:
        delta = comp["DURATION"].dt
        if isinstance(delta, timedelta):
            duration = Duration.from_timedelta(delta)
    rule = None
    if "RRULE" in comp:
        vrecur = comp["RRULE"]
        if isinstance(vrecur, list):
            logging.warning(
                "Component %s has %d RRULE properties, only using the first.",
                comp["UID"],
                len(vrecur),
            )
            vrecur = vrecur[0]
        rule = rule_from_vrecur(vrecur, registry, week_start=week_start)
    recurrence_id = None
    this_and_future = False
    if "RECURRENCE-ID" in comp:
        recurrence_id = _time_from_prop(
            comp["RECURRENCE-ID"], registry, default_timezone
        )
        params = getattr(comp["RECURRENCE-ID"], "params", {})
        this_and_future = params.get("RANGE", "").upper() == "THISANDFUTURE"
    return Event(
        str(comp["UID"]),
        start,
        end_date=end,
        duration=duration,
        summary=str(comp["SUMMARY"]) if "SUMMARY" in comp else None,
        description=str(comp["DESCRIPTION"]) if "DESCRIPTION" in comp else None,
        location=str(comp["LOCATION"]) if "LOCATION" in comp else None,
        rule=rule,
        extra_dates=_date_list(comp, "RDATE", registry, default_timezone),
        excluded_dates=_date_list(comp, "EXDATE", registry, default_timezone),
        recurrence_id=recurrence_id,
        range_this_and_future=this_and_future,
        component=comp,
    )


def events_from_calendar(
    cal: Calendar,
    registry: Optional[TimezoneRegistry] = None,
    default_timezone: Optional[Timezone] = None,
    week_start: int = DEFAULT_WEEK_START,
) -> list[Event]:
    """Build events for all VEVENT components in a calendar.

    Components with a RECURRENCE-ID are related to the master with the same
    UID. Exceptions without a master are returned as events of their own.
    """
    if registry is None:
        registry = registry_from_calendar(cal)
    masters: dict[str, Event] = {}
    exceptions: list[Event] = []
    for comp in cal.subcomponents:
        if comp.name not in EVENT_COMPONENTS:
            continue
        event = event_from_component(
            comp, registry, default_timezone=default_timezone, week_start=week_start
        )
        if event.is_recurrence_exception():
            exceptions.append(event)
        else:
            masters[event.uid] = event
    orphans = []
    for exception in exceptions:
        try:
            master = masters[exception.uid]
        except KeyError:
            logging.warning(
                "No master event for exception %s (%s), treating as single event.",
                exception.uid,
                exception.recurrence_id,
            )
            orphans.append(exception)
        else:
            master.relate_exception(exception)
    return list(masters.values()) + orphans


def expand_calendar(
    cal: Calendar,
    start: Union[CalendarTime, datetime],
    end: Union[CalendarTime, datetime],
    config: Optional[ExpansionConfig] = None,
) -> Iterator[tuple[Event, CalendarTime]]:
    """Expand all events in a calendar over a time range.

    Args:
      cal: Parsed calendar
      start: Start of the range (inclusive)
      end: End of the range (exclusive)
      config: Expansion settings; defaults apply if not given
    Returns:
      iterator over (event, occurrence) tuples, in time order
    """
    if config is None:
        config = ExpansionConfig()
    if cal.name != "VCALENDAR":
        raise AssertionError(f"called on file with root component {cal.name}")
    if isinstance(start, datetime):
        start = CalendarTime.from_datetime(start)
    if isinstance(end, datetime):
        end = CalendarTime.from_datetime(end)
    registry = registry_from_calendar(cal)
    registry.freeze()
    events = events_from_calendar(
        cal,
        registry,
        default_timezone=config.get_default_timezone(registry),
        week_start=config.get_week_start(),
    )
    return iter_occurrences(
        events,
        start,
        end,
        max_occurrences=config.get_max_occurrences(),
        max_empty_periods=config.get_max_empty_periods(),
    )
