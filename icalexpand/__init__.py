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

"""Expansion of recurring iCalendar events into occurrences."""

__version__ = (0, 1, 0)
version_string = ".".join(map(str, __version__))

from .caltime import CalendarTime, Weekday  # noqa: E402
from .duration import Duration  # noqa: E402
from .event import (  # noqa: E402
    Event,
    InvalidRelation,
    OccurrenceDetails,
    expand,
    iter_occurrences,
    resolve,
)
from .expansion import OccurrenceExpander  # noqa: E402
from .recur import ByPart, Frequency, MalformedRule, RecurrenceRule  # noqa: E402
from .recur_iterator import NonProgressing, RuleIterator  # noqa: E402
from .timezones import (  # noqa: E402
    FLOATING_TIMEZONE,
    UTC_TIMEZONE,
    FixedOffsetTimezone,
    Timezone,
    TimezoneRegistry,
    UnknownTimezone,
    UtcOffset,
)

__all__ = [
    "ByPart",
    "CalendarTime",
    "Duration",
    "Event",
    "FLOATING_TIMEZONE",
    "FixedOffsetTimezone",
    "Frequency",
    "InvalidRelation",
    "MalformedRule",
    "NonProgressing",
    "OccurrenceDetails",
    "OccurrenceExpander",
    "RecurrenceRule",
    "RuleIterator",
    "Timezone",
    "TimezoneRegistry",
    "UTC_TIMEZONE",
    "UnknownTimezone",
    "UtcOffset",
    "Weekday",
    "expand",
    "iter_occurrences",
    "resolve",
]
