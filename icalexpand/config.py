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

"""Expansion configuration file.

Example::

    [expansion]
    max_empty_periods = 10000
    max_occurrences = 500
    week_start = SU
    default_timezone = Europe/Amsterdam
"""

import configparser
from typing import Optional

from .caltime import DEFAULT_WEEK_START, Weekday
from .recur import weekday_from_ical, weekday_to_ical
from .recur_iterator import DEFAULT_MAX_EMPTY_PERIODS
from .timezones import Timezone, TimezoneRegistry, resolve_timezone

SECTION = "expansion"


class ExpansionConfig:
    """Settings that bound and tune recurrence expansion."""

    def __init__(self, cp=None):
        if cp is None:
            cp = configparser.ConfigParser()
        self._configparser = cp

    @classmethod
    def from_file(cls, f):
        cp = configparser.ConfigParser()
        cp.read_file(f)
        return cls(cp)

    def write(self, f) -> None:
        self._configparser.write(f)

    def _get(self, name: str) -> Optional[str]:
        try:
            return self._configparser[SECTION][name]
        except KeyError:
            return None

    def _set(self, name: str, value: Optional[str]) -> None:
        if not self._configparser.has_section(SECTION):
            self._configparser.add_section(SECTION)
        if value is None:
            self._configparser.remove_option(SECTION, name)
        else:
            self._configparser[SECTION][name] = value

    def get_max_empty_periods(self) -> int:
        value = self._get("max_empty_periods")
        if value is None:
            return DEFAULT_MAX_EMPTY_PERIODS
        ret = int(value)
        if ret < 1:
            raise ValueError(f"max_empty_periods must be positive, not {ret}")
        return ret

    def set_max_empty_periods(self, value: Optional[int]) -> None:
        self._set("max_empty_periods", None if value is None else str(value))

    def get_max_occurrences(self) -> Optional[int]:
        """Return the cut-off on occurrences per event, or None for no limit."""
        value = self._get("max_occurrences")
        if value is None or value.strip().lower() in ("", "none"):
            return None
        return int(value)

    def set_max_occurrences(self, value: Optional[int]) -> None:
        self._set("max_occurrences", None if value is None else str(value))

    def get_week_start(self) -> Weekday:
        value = self._get("week_start")
        if value is None:
            return DEFAULT_WEEK_START
        return weekday_from_ical(value.strip())

    def set_week_start(self, value: Optional[int]) -> None:
        self._set("week_start", None if value is None else weekday_to_ical(value))

    def get_default_timezone(
        self, registry: Optional[TimezoneRegistry] = None
    ) -> Optional[Timezone]:
        """Return the zone to assign to floating times, if configured.

        Raises:
          UnknownTimezone: if the configured zone can not be found
        """
        value = self._get("default_timezone")
        if value is None or value.strip() in ("", "floating"):
            return None
        return resolve_timezone(value.strip(), registry)

    def set_default_timezone(self, tzid: Optional[str]) -> None:
        self._set("default_timezone", tzid)
