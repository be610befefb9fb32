# icalexpand
# Copyright (C) 2018 Jelmer Vernooĳ <jelmer@jelmer.uk>, et al.
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

"""Tests for icalexpand.config."""

from io import StringIO
from unittest import TestCase

from icalexpand.caltime import Weekday
from icalexpand.config import ExpansionConfig
from icalexpand.recur import MalformedRule
from icalexpand.recur_iterator import DEFAULT_MAX_EMPTY_PERIODS
from icalexpand.timezones import UTC_TIMEZONE, UnknownTimezone


class ExpansionConfigTests(TestCase):
    def test_defaults(self):
        config = ExpansionConfig.from_file(StringIO(""))
        self.assertEqual(DEFAULT_MAX_EMPTY_PERIODS, config.get_max_empty_periods())
        self.assertIsNone(config.get_max_occurrences())
        self.assertEqual(Weekday.MONDAY, config.get_week_start())
        self.assertIsNone(config.get_default_timezone())

    def test_values(self):
        f = StringIO(
            """\
[expansion]
max_empty_periods = 500
max_occurrences = 100
week_start = SU
default_timezone = Europe/Amsterdam
"""
        )
        config = ExpansionConfig.from_file(f)
        self.assertEqual(500, config.get_max_empty_periods())
        self.assertEqual(100, config.get_max_occurrences())
        self.assertEqual(Weekday.SUNDAY, config.get_week_start())
        self.assertEqual("Europe/Amsterdam", config.get_default_timezone().tzid)

    def test_max_occurrences_none(self):
        f = StringIO(
            """\
[expansion]
max_occurrences = none
"""
        )
        self.assertIsNone(ExpansionConfig.from_file(f).get_max_occurrences())

    def test_invalid_max_empty_periods(self):
        f = StringIO(
            """\
[expansion]
max_empty_periods = 0
"""
        )
        config = ExpansionConfig.from_file(f)
        self.assertRaises(ValueError, config.get_max_empty_periods)

    def test_invalid_week_start(self):
        f = StringIO(
            """\
[expansion]
week_start = XX
"""
        )
        config = ExpansionConfig.from_file(f)
        self.assertRaises(MalformedRule, config.get_week_start)

    def test_default_timezone(self):
        config = ExpansionConfig()
        config.set_default_timezone("UTC")
        self.assertIs(UTC_TIMEZONE, config.get_default_timezone())
        config.set_default_timezone("floating")
        self.assertIsNone(config.get_default_timezone())
        config.set_default_timezone("Nowhere/Nothing")
        self.assertRaises(UnknownTimezone, config.get_default_timezone)

    def test_set_and_write(self):
        config = ExpansionConfig()
        config.set_max_empty_periods(20)
        config.set_max_occurrences(5)
        config.set_week_start(Weekday.WEDNESDAY)
        f = StringIO()
        config.write(f)
        config = ExpansionConfig.from_file(StringIO(f.getvalue()))
        self.assertEqual(20, config.get_max_empty_periods())
        self.assertEqual(5, config.get_max_occurrences())
        self.assertEqual(Weekday.WEDNESDAY, config.get_week_start())

    def test_unset(self):
        config = ExpansionConfig()
        config.set_max_occurrences(5)
        config.set_max_occurrences(None)
        self.assertIsNone(config.get_max_occurrences())
