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

"""Tests for icalexpand.caltime."""

import unittest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from icalexpand.caltime import (
    CalendarTime,
    Weekday,
    days_in_month,
    get_dominical_letter,
    is_leap_year,
    iso_week_of,
    week_one_starts,
    weeks_in_year,
)
from icalexpand.duration import Duration
from icalexpand.timezones import (
    FLOATING_TIMEZONE,
    UTC_TIMEZONE,
    FixedOffsetTimezone,
    TimezoneRegistry,
    TzinfoTimezone,
    UtcOffset,
)


class CalendarArithmeticTests(unittest.TestCase):
    def test_days_in_month(self):
        self.assertEqual(29, days_in_month(2, 2000))
        self.assertEqual(28, days_in_month(2, 1900))
        self.assertEqual(29, days_in_month(2, 2024))
        self.assertEqual(28, days_in_month(2, 2023))
        self.assertEqual(31, days_in_month(12, 2023))
        self.assertEqual(30, days_in_month(4, 2023))

    def test_is_leap_year(self):
        self.assertTrue(is_leap_year(2000))
        self.assertFalse(is_leap_year(1900))
        self.assertTrue(is_leap_year(2024))
        self.assertFalse(is_leap_year(2023))

    def test_weeks_in_year(self):
        self.assertEqual(53, weeks_in_year(2020))
        self.assertEqual(52, weeks_in_year(2021))
        self.assertEqual(53, weeks_in_year(2026))

    def test_week_one_starts(self):
        self.assertEqual(CalendarTime(2021, 1, 4, is_date=True), week_one_starts(2021))
        self.assertEqual(
            CalendarTime(2019, 12, 30, is_date=True), week_one_starts(2020)
        )

    def test_iso_week_of(self):
        self.assertEqual((2020, 53), iso_week_of(2021, 1, 3))
        self.assertEqual((2025, 1), iso_week_of(2024, 12, 30))
        self.assertEqual((2024, 1), iso_week_of(2024, 1, 1))

    def test_dominical_letter(self):
        self.assertEqual("A", get_dominical_letter(2023))
        self.assertEqual("GF", get_dominical_letter(2024))


class NormalizationTests(unittest.TestCase):
    def test_day_overflow(self):
        t = CalendarTime(2024, 1, 31)
        t.day = 33
        self.assertEqual((2024, 2, 2), (t.year, t.month, t.day))

    def test_day_underflow(self):
        t = CalendarTime(2024, 3, 1)
        t.day -= 1
        self.assertEqual((2024, 2, 29), (t.year, t.month, t.day))

    def test_hour_overflow(self):
        t = CalendarTime(2023, 12, 31, 23)
        t.hour += 2
        self.assertEqual("2024-01-01T01:00:00", str(t))

    def test_month_overflow(self):
        t = CalendarTime(2024, 11, 15)
        t.month += 3
        self.assertEqual((2025, 2, 15), (t.year, t.month, t.day))

    def test_negative_seconds(self):
        t = CalendarTime(2024, 1, 1, 0, 0, 0)
        t.second = -1
        self.assertEqual("2023-12-31T23:59:59", str(t))

    def test_date_has_no_time(self):
        t = CalendarTime(2024, 1, 1, 10, 30, is_date=True)
        self.assertEqual((0, 0, 0), (t.hour, t.minute, t.second))
        self.assertEqual("2024-01-01", str(t))
        self.assertEqual("20240101", t.to_ical())


class DerivationTests(unittest.TestCase):
    def test_day_of_week(self):
        self.assertEqual(Weekday.MONDAY, CalendarTime(2024, 1, 1).day_of_week())
        self.assertEqual(Weekday.SUNDAY, CalendarTime(2023, 12, 31).day_of_week())

    def test_day_of_year(self):
        self.assertEqual(1, CalendarTime(2024, 1, 1).day_of_year())
        self.assertEqual(60, CalendarTime(2024, 2, 29).day_of_year())
        self.assertEqual(366, CalendarTime(2024, 12, 31).day_of_year())

    def test_week_number(self):
        self.assertEqual(53, CalendarTime(2021, 1, 3).week_number())
        self.assertEqual(1, CalendarTime(2024, 12, 30).week_number())
        self.assertEqual(20, CalendarTime(2024, 5, 13).week_number())

    def test_start_of_week(self):
        t = CalendarTime(2024, 1, 3, 10, 30)
        self.assertEqual(CalendarTime(2024, 1, 1, is_date=True), t.start_of_week())
        self.assertTrue(t.start_of_week().is_date)
        self.assertEqual(
            CalendarTime(2023, 12, 31, is_date=True), t.start_of_week(Weekday.SUNDAY)
        )
        self.assertEqual(CalendarTime(2024, 1, 7, is_date=True), t.end_of_week())
        # The receiver is not modified.
        self.assertEqual("2024-01-03T10:30:00", str(t))

    def test_start_of_month(self):
        t = CalendarTime(2024, 2, 10)
        self.assertEqual(CalendarTime(2024, 2, 1, is_date=True), t.start_of_month())
        self.assertEqual(CalendarTime(2024, 2, 29, is_date=True), t.end_of_month())

    def test_start_of_year(self):
        t = CalendarTime(2024, 6, 10)
        self.assertEqual(CalendarTime(2024, 1, 1, is_date=True), t.start_of_year())
        self.assertEqual(CalendarTime(2024, 12, 31, is_date=True), t.end_of_year())

    def test_start_doy_week(self):
        self.assertEqual(-3, CalendarTime(2021, 1, 1).start_doy_week())
        self.assertEqual(1, CalendarTime(2024, 1, 3).start_doy_week())

    def test_nth_week_day(self):
        t = CalendarTime(2024, 1, 15)
        self.assertEqual(26, t.nth_week_day(Weekday.FRIDAY, -1))
        self.assertEqual(1, t.nth_week_day(Weekday.MONDAY, 1))
        self.assertEqual(9, t.nth_week_day(Weekday.TUESDAY, 2))

    def test_is_nth_week_day(self):
        self.assertTrue(CalendarTime(2024, 1, 26).is_nth_week_day(Weekday.FRIDAY, -1))
        self.assertFalse(CalendarTime(2024, 1, 19).is_nth_week_day(Weekday.FRIDAY, -1))
        self.assertTrue(CalendarTime(2024, 1, 19).is_nth_week_day(Weekday.FRIDAY, 0))

    def test_from_day_of_year(self):
        self.assertEqual(
            CalendarTime(2024, 2, 29, is_date=True),
            CalendarTime.from_day_of_year(60, 2024),
        )


class MutationTests(unittest.TestCase):
    def test_add_duration(self):
        t = CalendarTime(2024, 1, 31, 23)
        t.add_duration(Duration(hours=2))
        self.assertEqual("2024-02-01T01:00:00", str(t))

    def test_add_negative_duration(self):
        t = CalendarTime(2024, 3, 1)
        t.add_duration(Duration(days=1, is_negative=True))
        self.assertEqual((2024, 2, 29), (t.year, t.month, t.day))

    def test_adjust(self):
        t = CalendarTime(2024, 12, 31, 12)
        t.adjust(days=1, hours=-13)
        self.assertEqual("2024-12-31T23:00:00", str(t))

    def test_clone_does_not_alias(self):
        t = CalendarTime(2024, 1, 1)
        c = t.clone()
        c.day += 1
        self.assertEqual(1, t.day)
        self.assertEqual(2, c.day)

    def test_reset_to(self):
        t = CalendarTime(2024, 1, 1)
        t.reset_to(2020, 2, 30, 10, zone=UTC_TIMEZONE)
        self.assertEqual("2020-03-01T10:00:00Z", str(t))

    def test_subtract_date(self):
        d = CalendarTime(2024, 1, 2).subtract_date(CalendarTime(2024, 1, 1))
        self.assertEqual(86400, d.to_seconds())

    def test_subtract_date_tz(self):
        plus_one = FixedOffsetTimezone(UtcOffset(1))
        a = CalendarTime(2024, 1, 1, 12, zone=plus_one)
        b = CalendarTime(2024, 1, 1, 12, zone=UTC_TIMEZONE)
        self.assertEqual(-3600, a.subtract_date_tz(b).to_seconds())
        self.assertEqual(0, a.subtract_date(b).to_seconds())


class CompareTests(unittest.TestCase):
    def test_same_instant_different_zones(self):
        a = CalendarTime(2024, 1, 1, 12, zone=UTC_TIMEZONE)
        b = CalendarTime(2024, 1, 1, 13, zone=FixedOffsetTimezone(UtcOffset(1)))
        self.assertEqual(0, a.compare(b))
        self.assertEqual(a, b)

    def test_instant_order(self):
        a = CalendarTime(2024, 1, 1, 12, zone=UTC_TIMEZONE)
        b = CalendarTime(2024, 1, 1, 12, 30, zone=FixedOffsetTimezone(UtcOffset(1)))
        self.assertEqual(1, a.compare(b))
        self.assertLess(b, a)

    def test_date_ignores_time(self):
        a = CalendarTime(2024, 1, 1, is_date=True)
        b = CalendarTime(2024, 1, 1, 23, 59, zone=UTC_TIMEZONE)
        self.assertEqual(0, a.compare(b))
        self.assertEqual(-1, a.compare(CalendarTime(2024, 1, 2, 0, 0)))

    def test_floating_compares_wall_clock(self):
        a = CalendarTime(2024, 1, 1, 12)
        b = CalendarTime(2024, 1, 1, 12, zone=FixedOffsetTimezone(UtcOffset(5)))
        self.assertEqual(0, a.compare(b))

    def test_compare_date_only_tz(self):
        a = CalendarTime(2024, 1, 1, 23, zone=UTC_TIMEZONE)
        b = CalendarTime(2024, 1, 2, 0, 30, zone=FixedOffsetTimezone(UtcOffset(2)))
        self.assertEqual(0, a.compare_date_only_tz(b, UTC_TIMEZONE))
        self.assertEqual(
            0, a.compare_date_only_tz(b, FixedOffsetTimezone(UtcOffset(2)))
        )

    def test_unhashable(self):
        self.assertRaises(TypeError, hash, CalendarTime(2024, 1, 1))


class ConversionTests(unittest.TestCase):
    def test_unix_time(self):
        self.assertEqual(86400, CalendarTime(1970, 1, 2, zone=UTC_TIMEZONE).to_unix_time())
        self.assertEqual(
            "1970-01-01T00:00:00Z", str(CalendarTime.from_unix_time(0))
        )

    def test_unix_time_with_offset(self):
        t = CalendarTime(1970, 1, 1, 1, zone=FixedOffsetTimezone(UtcOffset(1)))
        self.assertEqual(0, t.to_unix_time())
        self.assertEqual(3600, t.utc_offset())

    def test_convert_to_zone(self):
        t = CalendarTime(2024, 7, 1, 12, zone=UTC_TIMEZONE)
        converted = t.convert_to_zone(TzinfoTimezone.from_zoneinfo("Europe/Amsterdam"))
        self.assertEqual((14, 0), (converted.hour, converted.minute))
        self.assertEqual(t, converted)
        self.assertEqual(12, t.hour)

    def test_convert_date_keeps_fields(self):
        t = CalendarTime(2024, 7, 1, is_date=True, zone=UTC_TIMEZONE)
        converted = t.convert_to_zone(FixedOffsetTimezone(UtcOffset(10)))
        self.assertEqual((2024, 7, 1), (converted.year, converted.month, converted.day))

    def test_from_datetime_naive(self):
        t = CalendarTime.from_datetime(datetime(2024, 1, 1, 10, 0))
        self.assertIs(FLOATING_TIMEZONE, t.zone)
        self.assertEqual(datetime(2024, 1, 1, 10, 0), t.to_datetime())

    def test_from_datetime_utc(self):
        t = CalendarTime.from_datetime(datetime(2024, 1, 1, 10, tzinfo=timezone.utc))
        self.assertIs(UTC_TIMEZONE, t.zone)
        self.assertEqual(
            datetime(2024, 1, 1, 10, tzinfo=timezone.utc), t.to_datetime()
        )

    def test_from_datetime_zoneinfo(self):
        dt = datetime(2024, 1, 1, 10, tzinfo=ZoneInfo("Europe/Amsterdam"))
        t = CalendarTime.from_datetime(dt)
        self.assertEqual("Europe/Amsterdam", t.zone.tzid)
        self.assertEqual(3600, t.utc_offset())
        self.assertEqual(dt, t.to_datetime())

    def test_from_date(self):
        t = CalendarTime.from_datetime(date(2024, 5, 1))
        self.assertTrue(t.is_date)
        self.assertEqual(date(2024, 5, 1), t.to_date())

    def test_json(self):
        t = CalendarTime(2024, 3, 31, 2, 30, zone=TzinfoTimezone.from_zoneinfo("Europe/Amsterdam"))
        data = t.to_json()
        self.assertEqual("Europe/Amsterdam", data["timezone"])
        self.assertEqual(False, data["isDate"])
        restored = CalendarTime.from_json(data)
        self.assertEqual(t.to_json(), restored.to_json())

    def test_json_registry(self):
        zone = FixedOffsetTimezone(UtcOffset(3), "Custom/Zone")
        t = CalendarTime(2024, 1, 1, 10, zone=zone)
        restored = CalendarTime.from_json(t.to_json(), TimezoneRegistry([zone]))
        self.assertIs(zone, restored.zone)

    def test_json_fixed_offset(self):
        t = CalendarTime(2024, 1, 1, 10, zone=FixedOffsetTimezone(UtcOffset(5, 30)))
        restored = CalendarTime.from_json(t.to_json())
        self.assertEqual("UTC+05:30", restored.zone.tzid)
        self.assertEqual(t.to_unix_time(), restored.to_unix_time())

    def test_exists(self):
        berlin = TzinfoTimezone.from_zoneinfo("Europe/Berlin")
        self.assertFalse(CalendarTime(2024, 3, 31, 2, 30, zone=berlin).exists())
        self.assertTrue(CalendarTime(2024, 3, 31, 3, zone=berlin).exists())
        # Repeated hour on the way back.
        self.assertTrue(CalendarTime(2024, 10, 27, 2, 30, zone=berlin).exists())
        self.assertTrue(CalendarTime(2024, 3, 31, 2, 30).exists())
        self.assertTrue(CalendarTime(2024, 3, 31, is_date=True, zone=berlin).exists())
