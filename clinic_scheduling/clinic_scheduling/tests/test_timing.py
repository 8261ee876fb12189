"""
Tests for scheduling/timing.py

Tests "HH:mm" arithmetic, date helpers, timezone handling and past-slot
detection.
"""

import unittest
from datetime import date, datetime

import pytz

from clinic_scheduling.clinic_scheduling.scheduling.timing import (
	add_days,
	get_timezone,
	is_slot_in_past,
	normalize_slot,
	parse_date,
	resolve_now,
	to_hhmm,
	to_minutes,
	weekday_name,
)


class TestTimeArithmetic(unittest.TestCase):
	"""Tests for minutes-since-midnight conversions."""

	def test_to_minutes(self):
		self.assertEqual(to_minutes("00:00"), 0)
		self.assertEqual(to_minutes("09:30"), 570)
		self.assertEqual(to_minutes("9:5"), 545)
		self.assertEqual(to_minutes("09:30:00"), 570)
		self.assertEqual(to_minutes("24:00"), 1440)

	def test_to_minutes_rejects_garbage(self):
		for value in ("", "9", "ab:cd", "25:00", "10:75", "24:30", None):
			with self.assertRaises(ValueError):
				to_minutes(value)

	def test_to_hhmm_zero_pads(self):
		self.assertEqual(to_hhmm(545), "09:05")
		self.assertEqual(to_hhmm(0), "00:00")
		self.assertEqual(to_hhmm(1440), "24:00")

	def test_normalize_slot(self):
		self.assertEqual(normalize_slot("9:0"), "09:00")
		self.assertEqual(normalize_slot("09:00:00"), "09:00")
		self.assertEqual(normalize_slot(""), "")


class TestDateHelpers(unittest.TestCase):
	"""Tests for date parsing and calendar arithmetic."""

	def test_parse_date_accepts_strings_and_dates(self):
		self.assertEqual(parse_date("2099-05-25"), date(2099, 5, 25))
		self.assertEqual(parse_date(date(2099, 5, 25)), date(2099, 5, 25))
		self.assertEqual(parse_date(datetime(2099, 5, 25, 10, 0)), date(2099, 5, 25))

	def test_parse_date_invalid_returns_none(self):
		self.assertIsNone(parse_date("2099-02-30"))
		self.assertIsNone(parse_date("25/05/2099"))
		self.assertIsNone(parse_date(""))
		self.assertIsNone(parse_date(None))

	def test_add_days_crosses_month_and_year(self):
		self.assertEqual(add_days("2099-05-31", 1), "2099-06-01")
		self.assertEqual(add_days("2099-12-31", 1), "2100-01-01")
		self.assertEqual(add_days("2099-05-25", 0), "2099-05-25")

	def test_add_days_invalid_raises(self):
		with self.assertRaises(ValueError):
			add_days("not-a-date", 1)

	def test_weekday_name(self):
		self.assertEqual(weekday_name(date(2099, 5, 25)), "monday")
		self.assertEqual(weekday_name(date(2099, 5, 31)), "sunday")


class TestTimezone(unittest.TestCase):
	"""Tests for clinic timezone handling."""

	def test_unknown_timezone_falls_back_to_utc(self):
		with self.assertLogs("clinic_scheduling.clinic_scheduling.scheduling.timing", level="WARNING"):
			tz = get_timezone("Mars/Olympus")
		self.assertEqual(tz, pytz.UTC)

	def test_naive_now_is_clinic_local(self):
		now = datetime(2099, 5, 25, 9, 0)
		self.assertEqual(resolve_now(now, "America/Bogota"), now)

	def test_aware_now_is_converted(self):
		now = pytz.UTC.localize(datetime(2099, 5, 25, 14, 0))
		self.assertEqual(resolve_now(now, "America/Bogota"), datetime(2099, 5, 25, 9, 0))


class TestSlotInPast(unittest.TestCase):
	"""Tests for is_slot_in_past."""

	def setUp(self):
		self.now = datetime(2099, 5, 25, 10, 0)

	def test_earlier_day_is_past(self):
		self.assertTrue(is_slot_in_past("2099-05-24", "18:00", self.now))

	def test_start_equal_to_now_is_past(self):
		self.assertTrue(is_slot_in_past("2099-05-25", "10:00", self.now))

	def test_later_slot_is_not_past(self):
		self.assertFalse(is_slot_in_past("2099-05-25", "10:15", self.now))

	def test_empty_inputs_are_never_past(self):
		self.assertFalse(is_slot_in_past("", "10:00", self.now))
		self.assertFalse(is_slot_in_past("2099-05-25", "", self.now))
