"""
Tests for scheduling/overlap.py

Tests half-open interval overlap, booking filtering and per-resource
overlap reports.
"""

import unittest

from clinic_scheduling.clinic_scheduling.models import Booking, ensure_models
from clinic_scheduling.clinic_scheduling.scheduling.overlap import (
	booking_overlaps,
	check_overlap,
	find_overlapping_bookings,
	overlaps,
)


class TestOverlaps(unittest.TestCase):
	"""Tests for the overlaps() primitive."""

	def test_symmetry(self):
		cases = [
			("09:00", 60, "09:30", 30),
			("09:00", 60, "10:00", 60),
			("09:00", 90, "10:00", 15),
			("08:00", 30, "11:00", 60),
			("10:00", 15, "10:00", 15),
		]
		for a_start, a_duration, b_start, b_duration in cases:
			self.assertEqual(
				overlaps(a_start, a_duration, b_start, b_duration),
				overlaps(b_start, b_duration, a_start, a_duration),
			)

	def test_adjacent_intervals_do_not_overlap(self):
		self.assertFalse(overlaps("09:00", 60, "10:00", 60))
		self.assertFalse(overlaps("10:00", 60, "09:00", 60))

	def test_partial_and_contained_overlap(self):
		self.assertTrue(overlaps("09:00", 60, "09:30", 60))
		self.assertTrue(overlaps("09:00", 120, "09:30", 15))

	def test_missing_duration_defaults_to_60(self):
		self.assertTrue(overlaps("09:00", None, "09:59", 1))
		self.assertFalse(overlaps("09:00", None, "10:00", 1))

	def test_accepts_minutes(self):
		self.assertTrue(overlaps(540, 60, 570, 30))


class TestBookingOverlap(unittest.TestCase):
	"""Tests for booking-level overlap helpers."""

	def setUp(self):
		self.bookings = ensure_models(Booking, [
			{"id": "b1", "date": "2099-05-25", "slot": "09:00", "duration": 90, "roomId": "r1", "therapistIds": ["t1"], "clientId": "p1"},
			{"id": "b2", "date": "2099-05-25", "slot": "11:00", "duration": 30, "roomId": "r2", "therapistIds": ["t2"], "clientId": "p2"},
			{"id": "b3", "date": "2099-05-25", "slot": "10:00", "roomId": "r2", "therapistIds": ["t2"], "clientId": "p3", "status": "cancelled"},
			{"id": "b4", "date": "2099-05-26", "slot": "10:00", "roomId": "r1", "therapistIds": ["t1"], "clientId": "p1"},
		])

	def test_long_booking_blocks_later_start(self):
		self.assertTrue(booking_overlaps(self.bookings[0], "2099-05-25", "10:00", 60))

	def test_cancelled_booking_never_overlaps(self):
		self.assertFalse(booking_overlaps(self.bookings[2], "2099-05-25", "10:00", 60))

	def test_other_date_never_overlaps(self):
		self.assertFalse(booking_overlaps(self.bookings[3], "2099-05-25", "10:00", 60))

	def test_find_with_predicate(self):
		found = find_overlapping_bookings(
			self.bookings, "2099-05-25", "10:00", 90, predicate=lambda b: b.room_id == "r2"
		)
		self.assertEqual([b.id for b in found], ["b2"])

	def test_check_overlap_room(self):
		result = check_overlap(self.bookings, "2099-05-25", "10:00", 60, room_id="r1")
		self.assertTrue(result["has_overlap"])
		self.assertEqual(result["overlapping_bookings"], ["b1"])
		self.assertEqual(result["busy_until"], "10:30")

	def test_check_overlap_free(self):
		result = check_overlap(self.bookings, "2099-05-25", "10:30", 30, therapist_id="t1")
		self.assertFalse(result["has_overlap"])
		self.assertEqual(result["overlapping_bookings"], [])
		self.assertIsNone(result["busy_until"])

	def test_check_overlap_excludes_booking(self):
		result = check_overlap(
			self.bookings, "2099-05-25", "09:00", 60, client_id="p1", exclude_booking="b1"
		)
		self.assertFalse(result["has_overlap"])
