"""
Tests for scheduling/timeline.py

Tests the per-room timeline: variable-duration displacement, breaks,
cross-room therapist exclusion, statuses and purity.
"""

import unittest
from datetime import datetime

from clinic_scheduling.clinic_scheduling.models import (
	SLOT_AVAILABLE,
	SLOT_BREAK,
	SLOT_COMPLETED,
	SLOT_NOT_AVAILABLE,
	SLOT_PENDING,
	SLOT_SCHEDULED,
	SLOT_THERAPIST_UNAVAILABLE,
)
from clinic_scheduling.clinic_scheduling.scheduling.timeline import generate_room_slots

DATE = "2099-05-25"


class TestRoomTimeline(unittest.TestCase):
	"""Tests for generate_room_slots."""

	def setUp(self):
		"""Clinic 09:00-12:00, two rooms, one male and one female therapist."""
		self.timings = {"start": "09:00", "end": "12:00"}
		self.room = {"id": "r1", "name": "Sala 1"}
		self.therapists = [
			{"id": "t1", "name": "Carlos", "gender": "male"},
			{"id": "t2", "name": "Ana", "gender": "female"},
		]
		self.now = datetime(2099, 5, 1, 8, 0)

	def _starts(self, blocks):
		return [b.start for b in blocks]

	def test_variable_duration_displaces_grid(self):
		"""A 45 minute booking at 09:00 pushes the next block to 09:45."""
		bookings = [{"id": "b1", "date": DATE, "slot": "09:00", "duration": 45, "roomId": "r1", "therapistIds": ["t1"]}]
		blocks = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 30, now=self.now)

		self.assertEqual(blocks[0].start, "09:00")
		self.assertEqual(blocks[0].end, "09:45")
		self.assertEqual(blocks[0].booking.id, "b1")
		self.assertEqual(blocks[1].start, "09:45")
		self.assertNotIn("09:30", self._starts(blocks))

	def test_blocks_are_contiguous_and_end_at_close(self):
		bookings = [{"id": "b1", "date": DATE, "slot": "09:20", "duration": 50, "roomId": "r1", "therapistIds": ["t1"]}]
		blocks = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 60, now=self.now)

		self.assertEqual(blocks[0].start, "09:00")
		self.assertEqual(blocks[0].end, "09:20")
		for previous, current in zip(blocks, blocks[1:]):
			self.assertEqual(previous.end, current.start)
		self.assertEqual(blocks[-1].end, "12:00")

	def test_booking_is_clamped_to_close(self):
		bookings = [{"id": "b1", "date": DATE, "slot": "11:30", "duration": 90, "roomId": "r1", "therapistIds": ["t1"]}]
		blocks = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 60, now=self.now)
		self.assertEqual((blocks[-1].start, blocks[-1].end), ("11:30", "12:00"))

	def test_break_block(self):
		timings = {"start": "09:00", "end": "12:00", "breakStart": "10:00", "breakEnd": "10:30"}
		blocks = generate_room_slots(self.room, DATE, [], self.therapists, timings, 60, now=self.now)

		self.assertEqual(
			[(b.start, b.end) for b in blocks],
			[("09:00", "10:00"), ("10:00", "10:30"), ("10:30", "11:30"), ("11:30", "12:00")],
		)
		break_block = blocks[1]
		self.assertTrue(break_block.is_break)
		self.assertEqual(break_block.status, SLOT_BREAK)
		self.assertFalse(break_block.therapist_available)
		self.assertEqual(break_block.available_therapists, [])

	def test_free_block_stops_at_break_start(self):
		timings = {"start": "09:00", "end": "12:00", "breakStart": "09:30", "breakEnd": "10:00"}
		blocks = generate_room_slots(self.room, DATE, [], self.therapists, timings, 60, now=self.now)
		self.assertEqual((blocks[0].start, blocks[0].end), ("09:00", "09:30"))
		self.assertTrue(blocks[1].is_break)

	def test_cross_room_therapist_exclusion(self):
		"""Therapist booked in room r2 at 09:00 is not offered in room r1 at 09:00."""
		bookings = [{"id": "b1", "date": DATE, "slot": "09:00", "duration": 60, "roomId": "r2", "therapistIds": ["t1"]}]
		blocks = generate_room_slots(self.room, DATE, bookings, self.therapists[:1], self.timings, 60, now=self.now)

		self.assertFalse(blocks[0].therapist_available)
		self.assertEqual(blocks[0].status, SLOT_THERAPIST_UNAVAILABLE)
		self.assertTrue(blocks[1].therapist_available)

	def test_gender_policy(self):
		blocks = generate_room_slots(
			self.room, DATE, [], self.therapists, self.timings, 60,
			enforce_gender_match=True, patient_gender="female", now=self.now
		)
		self.assertEqual([t.id for t in blocks[0].available_therapists], ["t2"])

	def test_no_therapists_at_all(self):
		blocks = generate_room_slots(self.room, DATE, [], [], self.timings, 60, now=self.now)
		self.assertTrue(blocks)
		for block in blocks:
			self.assertFalse(block.therapist_available)
			self.assertEqual(block.status, SLOT_THERAPIST_UNAVAILABLE)

	def test_statuses_on_future_day(self):
		bookings = [
			{"id": "b1", "date": DATE, "slot": "09:00", "roomId": "r1", "therapistIds": ["t1"]},
			{"id": "b2", "date": DATE, "slot": "10:00", "roomId": "r1", "therapistIds": ["t2"], "status": "completed"},
		]
		blocks = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 60, now=self.now)
		self.assertEqual([b.status for b in blocks], [SLOT_SCHEDULED, SLOT_COMPLETED, SLOT_AVAILABLE])

	def test_past_day_is_still_rendered(self):
		bookings = [{"id": "b1", "date": "2020-01-06", "slot": "09:00", "roomId": "r1", "therapistIds": ["t1"]}]
		blocks = generate_room_slots(self.room, "2020-01-06", bookings, self.therapists, self.timings, 60, now=self.now)

		self.assertEqual(len(blocks), 3)
		self.assertEqual(blocks[0].status, SLOT_PENDING)
		self.assertEqual(blocks[1].status, SLOT_NOT_AVAILABLE)
		self.assertEqual(blocks[2].status, SLOT_NOT_AVAILABLE)

	def test_elapsed_blocks_today(self):
		"""Blocks whose end has passed are not bookable; the running block still is."""
		now = datetime(2099, 5, 25, 10, 30)
		blocks = generate_room_slots(self.room, DATE, [], self.therapists, self.timings, 60, now=now)
		self.assertEqual([b.status for b in blocks], [SLOT_NOT_AVAILABLE, SLOT_AVAILABLE, SLOT_AVAILABLE])

	def test_cancelled_booking_frees_block(self):
		bookings = [{"id": "b1", "date": DATE, "slot": "09:00", "roomId": "r1", "therapistIds": ["t1"], "status": "cancelled"}]
		blocks = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 60, now=self.now)
		self.assertIsNone(blocks[0].booking)
		self.assertEqual(blocks[0].status, SLOT_AVAILABLE)

	def test_booking_enriched_with_patient(self):
		bookings = [{"id": "b1", "date": DATE, "slot": "09:00", "roomId": "r1", "therapistIds": ["t1"], "clientId": "p1"}]
		patients = [{"id": "p1", "name": "María", "mobile": "+57 300 000 0000"}]
		blocks = generate_room_slots(
			self.room, DATE, bookings, self.therapists, self.timings, 60, patients=patients, now=self.now
		)
		self.assertEqual(blocks[0].booking.patient_name, "María")
		self.assertEqual(blocks[0].booking.patient_phone, "+57 300 000 0000")

	def test_slot_id(self):
		blocks = generate_room_slots(self.room, DATE, [], self.therapists, self.timings, 60, now=self.now)
		self.assertEqual(blocks[0].slot_id, "r1_2099-05-25_09:00_10:00")

	def test_idempotent(self):
		bookings = [{"id": "b1", "date": DATE, "slot": "09:15", "duration": 40, "roomId": "r1", "therapistIds": ["t1"]}]
		first = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 30, now=self.now)
		second = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 30, now=self.now)
		self.assertEqual(
			[b.model_dump() for b in first],
			[b.model_dump() for b in second],
		)

	def test_closed_day_and_invalid_date(self):
		self.assertEqual(
			generate_room_slots(self.room, DATE, [], self.therapists, {"monday": {"isOpen": False}}, now=self.now),
			[],
		)
		with self.assertLogs("clinic_scheduling.clinic_scheduling.scheduling.timeline", level="WARNING"):
			self.assertEqual(generate_room_slots(self.room, "bad", [], self.therapists, self.timings), [])

	def test_early_booking_moves_cursor(self):
		bookings = [{"id": "b1", "date": DATE, "slot": "08:30", "duration": 30, "roomId": "r1", "therapistIds": ["t1"]}]
		blocks = generate_room_slots(self.room, DATE, bookings, self.therapists, self.timings, 60, now=self.now)
		self.assertEqual((blocks[0].start, blocks[0].end), ("08:30", "09:00"))
		self.assertEqual(blocks[1].start, "09:00")
