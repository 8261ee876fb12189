"""
Tests for models.py

Tests payload ingestion: field-name reconciliation, normalization and
validation of the scheduling entities.
"""

import unittest

from clinic_scheduling.exceptions import SchedulingError, ValidationError
from clinic_scheduling.clinic_scheduling.models import (
	Booking,
	ClinicTimings,
	DayTiming,
	Patient,
	Room,
	Therapist,
	ensure_model,
	ensure_models,
)


class TestBookingIngestion(unittest.TestCase):
	"""Tests for Booking field reconciliation."""

	def test_legacy_field_names(self):
		booking = ensure_model(Booking, {
			"id": "b1",
			"date": "2099-05-25",
			"time": "9:00",
			"roomNumber": "r1",
			"patientId": "p1",
			"therapistId": "t1",
		})
		self.assertEqual(booking.slot, "09:00")
		self.assertEqual(booking.room_id, "r1")
		self.assertEqual(booking.client_id, "p1")
		self.assertEqual(booking.therapist_ids, ["t1"])

	def test_missing_or_null_duration_defaults_to_60(self):
		first = ensure_model(Booking, {"date": "2099-05-25", "slot": "09:00"})
		second = ensure_model(Booking, {"date": "2099-05-25", "slot": "09:00", "duration": None})
		self.assertEqual(first.duration, 60)
		self.assertEqual(second.duration, 60)
		self.assertEqual(first.end_minutes, 600)

	def test_non_positive_duration_is_rejected(self):
		with self.assertRaises(ValidationError):
			ensure_model(Booking, {"date": "2099-05-25", "slot": "09:00", "duration": 0})

	def test_invalid_date_is_rejected(self):
		with self.assertRaises(ValidationError):
			ensure_model(Booking, {"date": "2099-13-01", "slot": "09:00"})

	def test_released_statuses_are_inactive(self):
		for status in ("cancelled", "rescheduled"):
			booking = ensure_model(Booking, {"date": "2099-05-25", "slot": "09:00", "status": status})
			self.assertFalse(booking.is_active)
		booking = ensure_model(Booking, {"date": "2099-05-25", "slot": "09:00", "status": "Completed"})
		self.assertTrue(booking.is_active)

	def test_validation_error_is_a_scheduling_error(self):
		with self.assertRaises(SchedulingError):
			ensure_model(Booking, {"slot": "09:00"})

	def test_dump_uses_camel_case(self):
		booking = ensure_model(Booking, {"date": "2099-05-25", "slot": "09:00", "roomId": "r1"})
		dumped = booking.model_dump(by_alias=True)
		self.assertEqual(dumped["roomId"], "r1")
		self.assertIn("therapistIds", dumped)


class TestCatalogIngestion(unittest.TestCase):
	"""Tests for therapist, room, patient and timing models."""

	def test_room_aliases(self):
		self.assertEqual(ensure_model(Room, {"roomNumber": "101"}).id, "101")
		self.assertEqual(ensure_model(Room, {"roomId": "r2"}).id, "r2")
		self.assertEqual(ensure_model(Room, {"id": "r3"}).display_name, "r3")

	def test_patient_aliases(self):
		self.assertEqual(ensure_model(Patient, {"patientId": "p1", "gender": "Male"}).gender, "male")

	def test_therapist_availability_normalized(self):
		therapist = ensure_model(Therapist, {
			"id": "t1",
			"gender": "FEMALE",
			"availability": {"2099-05-25": ["9:00", "10:00:00"]},
		})
		self.assertEqual(therapist.gender, "female")
		self.assertEqual(therapist.availability["2099-05-25"], ["09:00", "10:00"])

	def test_ensure_models_none_is_empty(self):
		self.assertEqual(ensure_models(Therapist, None), [])

	def test_break_outside_opening_hours_is_rejected(self):
		with self.assertRaises(ValueError):
			DayTiming(start="09:00", end="12:00", break_start="12:30", break_end="13:00")

	def test_start_after_end_is_rejected(self):
		with self.assertRaises(ValueError):
			DayTiming(start="18:00", end="09:00")

	def test_single_break_field_means_no_break(self):
		day = DayTiming(start="09:00", end="12:00", break_start="10:00")
		self.assertFalse(day.has_break)
		self.assertIsNone(day.break_window)

	def test_closed_days(self):
		self.assertTrue(DayTiming(is_open=False, start="09:00", end="12:00").is_closed)
		self.assertTrue(DayTiming(start="09:00", end="12:00", status="holiday").is_closed)
		self.assertTrue(DayTiming(start="09:00", end="12:00", status="weekly_off").is_closed)
		self.assertFalse(DayTiming(start="09:00", end="12:00", status="half_day").is_closed)

	def test_clinic_timings_shapes(self):
		flat = ensure_model(ClinicTimings, {"start": "09:00", "end": "12:00"})
		self.assertEqual(flat.for_date("2099-05-25").start, "09:00")
		self.assertEqual(flat.for_date("2099-05-31").start, "09:00")

		wrapped = ensure_model(ClinicTimings, {
			"weekdays": {"Monday": {"isOpen": True, "start": "08:00", "end": "14:00"}},
			"timezone": "America/Bogota",
		})
		self.assertEqual(wrapped.for_date("2099-05-25").start, "08:00")
		self.assertIsNone(wrapped.for_date("2099-05-26"))
		self.assertEqual(wrapped.timezone, "America/Bogota")

		bare = ensure_model(ClinicTimings, {"monday": {"start": "10:00", "end": "11:00"}})
		self.assertEqual(bare.for_date("2099-05-25").end, "11:00")

	def test_invalid_timings_wrapped_in_validation_error(self):
		with self.assertRaises(ValidationError):
			ensure_model(ClinicTimings, {"start": "12:00", "end": "09:00"})
