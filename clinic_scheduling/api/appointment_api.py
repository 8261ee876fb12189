"""
Appointment API

In-process facade used by the booking screens. Every function:
- Validates raw request parameters (dates, slots, identifiers)
- Reconciles payload field names through the scheduling models
- Calls the scheduling engine
- Returns plain dicts / lists with camelCase keys

Unavailability is returned as data. Malformed input raises
ValidationError; unexpected engine failures are logged and re-raised as
SchedulingError.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from clinic_scheduling import config
from clinic_scheduling.exceptions import SchedulingError, ValidationError

# Import scheduling services
from clinic_scheduling.clinic_scheduling.models import Booking, ensure_models
from clinic_scheduling.clinic_scheduling.scheduling.slots import get_available_slots_for_entity
from clinic_scheduling.clinic_scheduling.scheduling.timeline import generate_room_slots
from clinic_scheduling.clinic_scheduling.scheduling.matrix import build_schedule_matrix
from clinic_scheduling.clinic_scheduling.scheduling.overlap import check_overlap
from clinic_scheduling.clinic_scheduling.scheduling.rules import can_book_appointment, get_booking_options
from clinic_scheduling.clinic_scheduling.scheduling.recurring import get_recurring_slot_alternatives
from clinic_scheduling.clinic_scheduling.scheduling.doctor import check_doctor_booking

# Import validators
from clinic_scheduling.api.shared import (
	validate_date_string,
	validate_docname,
	validate_slot_string,
)

logger = logging.getLogger(__name__)


def get_available_slots(
	entity_id: str,
	entity_type: str,
	date: str,
	bookings: List[Dict[str, Any]],
	clinic_timings: Dict[str, Any],
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> List[str]:
	"""
	Slots libres de un terapeuta o sala en un día.

	Args:
		entity_id: id del terapeuta / sala
		entity_type: "therapist" | "room"
		date: fecha (YYYY-MM-DD)
		bookings: snapshot de citas
		clinic_timings: horario semanal
		slot_duration: minutos por slot

	Returns:
		list[str]: ["10:00", "11:00", ...]
	"""
	entity_id = validate_docname(entity_id, "entity_id")
	date = validate_date_string(date)

	try:
		return get_available_slots_for_entity(
			entity_id, entity_type, date, bookings, clinic_timings, slot_duration
		)
	except ValidationError:
		raise
	except Exception as e:
		logger.exception("Error getting available slots for %s %s", entity_type, entity_id)
		raise SchedulingError("Error getting available slots") from e


def get_room_timeline(
	room: Dict[str, Any],
	date: str,
	bookings: List[Dict[str, Any]],
	therapists: List[Dict[str, Any]],
	clinic_timings: Dict[str, Any],
	slot_duration: int = config.DEFAULT_SLOT_DURATION,
	enforce_gender_match: bool = True,
	patient_gender: Optional[str] = None,
	patients: Optional[List[Dict[str, Any]]] = None,
	now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
	"""
	Timeline de una sala para un día.

	Returns:
		list[dict]: [
			{
				"start": "09:00",
				"end": "09:45",
				"isBreak": False,
				"status": "scheduled",
				"therapistAvailable": True,
				"availableTherapists": [...],
				"booking": {...} | None,
				"slotId": "r1_2099-05-25_09:00_09:45"
			},
			...
		]
	"""
	date = validate_date_string(date)

	try:
		blocks = generate_room_slots(
			room,
			date,
			bookings,
			therapists,
			clinic_timings,
			slot_duration=slot_duration,
			enforce_gender_match=enforce_gender_match,
			patient_gender=patient_gender,
			patients=patients,
			now=now,
		)
		return [block.model_dump(by_alias=True) for block in blocks]
	except ValidationError:
		raise
	except Exception as e:
		logger.exception("Error building room timeline for %s", date)
		raise SchedulingError("Error building room timeline") from e


def get_schedule_matrix(
	date: str,
	bookings: List[Dict[str, Any]],
	rooms: List[Dict[str, Any]],
	therapists: List[Dict[str, Any]],
	clinic_timings: Dict[str, Any],
	enforce_gender_match: bool = False,
	patient_gender: Optional[str] = None,
	slot_duration: Optional[int] = None,
	patients: Optional[List[Dict[str, Any]]] = None,
	now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
	"""
	Matriz del día: [{"roomId", "roomName", "slots": [...]}] por sala.
	"""
	date = validate_date_string(date)

	try:
		matrix = build_schedule_matrix(
			date,
			bookings,
			rooms,
			therapists,
			clinic_timings,
			enforce_gender_match=enforce_gender_match,
			patient_gender=patient_gender,
			slot_duration=slot_duration,
			patients=patients,
			now=now,
		)
		return [room.model_dump(by_alias=True) for room in matrix]
	except ValidationError:
		raise
	except Exception as e:
		logger.exception("Error building schedule matrix for %s", date)
		raise SchedulingError("Error building schedule matrix") from e


def validate_appointment(
	date: str,
	slot: str,
	appointments: List[Dict[str, Any]],
	room_id: Optional[str] = None,
	therapist_ids: Optional[List[str]] = None,
	patient_id: Optional[str] = None,
	duration: int = config.DEFAULT_BOOKING_DURATION,
	appointment_id: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Valida si una cita es válida ANTES de guardarla.
	Útil para UI/frontend para mostrar errores antes de submit.

	Args:
		date: fecha (YYYY-MM-DD)
		slot: inicio (HH:MM)
		appointments: snapshot de citas
		room_id: sala pedida
		therapist_ids: terapeutas pedidos
		patient_id: paciente
		duration: duración en minutos
		appointment_id: cita existente a excluir (para reprogramaciones)

	Returns:
		dict: {
			"valid": bool,
			"errors": list[str],
			"overlapInfo": {
				"room": {...},
				"therapists": {therapist_id: {...}},
				"patient": {...}
			}
		}
	"""
	date = validate_date_string(date)
	slot = validate_slot_string(slot)
	room_id = validate_docname(room_id, "room_id") if room_id else None
	patient_id = validate_docname(patient_id, "patient_id") if patient_id else None
	therapist_ids = [validate_docname(tid, "therapist_id") for tid in (therapist_ids or [])]

	errors = []
	overlap_info: Dict[str, Any] = {"room": None, "therapists": {}, "patient": None}

	try:
		bookings = ensure_models(Booking, appointments)
		if appointment_id:
			bookings = [b for b in bookings if b.id != appointment_id]

		# Overlap por recurso
		if room_id:
			overlap_info["room"] = check_overlap(bookings, date, slot, duration, room_id=room_id)
			if overlap_info["room"]["has_overlap"]:
				errors.append(f"Room {room_id} is busy until {overlap_info['room']['busy_until']}")

		for therapist_id in therapist_ids:
			info = check_overlap(bookings, date, slot, duration, therapist_id=therapist_id)
			overlap_info["therapists"][therapist_id] = info
			if info["has_overlap"]:
				errors.append(f"Therapist {therapist_id} is busy until {info['busy_until']}")

		if patient_id:
			overlap_info["patient"] = check_overlap(bookings, date, slot, duration, client_id=patient_id)
			if overlap_info["patient"]["has_overlap"]:
				errors.append(f"Patient {patient_id} already has an appointment at this time")

		valid = can_book_appointment(
			therapist_ids, room_id, date, slot, bookings, patient_id=patient_id, duration=duration
		)
	except ValidationError:
		raise
	except Exception as e:
		logger.exception("Error validating appointment on %s %s", date, slot)
		raise SchedulingError("Error validating appointment") from e

	return {
		"valid": valid and not errors,
		"errors": errors,
		"overlapInfo": overlap_info,
	}


def get_booking_options_for_slot(
	date: str,
	slot: str,
	client_id: str,
	appointments: List[Dict[str, Any]],
	therapists: List[Dict[str, Any]],
	rooms: List[Dict[str, Any]],
	patients: List[Dict[str, Any]],
	clinic_timings: Dict[str, Any],
	selected_therapists: Optional[List[str]] = None,
	selected_room: Optional[str] = None,
	now: Optional[datetime] = None,
	enforce_gender_match: bool = True,
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> Dict[str, Any]:
	"""Opciones de reserva (disponibilidad + alternativas) para un slot."""
	date = validate_date_string(date)
	slot = validate_slot_string(slot)
	client_id = validate_docname(client_id, "client_id")

	try:
		return get_booking_options(
			date,
			slot,
			client_id,
			appointments,
			therapists,
			rooms,
			patients,
			clinic_timings,
			selected_therapists=selected_therapists,
			selected_room=selected_room,
			now=now,
			enforce_gender_match=enforce_gender_match,
			slot_duration=slot_duration,
		)
	except ValidationError:
		raise
	except Exception as e:
		logger.exception("Error getting booking options for %s %s", date, slot)
		raise SchedulingError("Error getting booking options") from e


def get_recurring_alternatives(
	start_date: str,
	days: int,
	requested_slot: str,
	patient_id: str,
	therapists: List[Dict[str, Any]],
	rooms: List[Dict[str, Any]],
	patients: List[Dict[str, Any]],
	appointments: List[Dict[str, Any]],
	selected_therapists: Optional[List[str]] = None,
	selected_room: Optional[str] = None,
	now: Optional[datetime] = None,
	enforce_gender_match: bool = True,
	clinic_timings: Optional[Dict[str, Any]] = None,
	duration: int = config.DEFAULT_BOOKING_DURATION,
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> List[Dict[str, Any]]:
	"""
	Disponibilidad día por día de una serie recurrente.

	Returns:
		list[dict]: [{"date", "available", "reason", "alternatives": [{"slot", "roomId", "time"}]}]
	"""
	start_date = validate_date_string(start_date, "start_date")
	requested_slot = validate_slot_string(requested_slot, "requested_slot")
	patient_id = validate_docname(patient_id, "patient_id")

	try:
		results = get_recurring_slot_alternatives(
			start_date,
			days,
			requested_slot,
			patient_id,
			therapists,
			rooms,
			patients,
			appointments,
			selected_therapists=selected_therapists,
			selected_room=selected_room,
			now=now,
			enforce_gender_match=enforce_gender_match,
			duration=duration,
			clinic_timings=clinic_timings,
			slot_duration=slot_duration,
		)
		return [day.model_dump(by_alias=True) for day in results]
	except ValidationError:
		raise
	except Exception as e:
		logger.exception("Error resolving recurring alternatives from %s", start_date)
		raise SchedulingError("Error resolving recurring alternatives") from e


def check_doctor_appointment(
	doctor_id: str,
	date: str,
	slot: str,
	appointments: List[Dict[str, Any]],
	patient_id: Optional[str] = None,
	doctor_availability: Optional[Dict[str, Dict[str, List[str]]]] = None,
	now: Optional[datetime] = None,
	duration: int = config.DOCTOR_SLOT_MINUTES
) -> Dict[str, Any]:
	"""Verificación de una consulta médica: {"available", "reason", "alternatives"}."""
	doctor_id = validate_docname(doctor_id, "doctor_id")
	date = validate_date_string(date)
	slot = validate_slot_string(slot)

	try:
		return check_doctor_booking(
			doctor_id,
			date,
			slot,
			appointments,
			patient_id=patient_id,
			doctor_availability=doctor_availability,
			now=now,
			duration=duration,
		)
	except ValidationError:
		raise
	except Exception as e:
		logger.exception("Error checking doctor appointment for %s", doctor_id)
		raise SchedulingError("Error checking doctor appointment") from e
