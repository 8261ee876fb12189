"""
Booking Rules Service

Pre-commit validation of a booking request against the booking snapshot.
These checks are the last gate before a caller commits a booking and must
be re-run immediately before the write: the engine validates a snapshot,
it does not lock anything.
"""

import logging
from datetime import datetime
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from clinic_scheduling import config
from clinic_scheduling.clinic_scheduling.models import (
	REASON_PAST,
	REASON_PATIENT_BUSY,
	REASON_ROOM_UNAVAILABLE,
	REASON_THERAPISTS_BUSY,
	Booking,
	ClinicTimings,
	Patient,
	Room,
	Therapist,
	ensure_model,
	ensure_models,
)
from clinic_scheduling.clinic_scheduling.scheduling.availability import (
	AvailabilityOverride,
	filter_therapists_by_gender,
	is_patient_available,
	is_room_available,
	is_therapist_available,
)
from clinic_scheduling.clinic_scheduling.scheduling.slots import generate_time_slots
from clinic_scheduling.clinic_scheduling.scheduling.timing import (
	add_days,
	format_date,
	is_slot_in_past,
	normalize_slot,
	parse_date,
	to_minutes,
)

logger = logging.getLogger(__name__)


def can_book_appointment(
	therapist_ids: Iterable[str],
	room_number: Optional[str],
	date: str,
	slot: str,
	appointments: Iterable[Union[Booking, dict]],
	patient_id: Optional[str] = None,
	therapist_availability: Optional[AvailabilityOverride] = None,
	room_availability: Optional[Dict[str, List[str]]] = None,
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> bool:
	"""
	Valida una cita antes de confirmarla.

	Args:
		therapist_ids: terapeutas pedidos
		room_number: sala pedida (None -> no se valida sala)
		date: fecha "YYYY-MM-DD"
		slot: inicio "HH:mm"
		appointments: snapshot de citas
		patient_id: paciente (opcional)
		therapist_availability: {therapist_id: {date: [slots]}} (opcional)
		room_availability: {date: [slots]} de la sala (opcional)
		duration: duración propuesta

	Returns:
		bool: True solo si todas las validaciones pasan

	Algoritmo (en orden):
		1. Whitelist de la sala (si se provee) debe contener el slot
		2. La sala no tiene citas solapadas
		3. Cada terapeuta: habilitado en ese horario y sin citas solapadas
		4. El paciente no tiene citas solapadas

	Todas las verificaciones usan solapamiento de intervalos, no igualdad
	de strings: una cita de 90 min a las 09:00 bloquea las 10:00.
	"""
	appointments = ensure_models(Booking, appointments)
	slot = normalize_slot(slot)

	# 1-2. Sala
	if room_number:
		room = Room(id=room_number, availability=room_availability)
		if not is_room_available(room, date, slot, appointments, duration):
			return False

	# 3. Terapeutas
	for therapist_id in therapist_ids or []:
		therapist = Therapist(id=therapist_id)
		if not is_therapist_available(
			therapist, date, slot, appointments, duration, therapist_availability
		):
			return False

	# 4. Paciente
	if patient_id and not is_patient_available(patient_id, date, slot, appointments, duration):
		return False

	return True


def can_book_therapy_appointment(
	appointments: Iterable[Union[Booking, dict]],
	date: str,
	slot: str,
	room_id: Optional[str],
	therapist_ids: Iterable[str],
	client_id: Optional[str],
	slot_duration: int = config.DEFAULT_BOOKING_DURATION
) -> Dict[str, Any]:
	"""
	Verificación integrada de doble reserva, con razón.

	Returns:
		dict: {"available": bool, "reason": str | None}

	Orden: paciente, terapeutas, sala. Se reporta el primer fallo.
	"""
	appointments = ensure_models(Booking, appointments)
	slot = normalize_slot(slot)

	if client_id and not is_patient_available(client_id, date, slot, appointments, slot_duration):
		return {"available": False, "reason": REASON_PATIENT_BUSY}

	therapist_ids = list(therapist_ids or [])
	if not therapist_ids or not all(
		is_therapist_available(Therapist(id=tid), date, slot, appointments, slot_duration)
		for tid in therapist_ids
	):
		return {"available": False, "reason": REASON_THERAPISTS_BUSY}

	if room_id and not is_room_available(Room(id=room_id), date, slot, appointments, slot_duration):
		return {"available": False, "reason": REASON_ROOM_UNAVAILABLE}

	return {"available": True, "reason": None}


def _iter_future_options(
	slots: List[str],
	after_slot: str,
	date: str,
	therapists: List[Therapist],
	rooms: List[Room],
	appointments: List[Booking],
	client_id: Optional[str],
	duration: int
) -> Iterator[Dict[str, Any]]:
	"""Genera combinaciones (slot, terapeuta, sala) libres posteriores a after_slot."""
	after = to_minutes(after_slot)
	for slot in slots:
		if to_minutes(slot) <= after:
			continue
		if client_id and not is_patient_available(client_id, date, slot, appointments, duration):
			continue
		for room in rooms:
			if not is_room_available(room, date, slot, appointments, duration):
				continue
			for therapist in therapists:
				if is_therapist_available(therapist, date, slot, appointments, duration):
					yield {
						"slot": f"{slot}-{room.id}",
						"therapistIds": [therapist.id],
						"roomId": room.id,
					}


def get_booking_options(
	date: str,
	slot: str,
	client_id: str,
	appointments: Iterable[Union[Booking, dict]],
	all_therapists: Iterable[Union[Therapist, dict]],
	all_rooms: Iterable[Union[Room, dict]],
	clients: Iterable[Union[Patient, dict]],
	clinic_timings: Union[ClinicTimings, dict],
	selected_therapists: Optional[List[str]] = None,
	selected_room: Optional[str] = None,
	now: Optional[datetime] = None,
	max_alternatives: int = config.MAX_RECURRING_ALTERNATIVES,
	enforce_gender_match: bool = True,
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> Dict[str, Any]:
	"""
	Opciones de reserva para una fecha/slot concretos.

	Returns:
		dict: {
			"date", "slot", "available", "reason",
			"selectedTherapists": [ids disponibles en el slot],
			"selectedRoom",
			"alternatives": [{"slot": "HH:mm-roomId", "therapistIds", "roomId"}]
		}

	Algoritmo:
		1. Terapeutas elegibles: los seleccionados, o todos los del género
		   del paciente
		2. Slot pasado -> "Time Slot is in the past", sin alternativas
		3. Verificación integrada (paciente, terapeutas, sala)
		4. Sin sala seleccionada: alguna sala debe estar libre
		5. Si no es reservable: alternativas futuras del mismo día,
		   hasta max_alternatives
	"""
	appointments = ensure_models(Booking, appointments)
	therapists = ensure_models(Therapist, all_therapists)
	rooms = ensure_models(Room, all_rooms)
	clients = ensure_models(Patient, clients)
	timings = ensure_model(ClinicTimings, clinic_timings)
	slot = normalize_slot(slot)

	patient = next((p for p in clients if p.id == client_id), None)
	patient_gender = patient.gender if patient else None

	# 1. Terapeutas elegibles
	if selected_therapists:
		eligible = [t for t in therapists if t.id in selected_therapists]
	else:
		eligible = filter_therapists_by_gender(therapists, patient_gender, enforce_gender_match)

	available_therapists = [
		t for t in eligible
		if is_therapist_available(t, date, slot, appointments, slot_duration)
	]

	result = {
		"date": date,
		"slot": slot,
		"available": False,
		"reason": None,
		"selectedTherapists": [t.id for t in available_therapists],
		"selectedRoom": selected_room,
		"alternatives": [],
	}

	# 2. Pasado
	if is_slot_in_past(date, slot, now, timings.timezone):
		result["reason"] = REASON_PAST
		return result

	# 3. Verificación integrada
	check = can_book_therapy_appointment(
		appointments,
		date,
		slot,
		selected_room,
		[t.id for t in available_therapists],
		client_id,
		slot_duration
	)

	# 4. Sala automática
	if check["available"] and not selected_room:
		if not any(is_room_available(r, date, slot, appointments, slot_duration) for r in rooms):
			check = {"available": False, "reason": REASON_ROOM_UNAVAILABLE}

	result["available"] = check["available"]
	result["reason"] = check["reason"]

	# 5. Alternativas futuras
	if not check["available"]:
		candidates = _iter_future_options(
			generate_time_slots(date, timings, slot_duration),
			slot,
			date,
			eligible,
			rooms,
			appointments,
			client_id,
			slot_duration
		)
		result["alternatives"] = list(islice(candidates, max(max_alternatives, 0)))

	return result


def get_therapist_conflicts(
	appointments: Iterable[Union[Booking, dict]],
	date: str,
	slot: str,
	therapist_ids: Iterable[str],
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> List[str]:
	"""Terapeutas (de therapist_ids) con una cita solapada en date/slot."""
	appointments = ensure_models(Booking, appointments)
	slot = normalize_slot(slot)
	return [
		tid for tid in therapist_ids
		if not is_therapist_available(Therapist(id=tid), date, slot, appointments, duration)
	]


def get_recurring_conflicts(
	appointments: Iterable[Union[Booking, dict]],
	start_date: str,
	days: int,
	slot: str,
	therapist_ids: Iterable[str],
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> List[Dict[str, Any]]:
	"""
	Conflictos de terapeutas a lo largo de una serie de N días.

	Returns:
		list[dict]: [{"date", "slot", "therapistIds"}] solo para los días
		con al menos un terapeuta en conflicto. Fecha inválida -> [].
	"""
	start = parse_date(start_date)
	if start is None:
		logger.warning("get_recurring_conflicts: invalid start date %r", start_date)
		return []

	appointments = ensure_models(Booking, appointments)
	therapist_ids = list(therapist_ids)
	slot = normalize_slot(slot)

	conflicts = []
	for offset in range(max(days, 0)):
		date = add_days(format_date(start), offset)
		busy = get_therapist_conflicts(appointments, date, slot, therapist_ids, duration)
		if busy:
			conflicts.append({"date": date, "slot": slot, "therapistIds": busy})

	return conflicts
