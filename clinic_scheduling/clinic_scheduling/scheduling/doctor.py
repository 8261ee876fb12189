"""
Doctor Consultation Service

Fixed-grid (short, default 15 minute) doctor consultations:
- Booking check with reason and next free slots
- Default grid when the doctor has no static availability
- Day view of the doctor's grid with booking status

Only bookings that carry a doctor_id are considered; therapy bookings
never block a doctor.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from clinic_scheduling import config
from clinic_scheduling.clinic_scheduling.models import (
	REASON_PAST,
	SLOT_AVAILABLE,
	Booking,
	ClinicTimings,
	Doctor,
	ensure_model,
	ensure_models,
)
from clinic_scheduling.clinic_scheduling.scheduling.overlap import overlaps
from clinic_scheduling.clinic_scheduling.scheduling.slots import generate_time_slots
from clinic_scheduling.clinic_scheduling.scheduling.timing import (
	format_date,
	is_slot_in_past,
	normalize_slot,
	parse_date,
	to_hhmm,
	to_minutes,
)

logger = logging.getLogger(__name__)

REASON_DOCTOR_BUSY = "Doctor is busy"
REASON_PATIENT_BUSY = "Patient is busy"

# {doctor_id: {date: ["HH:mm", ...]}}
DoctorAvailability = Dict[str, Dict[str, List[str]]]


def _consultation_minutes(booking: Booking) -> int:
	"""Duración de una consulta: la explícita o DOCTOR_SLOT_MINUTES."""
	if "duration" in booking.model_fields_set:
		return booking.duration
	return config.DOCTOR_SLOT_MINUTES


def _doctor_bookings(appointments: Iterable[Union[Booking, dict]]) -> List[Booking]:
	return [b for b in ensure_models(Booking, appointments) if b.doctor_id and b.is_active]


def _occupies(booking: Booking, date: str, slot: str, duration: int) -> bool:
	if booking.date != date:
		return False
	return overlaps(booking.start_minutes, _consultation_minutes(booking), slot, duration)


def generate_default_doctor_slots() -> List[str]:
	"""Grid DOCTOR_DAY_START..DOCTOR_DAY_END (inclusive) cada DOCTOR_SLOT_MINUTES."""
	start = to_minutes(config.DOCTOR_DAY_START)
	end = to_minutes(config.DOCTOR_DAY_END)
	step = config.DOCTOR_SLOT_MINUTES if config.DOCTOR_SLOT_MINUTES > 0 else 15
	return [to_hhmm(minutes) for minutes in range(start, end + 1, step)]


def get_next_available_doctor_slots(
	doctor_id: str,
	date: str,
	appointments: Iterable[Union[Booking, dict]],
	doctor_availability: Optional[DoctorAvailability] = None,
	now: Optional[datetime] = None,
	max_results: int = 5,
	after_slot: Optional[str] = None,
	duration: int = config.DOCTOR_SLOT_MINUTES
) -> List[str]:
	"""
	Próximos slots libres del doctor en un día.

	Args:
		doctor_availability: whitelist estática; sin entrada para el doctor
			o la fecha se usa el grid por defecto
		after_slot: solo slots estrictamente posteriores

	Returns:
		list[str]: hasta max_results horas, futuras y sin citas solapadas
	"""
	bookings = [b for b in _doctor_bookings(appointments) if b.doctor_id == doctor_id]

	static = ((doctor_availability or {}).get(doctor_id) or {}).get(date)
	if static:
		slots = sorted({normalize_slot(s) for s in static}, key=to_minutes)
	else:
		slots = generate_default_doctor_slots()

	after = to_minutes(normalize_slot(after_slot)) if after_slot else None

	free = []
	for slot in slots:
		if after is not None and to_minutes(slot) <= after:
			continue
		if is_slot_in_past(date, slot, now):
			continue
		if any(_occupies(b, date, slot, duration) for b in bookings):
			continue
		free.append(slot)
		if len(free) >= max_results:
			break

	return free


def check_doctor_booking(
	doctor_id: str,
	date: str,
	slot: str,
	appointments: Iterable[Union[Booking, dict]],
	patient_id: Optional[str] = None,
	doctor_availability: Optional[DoctorAvailability] = None,
	now: Optional[datetime] = None,
	duration: int = config.DOCTOR_SLOT_MINUTES
) -> Dict[str, Any]:
	"""
	Verifica una consulta médica.

	Returns:
		dict: {"available": bool, "reason": str | None, "alternatives": ["HH:mm", ...]}

	Algoritmo (primer fallo gana):
		1. Slot pasado -> "Time Slot is in the past"
		2. Doctor con consulta solapada -> "Doctor is busy"
		3. Paciente con consulta solapada -> "Patient is busy"
		4. Whitelist del doctor configurada sin el slot -> "Doctor is busy"
	En cada fallo se sugieren hasta 5 slots posteriores.
	"""
	slot = normalize_slot(slot)
	bookings = _doctor_bookings(appointments)

	def _unavailable(reason: str) -> Dict[str, Any]:
		return {
			"available": False,
			"reason": reason,
			"alternatives": get_next_available_doctor_slots(
				doctor_id, date, bookings, doctor_availability, now, after_slot=slot, duration=duration
			),
		}

	# 1. Pasado
	if is_slot_in_past(date, slot, now):
		return _unavailable(REASON_PAST)

	# 2. Doctor
	if any(b.doctor_id == doctor_id and _occupies(b, date, slot, duration) for b in bookings):
		return _unavailable(REASON_DOCTOR_BUSY)

	# 3. Paciente
	if patient_id and any(b.client_id == patient_id and _occupies(b, date, slot, duration) for b in bookings):
		return _unavailable(REASON_PATIENT_BUSY)

	# 4. Whitelist estática
	static = ((doctor_availability or {}).get(doctor_id) or {}).get(date) or []
	if static and slot not in [normalize_slot(s) for s in static]:
		return _unavailable(REASON_DOCTOR_BUSY)

	return {"available": True, "reason": None, "alternatives": []}


def get_doctor_available_slots(
	doctor: Union[Doctor, dict],
	date: str,
	appointments: Iterable[Union[Booking, dict]],
	duration: int = config.DOCTOR_SLOT_MINUTES
) -> List[str]:
	"""Whitelist estática del doctor para la fecha, sin los slots ocupados."""
	doctor = ensure_model(Doctor, doctor)
	bookings = [b for b in _doctor_bookings(appointments) if b.doctor_id == doctor.id]
	static = (doctor.availability or {}).get(date) or []
	return [
		slot for slot in static
		if not any(_occupies(b, date, slot, duration) for b in bookings)
	]


def is_doctor_available(
	doctor: Union[Doctor, dict],
	date: str,
	slot: str,
	appointments: Iterable[Union[Booking, dict]],
	duration: int = config.DOCTOR_SLOT_MINUTES
) -> bool:
	return normalize_slot(slot) in get_doctor_available_slots(doctor, date, appointments, duration)


def get_doctor_slots_for_day(
	doctor: Union[Doctor, dict],
	date: str,
	clinic_timings: Union[ClinicTimings, dict],
	appointments: Iterable[Union[Booking, dict]],
	slot_interval: int = config.DOCTOR_SLOT_MINUTES
) -> List[Dict[str, Any]]:
	"""
	Grid del doctor para un día, con el estado de cada slot.

	Returns:
		list[dict]: [{"id", "time", "status", "clientId", "clientName",
		"appointmentId"}], vacío si la clínica está cerrada o la fecha es
		inválida. status es "available" o el estado de la consulta que
		ocupa el slot.
	"""
	target_date = parse_date(date)
	if target_date is None:
		logger.warning("get_doctor_slots_for_day: invalid date %r", date)
		return []
	date = format_date(target_date)

	doctor = ensure_model(Doctor, doctor)
	bookings = [b for b in _doctor_bookings(appointments) if b.doctor_id == doctor.id]

	rows = []
	for slot in generate_time_slots(date, clinic_timings, slot_interval):
		booking = next((b for b in bookings if _occupies(b, date, slot, slot_interval)), None)
		rows.append({
			"id": f"{doctor.id}_{date}_{slot}",
			"time": slot,
			"status": booking.status if booking else SLOT_AVAILABLE,
			"clientId": booking.client_id if booking else None,
			"clientName": booking.patient_name if booking else None,
			"appointmentId": booking.id if booking else None,
		})

	return rows
