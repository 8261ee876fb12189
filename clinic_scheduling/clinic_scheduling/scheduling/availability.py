"""
Availability Service

Free/busy tests for every resource type (therapist, room, patient),
combining:
- Static availability (whitelist of slot starts per date, optional)
- Existing bookings (overlap-aware, see overlap.py)
- Gender-match policy for therapists
"""

from typing import Dict, Iterable, List, Optional

from clinic_scheduling import config
from clinic_scheduling.clinic_scheduling.models import Booking, Room, Therapist, ensure_models
from clinic_scheduling.clinic_scheduling.scheduling.overlap import booking_overlaps
from clinic_scheduling.clinic_scheduling.scheduling.timing import normalize_slot

# {resource_id: {date: ["HH:mm", ...]}}
AvailabilityOverride = Dict[str, Dict[str, List[str]]]


def filter_therapists_by_gender(
	therapists: Iterable[Therapist],
	patient_gender: Optional[str],
	enforce: bool
) -> List[Therapist]:
	"""
	Filtra terapeutas por género del paciente.

	Si la política no se aplica o el género es desconocido, devuelve la
	lista completa sin filtrar.
	"""
	therapists = list(therapists)
	if not enforce or not patient_gender:
		return therapists

	normalized = patient_gender.strip().lower()
	return [t for t in therapists if t.gender == normalized]


def _is_statically_available(
	resource_id: str,
	own_availability: Optional[Dict[str, List[str]]],
	date: str,
	slot: str,
	availability: Optional[AvailabilityOverride] = None
) -> bool:
	"""
	Whitelist estática de horarios.

	Prioridad: override explícito > availability del recurso > siempre libre.
	Una fecha ausente en un whitelist configurado significa no disponible.
	"""
	if availability and resource_id in availability:
		slots = availability[resource_id].get(date) or []
		return slot in [normalize_slot(s) for s in slots]

	if own_availability is None:
		return True

	return slot in (own_availability.get(date) or [])


def is_therapist_available(
	therapist: Therapist,
	date: str,
	slot: str,
	bookings: Iterable[Booking],
	duration: int = config.DEFAULT_BOOKING_DURATION,
	availability: Optional[AvailabilityOverride] = None
) -> bool:
	"""
	True si el terapeuta trabaja en ese horario y ninguna de sus citas del
	día se solapa con [slot, slot + duration).
	"""
	if not therapist or not therapist.id:
		return False

	slot = normalize_slot(slot)
	if not _is_statically_available(therapist.id, therapist.availability, date, slot, availability):
		return False

	return not any(
		therapist.id in booking.therapist_ids and booking_overlaps(booking, date, slot, duration)
		for booking in bookings
	)


def is_room_available(
	room: Room,
	date: str,
	slot: str,
	bookings: Iterable[Booking],
	duration: int = config.DEFAULT_BOOKING_DURATION,
	availability: Optional[AvailabilityOverride] = None
) -> bool:
	"""True si la sala está habilitada en ese horario y no está ocupada."""
	if not room or not room.id:
		return False

	slot = normalize_slot(slot)
	if not _is_statically_available(room.id, room.availability, date, slot, availability):
		return False

	return not any(
		booking.room_id == room.id and booking_overlaps(booking, date, slot, duration)
		for booking in bookings
	)


def is_patient_available(
	client_id: str,
	date: str,
	slot: str,
	bookings: Iterable[Booking],
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> bool:
	"""
	True si el paciente no tiene otra cita solapada ese día, en cualquier
	sala o con cualquier terapeuta.
	"""
	slot = normalize_slot(slot)
	return not any(
		booking.client_id == client_id and booking_overlaps(booking, date, slot, duration)
		for booking in bookings
	)


def get_available_therapists(
	all_therapists: Iterable[Therapist],
	patient_gender: Optional[str],
	date: str,
	slot: str,
	bookings: Iterable[Booking],
	enforce_gender_match: bool,
	availability: Optional[AvailabilityOverride] = None,
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> List[Therapist]:
	"""Filtro por género y luego por disponibilidad, en orden de catálogo."""
	therapists = ensure_models(Therapist, all_therapists)
	bookings = ensure_models(Booking, bookings)

	candidates = filter_therapists_by_gender(therapists, patient_gender, enforce_gender_match)
	return [
		t for t in candidates
		if is_therapist_available(t, date, slot, bookings, duration, availability)
	]


def get_available_rooms(
	all_rooms: Iterable[Room],
	date: str,
	slot: str,
	bookings: Iterable[Booking],
	availability: Optional[AvailabilityOverride] = None,
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> List[Room]:
	rooms = ensure_models(Room, all_rooms)
	bookings = ensure_models(Booking, bookings)
	return [
		room for room in rooms
		if is_room_available(room, date, slot, bookings, duration, availability)
	]
