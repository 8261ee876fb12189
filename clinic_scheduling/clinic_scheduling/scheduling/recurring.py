"""
Recurring Booking Service

Evaluates multi-day ("recurring") booking requests one calendar day at a
time and proposes alternative (time, room) pairs when the requested
combination is not bookable. Also provides the single-resource fallback
helpers used by non-recurring flows.

Alternative candidates are produced lazily by iter_slot_room_candidates
and truncated by the caller.
"""

import logging
from datetime import datetime
from itertools import islice
from typing import Dict, Iterable, Iterator, List, Optional, Union

from clinic_scheduling import config
from clinic_scheduling.exceptions import ValidationError
from clinic_scheduling.clinic_scheduling.models import (
	REASON_PAST,
	REASON_PATIENT_BUSY,
	REASON_ROOM_UNAVAILABLE,
	REASON_THERAPISTS_BUSY,
	SLOT_AVAILABLE,
	Alternative,
	Booking,
	ClinicTimings,
	DayResult,
	Patient,
	Room,
	Therapist,
	ensure_model,
	ensure_models,
)
from clinic_scheduling.clinic_scheduling.scheduling.availability import (
	filter_therapists_by_gender,
	get_available_rooms,
	is_patient_available,
	is_room_available,
	is_therapist_available,
)
from clinic_scheduling.clinic_scheduling.scheduling.matrix import build_schedule_matrix
from clinic_scheduling.clinic_scheduling.scheduling.overlap import booking_overlaps
from clinic_scheduling.clinic_scheduling.scheduling.slots import generate_time_slots
from clinic_scheduling.clinic_scheduling.scheduling.timing import (
	add_days,
	format_date,
	is_slot_in_past,
	normalize_slot,
	parse_date,
	to_hhmm,
	to_minutes,
)

logger = logging.getLogger(__name__)

# Razones del chequeo recurrente por sala
REASON_ROOM_NOT_FOUND = "Room not found"
REASON_SLOT_NOT_FOUND = "Slot not found"
REASON_PATIENT_SCHEDULED = "Patient already scheduled"
REASON_BOOKED = "Booked"
REASON_NOT_BOOKABLE = "N/A"


def _scan_grid() -> List[str]:
	"""Grid horario por defecto (ROOM_SCAN_START..ROOM_SCAN_END, inclusive)."""
	start = to_minutes(config.ROOM_SCAN_START)
	end = to_minutes(config.ROOM_SCAN_END)
	step = config.ROOM_SCAN_STEP if config.ROOM_SCAN_STEP > 0 else 60
	return [to_hhmm(minutes) for minutes in range(start, end + 1, step)]


def _candidate_slots(
	date: str,
	therapists: List[Therapist],
	clinic_timings: Optional[ClinicTimings],
	slot_duration: int
) -> List[str]:
	"""
	Horas candidatas del día.

	Con horario de clínica: los slots generados. Sin él: la unión ordenada
	de la disponibilidad estática de los terapeutas para esa fecha.
	"""
	if clinic_timings is not None:
		return generate_time_slots(date, clinic_timings, slot_duration)

	slots = set()
	for therapist in therapists:
		if therapist.availability is None:
			continue
		slots.update(therapist.availability.get(date) or [])
	return sorted(slots, key=to_minutes)


def iter_slot_room_candidates(
	slots: Iterable[str],
	therapists: List[Therapist],
	rooms: List[Room],
	date: str,
	bookings: List[Booking],
	duration: int = config.DEFAULT_BOOKING_DURATION,
	client_id: Optional[str] = None
) -> Iterator[Alternative]:
	"""
	Genera pares (hora, sala) reservables en orden de prioridad.

	Para cada hora (en el orden recibido) y cada sala (orden de catálogo),
	emite el par si la sala está libre, algún terapeuta está libre y, si
	se indica client_id, el paciente también. Cada par aparece una vez.
	"""
	for slot in slots:
		if client_id and not is_patient_available(client_id, date, slot, bookings, duration):
			continue
		if not any(is_therapist_available(t, date, slot, bookings, duration) for t in therapists):
			continue
		for room in rooms:
			if is_room_available(room, date, slot, bookings, duration):
				yield Alternative(slot=f"{slot}-{room.id}", room_id=room.id, time=slot)


def get_recurring_slot_alternatives(
	start_date: str,
	days: int,
	requested_slot: str,
	patient_id: str,
	all_therapists: Iterable[Union[Therapist, dict]],
	all_rooms: Iterable[Union[Room, dict]],
	patients: Iterable[Union[Patient, dict]],
	appointments: Iterable[Union[Booking, dict]],
	selected_therapists: Optional[List[str]] = None,
	selected_room: Optional[str] = None,
	now: Optional[datetime] = None,
	enforce_gender_match: bool = True,
	duration: int = config.DEFAULT_BOOKING_DURATION,
	clinic_timings: Optional[Union[ClinicTimings, dict]] = None,
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> List[DayResult]:
	"""
	Evalúa una serie de N días consecutivos, cada día de forma independiente.

	Args:
		start_date: primer día "YYYY-MM-DD"
		days: cantidad de días (>= 1)
		requested_slot: hora pedida "HH:mm"
		patient_id: paciente (debe existir en patients)
		all_therapists / all_rooms / patients: catálogos
		appointments: snapshot de citas
		selected_therapists: terapeutas pedidos (opcional)
		selected_room: sala pedida (opcional)
		now: instante de referencia
		enforce_gender_match: política de género
		duration: duración de cada cita de la serie
		clinic_timings / slot_duration: horas candidatas para alternativas

	Returns:
		list[DayResult]: un resultado por día, en orden

	Raises:
		ValidationError: fecha, slot, días, paciente o now inválidos

	Algoritmo por día:
		1. Catálogo vacío (sin terapeutas o sin salas) -> "Therapists are busy"
		2. Slot pasado -> alternativas en la misma hora, otras salas
		3. Paciente con cita solapada -> alternativas en horas posteriores
		4. Sin terapeutas disponibles -> "Therapists are busy", sin alternativas
		5. Sala pedida ocupada -> otras salas libres en la misma hora
		   Sin sala pedida y ninguna libre -> "Therapists are busy" con
		   alternativas en horas posteriores
		6. Todo disponible -> available
	"""
	# Validación de entrada
	start = parse_date(start_date)
	if start is None:
		raise ValidationError(f"Missing or invalid start date: {start_date!r}")

	try:
		requested_slot = normalize_slot(requested_slot)
	except ValueError as e:
		raise ValidationError(f"Missing or invalid requested slot: {requested_slot!r}") from e
	if not requested_slot:
		raise ValidationError("Missing or invalid requested slot")

	if isinstance(days, bool) or not isinstance(days, int) or days < 1:
		raise ValidationError(f"Missing or invalid days: {days!r}")

	if now is not None and not isinstance(now, datetime):
		raise ValidationError(f"Invalid now (expected datetime): {now!r}")

	patients = ensure_models(Patient, patients)
	patient = next((p for p in patients if p.id == str(patient_id)), None)
	if patient is None:
		raise ValidationError(f"Patient {patient_id} not found")

	therapists = ensure_models(Therapist, all_therapists)
	rooms = ensure_models(Room, all_rooms)
	bookings = ensure_models(Booking, appointments)
	timings = ensure_model(ClinicTimings, clinic_timings) if clinic_timings is not None else None
	tz_name = timings.timezone if timings else None
	limit = config.MAX_RECURRING_ALTERNATIVES

	gender_matched = filter_therapists_by_gender(therapists, patient.gender, enforce_gender_match)
	if selected_therapists:
		candidates = [t for t in gender_matched if t.id in selected_therapists]
	else:
		candidates = gender_matched

	results = []
	for offset in range(days):
		date = add_days(format_date(start), offset)

		# 1. Catálogo vacío
		if not therapists or not rooms:
			results.append(DayResult(date=date, available=False, reason=REASON_THERAPISTS_BUSY))
			continue

		# 2. Slot pasado
		if is_slot_in_past(date, requested_slot, now, tz_name):
			alternatives = iter_slot_room_candidates(
				[requested_slot], gender_matched, rooms, date, bookings, duration
			)
			results.append(DayResult(
				date=date,
				available=False,
				reason=REASON_PAST,
				alternatives=list(islice(alternatives, limit)),
			))
			continue

		# 3. Paciente ocupado
		if not is_patient_available(patient.id, date, requested_slot, bookings, duration):
			later_slots = [
				s for s in _candidate_slots(date, therapists, timings, slot_duration)
				if to_minutes(s) > to_minutes(requested_slot)
			]
			alternatives = iter_slot_room_candidates(
				later_slots, gender_matched, rooms, date, bookings, duration, client_id=patient.id
			)
			results.append(DayResult(
				date=date,
				available=False,
				reason=REASON_PATIENT_BUSY,
				alternatives=list(islice(alternatives, limit)),
			))
			continue

		# 4. Terapeutas
		if not any(is_therapist_available(t, date, requested_slot, bookings, duration) for t in candidates):
			results.append(DayResult(date=date, available=False, reason=REASON_THERAPISTS_BUSY))
			continue

		# 5. Sala
		free_rooms = get_available_rooms(rooms, date, requested_slot, bookings, duration=duration)
		if selected_room:
			if not any(r.id == selected_room for r in free_rooms):
				alternatives = [
					Alternative(slot=f"{requested_slot}-{r.id}", room_id=r.id, time=requested_slot)
					for r in free_rooms if r.id != selected_room
				]
				results.append(DayResult(
					date=date,
					available=False,
					reason=REASON_ROOM_UNAVAILABLE,
					alternatives=alternatives[:limit],
				))
				continue
		elif not free_rooms:
			# Sin sala pedida y todas ocupadas: horas posteriores
			later_slots = [
				s for s in _candidate_slots(date, therapists, timings, slot_duration)
				if to_minutes(s) > to_minutes(requested_slot)
			]
			alternatives = iter_slot_room_candidates(
				later_slots, candidates, rooms, date, bookings, duration, client_id=patient.id
			)
			results.append(DayResult(
				date=date,
				available=False,
				reason=REASON_THERAPISTS_BUSY,
				alternatives=list(islice(alternatives, limit)),
			))
			continue

		# 6. Disponible
		results.append(DayResult(date=date, available=True))

	return results


def _future_slots(date: str, slots: Iterable[str], now: Optional[datetime]) -> List[str]:
	"""Horas estrictamente posteriores a now, sin duplicados y ordenadas."""
	unique = sorted(set(slots), key=to_minutes)
	return [s for s in unique if not is_slot_in_past(date, s, now)]


def check_therapists_availability(
	requested_slot: str,
	date: str,
	appointments: Iterable[Union[Booking, dict]],
	patient_gender: Optional[str],
	all_therapists: Iterable[Union[Therapist, dict]],
	selected_therapists: Optional[List[str]] = None,
	now: Optional[datetime] = None,
	enforce_gender_match: bool = True,
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> Dict[str, List[str]]:
	"""
	Busca terapeutas para un slot con fallback.

	Returns:
		dict: {"therapists": [ids], "slots": ["HH:mm", ...]}

	Algoritmo:
		1. Seleccionados (del género del paciente) libres en el slot
		2. Cualquier terapeuta del género del paciente libre en el slot
		3. Ninguno: hasta MAX_FALLBACK_SLOTS horas futuras en las que algún
		   terapeuta del género está libre (therapists = [])
	"""
	appointments = ensure_models(Booking, appointments)
	therapists = filter_therapists_by_gender(
		ensure_models(Therapist, all_therapists), patient_gender, enforce_gender_match
	)
	requested_slot = normalize_slot(requested_slot)

	def _free(therapist: Therapist, slot: str) -> bool:
		return is_therapist_available(therapist, date, slot, appointments, duration)

	# 1. Seleccionados
	if selected_therapists:
		chosen = [t.id for t in therapists if t.id in selected_therapists and _free(t, requested_slot)]
		if chosen:
			return {"therapists": chosen, "slots": [requested_slot]}

	# 2. Cualquiera del género
	chosen = [t.id for t in therapists if _free(t, requested_slot)]
	if chosen:
		return {"therapists": chosen, "slots": [requested_slot]}

	# 3. Horas futuras
	slots = []
	for therapist in therapists:
		if therapist.availability is None:
			own = _scan_grid()
		else:
			own = therapist.availability.get(date) or []
		slots.extend(s for s in own if _free(therapist, s))

	return {
		"therapists": [],
		"slots": _future_slots(date, slots, now)[:config.MAX_FALLBACK_SLOTS],
	}


def check_rooms_availability(
	requested_slot: str,
	date: str,
	appointments: Iterable[Union[Booking, dict]],
	all_rooms: Iterable[Union[Room, dict]],
	selected_room: Optional[str] = None,
	now: Optional[datetime] = None,
	duration: int = config.DEFAULT_BOOKING_DURATION
) -> Dict[str, List[str]]:
	"""
	Busca salas para un slot con fallback.

	Returns:
		dict: {"rooms": [ids], "slots": ["HH:mm", ...]}

	Algoritmo:
		1. Sala seleccionada libre -> [selected_room]
		2. Otras salas libres en el slot
		3. Ninguna: hasta MAX_FALLBACK_SLOTS horas futuras del grid horario
		   (ROOM_SCAN_START..ROOM_SCAN_END) con alguna sala libre
	"""
	appointments = ensure_models(Booking, appointments)
	rooms = ensure_models(Room, all_rooms)
	requested_slot = normalize_slot(requested_slot)

	# 1. Sala seleccionada
	if selected_room:
		room = next((r for r in rooms if r.id == selected_room), Room(id=selected_room))
		if is_room_available(room, date, requested_slot, appointments, duration):
			return {"rooms": [selected_room], "slots": [requested_slot]}

	# 2. Otras salas
	free = [
		r.id for r in rooms
		if r.id != selected_room and is_room_available(r, date, requested_slot, appointments, duration)
	]
	if free:
		return {"rooms": free, "slots": [requested_slot]}

	# 3. Horas futuras
	slots = [
		s for s in _scan_grid()
		if any(is_room_available(r, date, s, appointments, duration) for r in rooms)
	]
	return {
		"rooms": [],
		"slots": _future_slots(date, slots, now)[:config.MAX_FALLBACK_SLOTS],
	}


def get_top_common_slots(slots_a: Iterable[str], slots_b: Iterable[str], top_n: int = 5) -> List[str]:
	"""Intersección ordenada de dos listas de horas, truncada a top_n."""
	common = {normalize_slot(s) for s in slots_a} & {normalize_slot(s) for s in slots_b}
	common.discard("")
	return sorted(common)[:max(top_n, 0)]


def check_recurring_slot_availability(
	start_date: str,
	days: int,
	room_id: str,
	slot: str,
	rooms: Iterable[Union[Room, dict]],
	therapists: Iterable[Union[Therapist, dict]],
	clinic_timings: Union[ClinicTimings, dict],
	appointments: Optional[Iterable[Union[Booking, dict]]] = None,
	client_id: Optional[str] = None,
	skip_non_working_days: bool = False,
	slot_duration: int = config.DEFAULT_SLOT_DURATION,
	now: Optional[datetime] = None
) -> List[DayResult]:
	"""
	Verifica una sala y una hora a lo largo de N días usando la matriz del día.

	Args:
		skip_non_working_days: saltar sábados y domingos (no cuentan en days)

	Returns:
		list[DayResult]: reason en "Room not found", "Slot not found",
		"Patient already scheduled", "Booked", "N/A" o None si está libre.
		Fecha inválida -> [].
	"""
	start = parse_date(start_date)
	if start is None:
		logger.warning("check_recurring_slot_availability: invalid start date %r", start_date)
		return []

	rooms = ensure_models(Room, rooms)
	therapists = ensure_models(Therapist, therapists)
	bookings = ensure_models(Booking, appointments)
	timings = ensure_model(ClinicTimings, clinic_timings)
	slot = normalize_slot(slot)

	results = []
	offset = 0
	while len(results) < days:
		date = add_days(format_date(start), offset)
		offset += 1
		if skip_non_working_days and parse_date(date).weekday() >= 5:
			continue

		matrix = build_schedule_matrix(
			date, bookings, rooms, therapists, timings, slot_duration=slot_duration, now=now
		)
		room = next((r for r in matrix if r.room_id == room_id), None)
		if room is None:
			results.append(DayResult(date=date, available=False, reason=REASON_ROOM_NOT_FOUND))
			continue

		block = next((b for b in room.slots if b.start == slot), None)
		if block is None:
			results.append(DayResult(date=date, available=False, reason=REASON_SLOT_NOT_FOUND))
			continue

		block_minutes = to_minutes(block.end) - to_minutes(block.start)
		if client_id and any(
			b.client_id == client_id and booking_overlaps(b, date, slot, block_minutes)
			for b in bookings
		):
			reason = REASON_PATIENT_SCHEDULED
		elif block.booking is not None:
			reason = REASON_BOOKED
		elif block.status != SLOT_AVAILABLE:
			reason = REASON_NOT_BOOKABLE
		else:
			reason = None

		results.append(DayResult(date=date, available=reason is None, reason=reason))

	return results
