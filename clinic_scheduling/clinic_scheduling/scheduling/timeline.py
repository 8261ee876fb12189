"""
Room Timeline Service

Builds the ordered, non-overlapping block sequence of one room for one
day. Fixed-width standard slots and variable-duration bookings are merged
into a single timeline: a 45 minute booking at 09:00 pushes the next
block to 09:45 instead of the 09:30 grid boundary.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple, Union

from clinic_scheduling import config
from clinic_scheduling.clinic_scheduling.models import (
	SLOT_AVAILABLE,
	SLOT_BREAK,
	SLOT_COMPLETED,
	SLOT_NOT_AVAILABLE,
	SLOT_PENDING,
	SLOT_SCHEDULED,
	SLOT_THERAPIST_UNAVAILABLE,
	Booking,
	ClinicTimings,
	Patient,
	Room,
	Therapist,
	TimelineBlock,
	ensure_model,
	ensure_models,
)
from clinic_scheduling.clinic_scheduling.scheduling.availability import get_available_therapists
from clinic_scheduling.clinic_scheduling.scheduling.slots import _resolve_slot_duration
from clinic_scheduling.clinic_scheduling.scheduling.timing import (
	format_date,
	parse_date,
	resolve_now,
	to_hhmm,
)

logger = logging.getLogger(__name__)

# (start, end, booking, is_break) en minutos desde medianoche
GridEntry = Tuple[int, int, Optional[Booking], bool]


def is_break_hour(time_minutes: int, break_window: Optional[Tuple[int, int]]) -> bool:
	if not break_window:
		return False
	return break_window[0] <= time_minutes < break_window[1]


def _build_grid(
	room_bookings: List[Booking],
	open_minutes: int,
	close_minutes: int,
	break_window: Optional[Tuple[int, int]],
	slot_duration: int
) -> List[GridEntry]:
	"""
	Recorre el día con un cursor y emite bloques contiguos.

	Algoritmo:
		1. Cursor dentro del break -> bloque de break, saltar a break_end
		2. Cita que empieza en el cursor -> bloque de la cita (truncado al
		   cierre), cursor al final de la cita
		3. Si no -> bloque libre hasta el próximo evento: próxima cita,
		   inicio del break o cursor + slot_duration
	"""
	# Una cita anterior a la apertura adelanta el cursor
	cursor = open_minutes
	if room_bookings and room_bookings[0].start_minutes < cursor:
		cursor = room_bookings[0].start_minutes

	grid: List[GridEntry] = []
	while cursor < close_minutes:
		# 1. Break
		if is_break_hour(cursor, break_window):
			break_end = min(break_window[1], close_minutes)
			grid.append((cursor, break_end, None, True))
			cursor = break_end
			continue

		# 2. Cita que empieza exactamente en el cursor
		booking = next((b for b in room_bookings if b.start_minutes == cursor), None)
		if booking is not None:
			block_end = min(booking.end_minutes, close_minutes)
			grid.append((cursor, block_end, booking, False))
			cursor = block_end
			continue

		# 3. Bloque libre hasta el próximo evento
		next_event = min(cursor + slot_duration, close_minutes)
		for b in room_bookings:
			if cursor < b.start_minutes < next_event:
				next_event = b.start_minutes
		if break_window and cursor < break_window[0] < next_event:
			next_event = break_window[0]

		grid.append((cursor, next_event, None, False))
		cursor = next_event

	return grid


def _enrich_booking(booking: Booking, patients: List[Patient]) -> Booking:
	"""Copia de la cita con nombre / teléfono del paciente si faltan."""
	if booking.patient_name and booking.patient_phone:
		return booking

	patient = next((p for p in patients if p.id == booking.client_id), None)
	if patient is None:
		return booking

	return booking.model_copy(update={
		"patient_name": booking.patient_name or patient.name,
		"patient_phone": booking.patient_phone or patient.mobile,
	})


def _booking_status(booking: Booking, started: bool) -> str:
	if booking.status == "completed":
		return SLOT_COMPLETED
	if booking.status == "pending" or started:
		return SLOT_PENDING
	return SLOT_SCHEDULED


def generate_room_slots(
	room: Union[Room, dict],
	date: str,
	bookings: Iterable[Union[Booking, dict]],
	therapists: Iterable[Union[Therapist, dict]],
	clinic_timings: Union[ClinicTimings, dict],
	slot_duration: int = config.DEFAULT_SLOT_DURATION,
	enforce_gender_match: bool = True,
	patient_gender: Optional[str] = None,
	patients: Optional[Iterable[Union[Patient, dict]]] = None,
	now: Optional[datetime] = None
) -> List[TimelineBlock]:
	"""
	Genera el timeline de una sala para un día.

	Args:
		room: sala
		date: fecha "YYYY-MM-DD"
		bookings: snapshot global de citas (todas las salas)
		therapists: catálogo de terapeutas
		clinic_timings: horario semanal
		slot_duration: ancho de los bloques libres estándar
		enforce_gender_match / patient_gender: política de género
		patients: catálogo para enriquecer citas con nombre / teléfono
		now: instante de referencia (inyectable para tests)

	Returns:
		list[TimelineBlock]: bloques contiguos y no solapados. Fecha
		inválida o día cerrado -> [].

	Los bloques pasados se generan igual (historial), marcados como no
	reservables. available_therapists se calcula contra las citas de
	todas las salas: un terapeuta ocupado en otra sala no aparece.
	"""
	target_date = parse_date(date)
	if target_date is None:
		logger.warning("generate_room_slots: invalid date %r", date)
		return []
	date = format_date(target_date)

	room = ensure_model(Room, room)
	bookings = ensure_models(Booking, bookings)
	therapists = ensure_models(Therapist, therapists)
	patients = ensure_models(Patient, patients)
	timings = ensure_model(ClinicTimings, clinic_timings)
	slot_duration = _resolve_slot_duration(slot_duration)

	day = timings.for_date(target_date)
	if day is None or day.is_closed or day.open_minutes == day.close_minutes:
		logger.warning("generate_room_slots: clinic closed on %s", date)
		return []

	room_bookings = sorted(
		(b for b in bookings if b.room_id == room.id and b.date == date and b.is_active),
		key=lambda b: b.start_minutes
	)

	grid = _build_grid(
		room_bookings, day.open_minutes, day.close_minutes, day.break_window, slot_duration
	)

	current = resolve_now(now, timings.timezone)
	today = current.date()
	now_minutes = current.hour * 60 + current.minute

	blocks = []
	for start, end, booking, is_break in grid:
		start_str, end_str = to_hhmm(start), to_hhmm(end)
		slot_id = f"{room.id}_{date}_{start_str}_{end_str}"

		if is_break:
			blocks.append(TimelineBlock(
				start=start_str,
				end=end_str,
				is_break=True,
				status=SLOT_BREAK,
				therapist_available=False,
				slot_id=slot_id,
			))
			continue

		# Citas de todas las salas: excluye terapeutas ocupados en otra sala
		available = get_available_therapists(
			therapists,
			patient_gender,
			date,
			start_str,
			bookings,
			enforce_gender_match,
			duration=end - start
		)

		if booking is not None:
			started = target_date < today or (target_date == today and start <= now_minutes)
			status = _booking_status(booking, started)
			booking = _enrich_booking(booking, patients)
		elif target_date < today or (target_date == today and end <= now_minutes):
			status = SLOT_NOT_AVAILABLE
		elif not available:
			status = SLOT_THERAPIST_UNAVAILABLE
		else:
			status = SLOT_AVAILABLE

		blocks.append(TimelineBlock(
			start=start_str,
			end=end_str,
			is_break=False,
			status=status,
			therapist_available=bool(available),
			available_therapists=available,
			booking=booking,
			slot_id=slot_id,
		))

	return blocks
