"""
Overlap Detection Service

Detects scheduling conflicts between a proposed interval and the booking
snapshot, using half-open [start, end) semantics:
- Back-to-back bookings (a.end == b.start) do not overlap
- Cancelled / rescheduled bookings never conflict
- Doctor-only consultations never block therapy resources
- Missing duration defaults to DEFAULT_BOOKING_DURATION
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from clinic_scheduling import config
from clinic_scheduling.clinic_scheduling.models import Booking
from clinic_scheduling.clinic_scheduling.scheduling.timing import to_hhmm, to_minutes

TimeValue = Union[str, int]


def _as_minutes(value: TimeValue) -> int:
	if isinstance(value, int):
		return value
	return to_minutes(value)


def overlaps(
	a_start: TimeValue,
	a_duration: Optional[int],
	b_start: TimeValue,
	b_duration: Optional[int]
) -> bool:
	"""
	True si [a_start, a_start + a_duration) y [b_start, b_start + b_duration)
	se solapan.

	Args:
		a_start, b_start: "HH:mm" o minutos desde medianoche
		a_duration, b_duration: minutos (None -> DEFAULT_BOOKING_DURATION)

	Condición de overlap: a_start < b_end AND b_start < a_end
	"""
	a_begin = _as_minutes(a_start)
	b_begin = _as_minutes(b_start)
	a_end = a_begin + (a_duration if a_duration is not None else config.DEFAULT_BOOKING_DURATION)
	b_end = b_begin + (b_duration if b_duration is not None else config.DEFAULT_BOOKING_DURATION)
	return a_begin < b_end and b_begin < a_end


def booking_overlaps(
	booking: Booking,
	date: str,
	slot: TimeValue,
	duration: Optional[int] = None
) -> bool:
	"""
	True si una cita activa de terapia del mismo día se solapa con el
	intervalo propuesto. Las consultas médicas puras se evalúan en
	doctor.py con su propia duración.
	"""
	if not booking.is_active or not booking.is_therapy or booking.date != date:
		return False
	return overlaps(booking.start_minutes, booking.duration, slot, duration)


def find_overlapping_bookings(
	bookings: Iterable[Booking],
	date: str,
	slot: TimeValue,
	duration: Optional[int] = None,
	predicate: Optional[Callable[[Booking], bool]] = None
) -> List[Booking]:
	"""
	Citas que se solapan con [slot, slot + duration) en la fecha dada.

	predicate: filtro adicional (sala, terapeuta, paciente...)
	"""
	return [
		booking for booking in bookings
		if (predicate is None or predicate(booking))
		and booking_overlaps(booking, date, slot, duration)
	]


def check_overlap(
	bookings: Iterable[Booking],
	date: str,
	slot: TimeValue,
	duration: Optional[int] = None,
	room_id: Optional[str] = None,
	therapist_id: Optional[str] = None,
	client_id: Optional[str] = None,
	exclude_booking: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Detecta overlaps con citas existentes para un recurso.

	Args:
		bookings: snapshot de citas
		date: fecha "YYYY-MM-DD"
		slot: inicio del intervalo propuesto
		duration: duración propuesta en minutos
		room_id / therapist_id / client_id: recurso a validar (al menos uno)
		exclude_booking: id de la cita a excluir (para reprogramaciones)

	Returns:
		dict: {
			"has_overlap": bool,
			"overlapping_bookings": [list of booking ids],
			"busy_until": "HH:mm" | None
		}

	Algoritmo:
		1. Filtrar citas del recurso (excluyendo exclude_booking)
		2. Quedarse con las que se solapan con el intervalo propuesto
		3. Calcular hasta cuándo está ocupado el recurso
	"""
	# 1. Filtro por recurso
	def _matches(booking: Booking) -> bool:
		if exclude_booking and booking.id == exclude_booking:
			return False
		if room_id is not None and booking.room_id != room_id:
			return False
		if therapist_id is not None and therapist_id not in booking.therapist_ids:
			return False
		if client_id is not None and booking.client_id != client_id:
			return False
		return True

	# 2. Overlaps
	overlapping = find_overlapping_bookings(bookings, date, slot, duration, predicate=_matches)

	# 3. Fin de la ocupación
	busy_until = None
	if overlapping:
		latest_end = max(booking.end_minutes for booking in overlapping)
		busy_until = to_hhmm(latest_end)

	return {
		"has_overlap": bool(overlapping),
		"overlapping_bookings": [booking.id for booking in overlapping],
		"busy_until": busy_until,
	}
