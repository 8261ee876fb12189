"""
Slot Generation Service

Generates discrete slot start times for a clinic day, considering:
- Weekday working hours (open / close)
- Break window
- Closed days (holiday, weekly_off, isOpen = False)
- Existing bookings of a given therapist or room
"""

import logging
from typing import Any, Iterable, List, Literal, Union

from clinic_scheduling import config
from clinic_scheduling.exceptions import ValidationError
from clinic_scheduling.clinic_scheduling.models import (
	Booking,
	ClinicTimings,
	Room,
	Therapist,
	ensure_model,
	ensure_models,
)
from clinic_scheduling.clinic_scheduling.scheduling.overlap import booking_overlaps
from clinic_scheduling.clinic_scheduling.scheduling.timing import format_date, parse_date, to_hhmm

logger = logging.getLogger(__name__)

EntityType = Literal["therapist", "room"]


def _resolve_slot_duration(slot_duration: Any) -> int:
	if isinstance(slot_duration, bool) or not isinstance(slot_duration, int) or slot_duration <= 0:
		logger.warning(
			"Invalid slot duration %r, defaulting to %s", slot_duration, config.DEFAULT_SLOT_DURATION
		)
		return config.DEFAULT_SLOT_DURATION
	return slot_duration


def generate_time_slots(
	date: str,
	clinic_timings: Union[ClinicTimings, dict],
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> List[str]:
	"""
	Genera los inicios de slot ("HH:mm") de un día.

	Args:
		date: fecha "YYYY-MM-DD"
		clinic_timings: horario semanal de la clínica
		slot_duration: minutos entre inicios de slot

	Returns:
		list[str]: ["09:00", "10:00", ...] en orden ascendente

	Algoritmo:
		1. Obtener horario del día de la semana; día cerrado -> []
		2. Avanzar un cursor desde la apertura de a slot_duration minutos
		3. Si el intervalo [cursor, cursor + slot_duration) toca el break,
		   saltar el cursor directamente a break_end
		4. El último slot puede quedar truncado por el cierre
	"""
	target_date = parse_date(date)
	if target_date is None:
		logger.warning("generate_time_slots: invalid date %r", date)
		return []

	# 1. Horario del día
	timings = ensure_model(ClinicTimings, clinic_timings)
	day = timings.for_date(target_date)
	if day is None or day.is_closed:
		return []

	slot_duration = _resolve_slot_duration(slot_duration)
	start, end = day.open_minutes, day.close_minutes
	break_window = day.break_window

	# 2-3. Cursor en minutos desde medianoche
	slots = []
	cursor = start
	while cursor < end:
		if break_window and cursor < break_window[1] and break_window[0] < cursor + slot_duration:
			cursor = break_window[1]
			continue
		slots.append(to_hhmm(cursor))
		cursor += slot_duration

	return slots


def get_available_slots_for_entity(
	entity_id: str,
	entity_type: EntityType,
	date: str,
	bookings: Iterable[Union[Booking, dict]],
	clinic_timings: Union[ClinicTimings, dict],
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> List[str]:
	"""
	Slots del día en los que el terapeuta o sala indicado no tiene citas
	solapadas (una cita de 60 min a las 09:00 bloquea el slot 09:00 pero
	no el de las 10:00).

	Raises:
		ValidationError: si entity_type no es "therapist" ni "room"
	"""
	if entity_type not in ("therapist", "room"):
		raise ValidationError(f"Unsupported entity type: {entity_type}")

	bookings = ensure_models(Booking, bookings)
	target_date = parse_date(date)
	if target_date is None:
		logger.warning("get_available_slots_for_entity: invalid date %r", date)
		return []
	date = format_date(target_date)

	slot_duration = _resolve_slot_duration(slot_duration)
	if entity_type == "therapist":
		entity_bookings = [b for b in bookings if entity_id in b.therapist_ids]
	else:
		entity_bookings = [b for b in bookings if b.room_id == entity_id]

	return [
		slot for slot in generate_time_slots(date, clinic_timings, slot_duration)
		if not any(booking_overlaps(b, date, slot, slot_duration) for b in entity_bookings)
	]


def add_dynamic_availability(
	entities: Iterable[Union[Therapist, Room, dict]],
	entity_type: EntityType,
	date: str,
	bookings: Iterable[Union[Booking, dict]],
	clinic_timings: Union[ClinicTimings, dict],
	slot_duration: int = config.DEFAULT_SLOT_DURATION
) -> List[Union[Therapist, Room]]:
	"""
	Copia de cada terapeuta/sala cuya availability para `date` es la lista
	calculada de slots libres.
	"""
	model_cls = Therapist if entity_type == "therapist" else Room
	bookings = ensure_models(Booking, bookings)

	result = []
	for entity in ensure_models(model_cls, entities):
		free_slots = get_available_slots_for_entity(
			entity.id, entity_type, date, bookings, clinic_timings, slot_duration
		)
		result.append(entity.model_copy(update={"availability": {date: free_slots}}))

	return result
