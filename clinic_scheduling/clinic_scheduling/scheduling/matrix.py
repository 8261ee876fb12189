"""
Schedule Matrix Service

Aggregates the per-room timelines of one date into the day grid rendered
by the booking screens, and ranks free cells of that grid as
recommendations for a patient.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from clinic_scheduling import config
from clinic_scheduling.clinic_scheduling.models import (
	SLOT_AVAILABLE,
	Booking,
	ClinicTimings,
	Patient,
	Room,
	RoomMatrix,
	Therapist,
	ensure_model,
	ensure_models,
)
from clinic_scheduling.clinic_scheduling.scheduling.timeline import generate_room_slots
from clinic_scheduling.clinic_scheduling.scheduling.timing import normalize_slot, to_minutes

REASON_SAME_THERAPIST = "same therapist"
REASON_SAME_GENDER = "same gender"
REASON_OTHER = "other"

_REASON_RANK = {
	REASON_SAME_THERAPIST: 0,
	REASON_SAME_GENDER: 1,
	REASON_OTHER: 2,
}


def build_schedule_matrix(
	date: str,
	bookings: Iterable[Union[Booking, dict]],
	rooms: Iterable[Union[Room, dict]],
	therapists: Iterable[Union[Therapist, dict]],
	clinic_timings: Union[ClinicTimings, dict],
	enforce_gender_match: bool = False,
	patient_gender: Optional[str] = None,
	slot_duration: Optional[int] = None,
	patients: Optional[Iterable[Union[Patient, dict]]] = None,
	now: Optional[datetime] = None
) -> List[RoomMatrix]:
	"""
	Construye la matriz del día: un timeline por sala, en orden de catálogo.

	La exclusión de terapeutas ocupados en otras salas ya ocurre dentro de
	generate_room_slots (usa la lista global de citas).
	"""
	bookings = ensure_models(Booking, bookings)
	therapists = ensure_models(Therapist, therapists)
	patients = ensure_models(Patient, patients)
	timings = ensure_model(ClinicTimings, clinic_timings)

	if slot_duration is None:
		slot_duration = config.DEFAULT_SLOT_DURATION

	return [
		RoomMatrix(
			room_id=room.id,
			room_name=room.display_name,
			slots=generate_room_slots(
				room,
				date,
				bookings,
				therapists,
				timings,
				slot_duration=slot_duration,
				enforce_gender_match=enforce_gender_match,
				patient_gender=patient_gender,
				patients=patients,
				now=now,
			),
		)
		for room in ensure_models(Room, rooms)
	]


def get_recommended_slots(
	original_slot: str,
	original_therapist_ids: Iterable[str],
	patient: Optional[Union[Patient, dict]],
	matrix: Iterable[RoomMatrix]
) -> List[Dict[str, Any]]:
	"""
	Recomienda celdas libres a la hora pedida en todas las salas.

	Args:
		original_slot: hora pedida "HH:mm"
		original_therapist_ids: terapeutas de la cita original
		patient: paciente (para el criterio de género)
		matrix: resultado de build_schedule_matrix

	Returns:
		list[dict]: [{"roomId", "slot", "therapistId", "reason"}, ...]
		ordenado por cercanía a la hora pedida y luego por
		same therapist > same gender > other. Sin paciente -> [].
	"""
	if patient is None:
		return []
	patient = ensure_model(Patient, patient)

	original_slot = normalize_slot(original_slot)
	original_ids = set(original_therapist_ids or [])
	target = to_minutes(original_slot)

	recommendations = []
	for room in matrix:
		for block in room.slots:
			if block.start != original_slot:
				continue
			if block.status != SLOT_AVAILABLE or block.booking is not None:
				continue

			for therapist in block.available_therapists:
				if therapist.id in original_ids:
					reason = REASON_SAME_THERAPIST
				elif patient.gender and therapist.gender == patient.gender:
					reason = REASON_SAME_GENDER
				else:
					reason = REASON_OTHER

				recommendations.append({
					"roomId": room.room_id,
					"slot": block.start,
					"therapistId": therapist.id,
					"reason": reason,
				})

	recommendations.sort(key=lambda r: (
		abs(to_minutes(r["slot"]) - target),
		_REASON_RANK[r["reason"]],
	))
	return recommendations
