"""
Scheduling Models

Canonical typed entities consumed and produced by the scheduling engine:
- Catalog: ClinicTimings / DayTiming, Therapist, Doctor, Room, Patient
- Snapshot: Booking
- Results: TimelineBlock, RoomMatrix, Alternative, DayResult

Field-name reconciliation (slot/time, roomId/roomNumber, clientId/patientId)
and "HH:mm" normalization happen here, once, when raw payloads are
validated. Services downstream only see these models.
"""

from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from clinic_scheduling import config
from clinic_scheduling.exceptions import ValidationError
from clinic_scheduling.clinic_scheduling.scheduling.timing import (
	normalize_slot,
	parse_date,
	to_minutes,
	weekday_name,
)

# Razones de no disponibilidad (taxonomía cerrada)
REASON_PAST = "Time Slot is in the past"
REASON_THERAPISTS_BUSY = "Therapists are busy"
REASON_ROOM_UNAVAILABLE = "Selected Room is not available"
REASON_PATIENT_BUSY = "Patient already has an appointment at this time"

# Estados de bloque en el timeline
SLOT_AVAILABLE = "available"
SLOT_NOT_AVAILABLE = "notAvailable"
SLOT_BREAK = "break"
SLOT_THERAPIST_UNAVAILABLE = "therapistUnavailable"
SLOT_SCHEDULED = "scheduled"
SLOT_PENDING = "pending"
SLOT_COMPLETED = "completed"

DayStatus = Literal["working", "half_day", "holiday", "weekly_off"]
BookingStatus = Literal["scheduled", "completed", "pending", "cancelled", "rescheduled"]

RELEASED_STATUSES = ("cancelled", "rescheduled")
CLOSED_DAY_STATUSES = ("holiday", "weekly_off")

M = TypeVar("M", bound=BaseModel)


class SchedulingModel(BaseModel):
	"""Base: alias camelCase, acepta snake_case, inmutable."""

	model_config = ConfigDict(
		alias_generator=to_camel,
		populate_by_name=True,
		frozen=True,
		extra="ignore",
	)


def _normalize_time_field(value: Any) -> Optional[str]:
	if value is None or value == "":
		return None
	return normalize_slot(str(value))


def _normalize_availability(value: Any) -> Optional[Dict[str, List[str]]]:
	if value is None:
		return None
	return {
		str(day): [normalize_slot(slot) for slot in (slots or []) if slot]
		for day, slots in dict(value).items()
	}


# ===== CATALOG =====

class DayTiming(SchedulingModel):
	"""
	Horario de un día de la semana.

	Validaciones:
	- start <= end (si el día está abierto y ambos existen)
	- start <= break_start < break_end <= end (si hay break)
	"""

	is_open: bool = True
	start: Optional[str] = None
	end: Optional[str] = None
	status: DayStatus = "working"
	break_start: Optional[str] = None
	break_end: Optional[str] = None

	@field_validator("start", "end", "break_start", "break_end", mode="before")
	@classmethod
	def _normalize_times(cls, value: Any) -> Optional[str]:
		return _normalize_time_field(value)

	@field_validator("status", mode="before")
	@classmethod
	def _normalize_status(cls, value: Any) -> str:
		return str(value).strip().lower() if value else "working"

	@model_validator(mode="after")
	def _validate_bounds(self) -> "DayTiming":
		if self.start and self.end and to_minutes(self.start) > to_minutes(self.end):
			raise ValueError(f"start ({self.start}) must not be after end ({self.end})")

		if self.has_break:
			break_start, break_end = self.break_window
			if break_start >= break_end:
				raise ValueError(f"breakStart ({self.break_start}) must be before breakEnd ({self.break_end})")
			if self.start and self.end:
				if break_start < to_minutes(self.start) or break_end > to_minutes(self.end):
					raise ValueError(
						f"Break {self.break_start}-{self.break_end} must be inside {self.start}-{self.end}"
					)
		return self

	@property
	def is_closed(self) -> bool:
		return (
			not self.is_open
			or self.status in CLOSED_DAY_STATUSES
			or not self.start
			or not self.end
		)

	@property
	def has_break(self) -> bool:
		return bool(self.break_start and self.break_end)

	@property
	def open_minutes(self) -> int:
		return to_minutes(self.start)

	@property
	def close_minutes(self) -> int:
		return to_minutes(self.end)

	@property
	def break_window(self) -> Optional[Tuple[int, int]]:
		if not self.has_break:
			return None
		return to_minutes(self.break_start), to_minutes(self.break_end)


class ClinicTimings(SchedulingModel):
	"""
	Horario semanal de la clínica.

	Formas aceptadas:
	- {"weekdays": {"monday": {...}, ...}, "timezone": "..."}
	- {"monday": {...}, ...}
	- {"start": "09:00", "end": "18:00", ...} (mismo horario todos los días)
	"""

	weekdays: Dict[str, DayTiming] = Field(default_factory=dict)
	timezone: Optional[str] = None

	@model_validator(mode="before")
	@classmethod
	def _coerce_shape(cls, data: Any) -> Any:
		if not isinstance(data, dict):
			return data

		timezone = data.get("timezone")

		if "weekdays" in data:
			weekdays = data.get("weekdays") or {}
		elif "start" in data or "end" in data:
			day = {key: value for key, value in data.items() if key not in ("timezone", "weekdays")}
			weekdays = {name: day for name in config.WEEKDAYS}
		else:
			weekdays = {
				key: value for key, value in data.items()
				if str(key).strip().lower() in config.WEEKDAYS
			}

		return {
			"weekdays": {str(key).strip().lower(): value for key, value in weekdays.items()},
			"timezone": timezone,
		}

	def for_date(self, target_date: Any) -> Optional[DayTiming]:
		"""Horario del día de la semana correspondiente a target_date."""
		parsed = parse_date(target_date)
		if parsed is None:
			return None
		return self.weekdays.get(weekday_name(parsed))


class Therapist(SchedulingModel):
	id: str
	name: str = ""
	gender: Optional[str] = None
	availability: Optional[Dict[str, List[str]]] = None

	@field_validator("id", mode="before")
	@classmethod
	def _coerce_id(cls, value: Any) -> str:
		return str(value)

	@field_validator("gender", mode="before")
	@classmethod
	def _normalize_gender(cls, value: Any) -> Optional[str]:
		return str(value).strip().lower() if value else None

	@field_validator("availability", mode="before")
	@classmethod
	def _normalize_availability(cls, value: Any) -> Optional[Dict[str, List[str]]]:
		return _normalize_availability(value)


class Doctor(SchedulingModel):
	id: str
	name: str = ""
	availability: Optional[Dict[str, List[str]]] = None

	@field_validator("id", mode="before")
	@classmethod
	def _coerce_id(cls, value: Any) -> str:
		return str(value)

	@field_validator("availability", mode="before")
	@classmethod
	def _normalize_availability(cls, value: Any) -> Optional[Dict[str, List[str]]]:
		return _normalize_availability(value)


class Room(SchedulingModel):
	id: str = Field(validation_alias=AliasChoices("id", "roomNumber", "roomId", "room_id"))
	name: Optional[str] = None
	availability: Optional[Dict[str, List[str]]] = None

	@field_validator("id", mode="before")
	@classmethod
	def _coerce_id(cls, value: Any) -> str:
		return str(value)

	@field_validator("availability", mode="before")
	@classmethod
	def _normalize_availability(cls, value: Any) -> Optional[Dict[str, List[str]]]:
		return _normalize_availability(value)

	@property
	def display_name(self) -> str:
		return self.name or self.id


class Patient(SchedulingModel):
	id: str = Field(validation_alias=AliasChoices("id", "patientId", "clientId"))
	gender: Optional[str] = None
	name: Optional[str] = None
	mobile: Optional[str] = None

	@field_validator("id", mode="before")
	@classmethod
	def _coerce_id(cls, value: Any) -> str:
		return str(value)

	@field_validator("gender", mode="before")
	@classmethod
	def _normalize_gender(cls, value: Any) -> Optional[str]:
		return str(value).strip().lower() if value else None


# ===== SNAPSHOT =====

class Booking(SchedulingModel):
	"""
	Cita comprometida o propuesta.

	Ocupa [slot, slot + duration) en su sala, sus terapeutas, su paciente
	y (para consultas) su doctor. Las citas canceladas o reprogramadas no
	ocupan recursos.
	"""

	id: Optional[str] = None
	date: str
	slot: str = Field(validation_alias=AliasChoices("slot", "time"))
	duration: int = Field(default=config.DEFAULT_BOOKING_DURATION, gt=0)
	room_id: Optional[str] = Field(
		default=None, validation_alias=AliasChoices("roomId", "roomNumber", "room_id")
	)
	therapist_ids: List[str] = Field(
		default_factory=list, validation_alias=AliasChoices("therapistIds", "therapist_ids")
	)
	client_id: Optional[str] = Field(
		default=None, validation_alias=AliasChoices("clientId", "patientId", "client_id")
	)
	doctor_id: Optional[str] = None
	status: BookingStatus = "scheduled"
	patient_name: Optional[str] = None
	patient_phone: Optional[str] = None

	@model_validator(mode="before")
	@classmethod
	def _reconcile_fields(cls, data: Any) -> Any:
		if not isinstance(data, dict):
			return data

		data = dict(data)
		if not data.get("slot") and data.get("time"):
			data["slot"] = data.pop("time")
		if data.get("duration") is None:
			data.pop("duration", None)
		if data.get("status") is None:
			data.pop("status", None)

		has_list = any(key in data for key in ("therapistIds", "therapist_ids"))
		single = data.get("therapistId") or data.get("therapist_id")
		if not has_list and single:
			data["therapistIds"] = [single]
		return data

	@field_validator("date", mode="before")
	@classmethod
	def _validate_date(cls, value: Any) -> str:
		parsed = parse_date(value)
		if parsed is None:
			raise ValueError(f"Invalid booking date: {value!r}")
		return parsed.strftime("%Y-%m-%d")

	@field_validator("slot", mode="before")
	@classmethod
	def _normalize_slot(cls, value: Any) -> str:
		return normalize_slot(str(value)) if value else value

	@field_validator("id", "room_id", "client_id", "doctor_id", mode="before")
	@classmethod
	def _coerce_ids(cls, value: Any) -> Optional[str]:
		return str(value) if value not in (None, "") else None

	@field_validator("therapist_ids", mode="before")
	@classmethod
	def _coerce_therapist_ids(cls, value: Any) -> List[str]:
		if not value:
			return []
		if isinstance(value, (str, int)):
			return [str(value)]
		return [str(item) for item in value if item not in (None, "")]

	@field_validator("status", mode="before")
	@classmethod
	def _normalize_status(cls, value: Any) -> Any:
		return str(value).strip().lower() if isinstance(value, str) else value

	@property
	def start_minutes(self) -> int:
		return to_minutes(self.slot)

	@property
	def end_minutes(self) -> int:
		return self.start_minutes + self.duration

	@property
	def is_active(self) -> bool:
		return self.status not in RELEASED_STATUSES

	@property
	def is_therapy(self) -> bool:
		"""False para consultas médicas puras (doctor sin sala ni terapeutas)."""
		return not (self.doctor_id and not self.room_id and not self.therapist_ids)


# ===== RESULTS =====

class TimelineBlock(SchedulingModel):
	start: str
	end: str
	is_break: bool = False
	status: str = SLOT_AVAILABLE
	therapist_available: bool = False
	available_therapists: List[Therapist] = Field(default_factory=list)
	booking: Optional[Booking] = None
	slot_id: str = ""


class RoomMatrix(SchedulingModel):
	room_id: str
	room_name: str
	slots: List[TimelineBlock] = Field(default_factory=list)


class Alternative(SchedulingModel):
	"""Par (hora, sala) sugerido; slot = "HH:mm-<roomId>"."""

	slot: str
	room_id: str
	time: str


class DayResult(SchedulingModel):
	date: str
	available: bool
	reason: Optional[str] = None
	alternatives: List[Alternative] = Field(default_factory=list)


# ===== INGESTION =====

def ensure_model(model_cls: Type[M], value: Any) -> M:
	"""
	Convierte un payload (dict o instancia) al modelo canónico.

	Raises:
		ValidationError: si el payload no es válido
	"""
	if isinstance(value, model_cls):
		return value
	try:
		return model_cls.model_validate(value)
	except PydanticValidationError as e:
		raise ValidationError(f"Invalid {model_cls.__name__}: {e}") from e


def ensure_models(model_cls: Type[M], values: Optional[Iterable[Any]]) -> List[M]:
	"""Versión lista de ensure_model; None equivale a lista vacía."""
	if values is None:
		return []
	return [ensure_model(model_cls, value) for value in values]
