"""
Clinic Timing Helpers

Time and date arithmetic shared by every scheduling service:
- "HH:mm" <-> minutes since midnight
- YYYY-MM-DD parsing and day arithmetic
- Interpretation of "now" in the clinic timezone
- Past-slot detection
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

import pytz
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from clinic_scheduling import config

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_minutes(time_value: str) -> int:
	"""
	Convierte "HH:mm" (o "H:m", "HH:mm:ss") a minutos desde medianoche.

	Raises:
		ValueError: si el string no es una hora válida
	"""
	if not time_value or not isinstance(time_value, str):
		raise ValueError(f"Invalid time value: {time_value!r}")

	parts = time_value.strip().split(":")
	if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
		raise ValueError(f"Invalid time value: {time_value!r}")

	hours, minutes = int(parts[0]), int(parts[1])
	if hours > 24 or minutes > 59 or (hours == 24 and minutes):
		raise ValueError(f"Invalid time value: {time_value!r}")

	return hours * 60 + minutes


def to_hhmm(minutes: int) -> str:
	"""Formatea minutos desde medianoche como "HH:mm" con ceros a la izquierda."""
	minutes = int(minutes)
	if minutes == MINUTES_PER_DAY:
		return "24:00"
	minutes %= MINUTES_PER_DAY
	return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_slot(slot: Optional[str]) -> str:
	"""
	Normaliza un slot a "HH:mm" ("9:0" -> "09:00", "09:00:00" -> "09:00").

	Un slot vacío se devuelve como "".
	"""
	if not slot:
		return ""
	return to_hhmm(to_minutes(slot))


def parse_date(value: Union[date, datetime, str, None]) -> Optional[date]:
	"""
	Convierte un valor a date.

	Acepta date, datetime o "YYYY-MM-DD". Devuelve None si el valor es
	inválido; las rutas de renderizado deben seguir funcionando.
	"""
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
		return None

	try:
		return date_parser.isoparse(value.strip()).date()
	except (ValueError, OverflowError):
		return None


def format_date(value: date) -> str:
	return value.strftime("%Y-%m-%d")


def add_days(date_str: str, days: int) -> str:
	"""Suma días calendario a un "YYYY-MM-DD" (sin saltar fines de semana)."""
	start = parse_date(date_str)
	if start is None:
		raise ValueError(f"Invalid date: {date_str!r}")
	return format_date(start + relativedelta(days=days))


def weekday_name(target_date: date) -> str:
	"""Nombre del día de la semana en minúsculas ("monday", ...)."""
	return config.WEEKDAYS[target_date.weekday()]


def get_timezone(tz_name: Optional[str] = None) -> pytz.tzinfo.BaseTzInfo:
	"""
	Obtiene la zona horaria de la clínica.

	Si el nombre es inválido se usa UTC.
	"""
	tz_name = tz_name or config.CLINIC_TIMEZONE or "UTC"
	try:
		return pytz.timezone(tz_name)
	except pytz.UnknownTimeZoneError:
		logger.warning("Invalid timezone '%s', falling back to UTC", tz_name)
		return pytz.UTC


def resolve_now(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
	"""
	Devuelve "now" como datetime naive en hora local de la clínica.

	Un datetime naive se interpreta como hora local; uno aware se
	convierte a la zona horaria de la clínica.
	"""
	tz = get_timezone(tz_name)
	if now is None:
		return datetime.now(tz).replace(tzinfo=None)
	if now.tzinfo is not None:
		return now.astimezone(tz).replace(tzinfo=None)
	return now


def slot_datetime(date_value: Union[date, str], slot: str) -> Optional[datetime]:
	"""Combina fecha + "HH:mm" en un datetime naive."""
	target_date = parse_date(date_value)
	if target_date is None:
		return None
	return datetime.combine(target_date, datetime.min.time()) + timedelta(minutes=to_minutes(slot))


def is_slot_in_past(
	date_value: Union[date, str],
	slot: str,
	now: datetime,
	tz_name: Optional[str] = None
) -> bool:
	"""
	True si el inicio del slot es anterior o igual a "now".

	Fecha o slot vacíos nunca se consideran en el pasado.
	"""
	if not date_value or not slot:
		return False

	start = slot_datetime(date_value, slot)
	if start is None:
		return False

	return start <= resolve_now(now, tz_name)
