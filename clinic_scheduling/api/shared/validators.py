"""
Scheduling Validators

Input validation for the API facade. Every validator returns the cleaned
value or raises clinic_scheduling.exceptions.ValidationError.
"""

import re

from clinic_scheduling.exceptions import ValidationError
from clinic_scheduling.clinic_scheduling.scheduling.timing import normalize_slot, parse_date

_DATE_FORMAT = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLOT_FORMAT = re.compile(r"^\d{1,2}:\d{1,2}(:\d{2})?$")

MAX_ID_LENGTH = 140

# Patrones de inyección (HTML/JS y SQL) que nunca aparecen en un id de catálogo
_INJECTION_PATTERNS = re.compile(
    r"<script|javascript:|onclick|onerror"
    r"|(SELECT|INSERT|UPDATE|DELETE|DROP|UNION)\s+"
    r"|--|;",
    re.IGNORECASE,
)


def validate_date_string(date_str: str, field_name: str = "date") -> str:
    """
    Validate a calendar date in YYYY-MM-DD form.

    Args:
        date_str: Date string to validate
        field_name: Name of field for error messages

    Returns:
        str: The stripped date string

    Raises:
        ValidationError: If the date is missing, malformed or does not exist
    """
    if not date_str:
        raise ValidationError(f"{field_name} is required")

    date_str = str(date_str).strip()
    if not _DATE_FORMAT.match(date_str):
        raise ValidationError(f"Invalid {field_name} format. Use YYYY-MM-DD")

    # 2099-02-30 pasa el regex pero no es una fecha
    if parse_date(date_str) is None:
        raise ValidationError(f"Invalid {field_name}: {date_str}")

    return date_str


def validate_slot_string(slot: str, field_name: str = "slot") -> str:
    """
    Validate a slot time (HH:MM, 24h) and normalize it to zero-padded HH:MM.

    Raises:
        ValidationError: If the time is missing or malformed
    """
    if not slot:
        raise ValidationError(f"{field_name} is required")

    slot = str(slot).strip()
    if not _SLOT_FORMAT.match(slot):
        raise ValidationError(f"Invalid {field_name} format. Use HH:MM")

    try:
        return normalize_slot(slot)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {slot}") from e


def validate_docname(name: str, field_name: str = "name") -> str:
    """
    Validate a catalog identifier (therapist, room, patient, doctor, booking).

    Returns:
        str: The stripped identifier

    Raises:
        ValidationError: If the identifier is empty, longer than
            MAX_ID_LENGTH or looks like an injection attempt
    """
    if not name:
        raise ValidationError(f"{field_name} is required")

    name = str(name).strip()
    if len(name) > MAX_ID_LENGTH:
        raise ValidationError(f"{field_name} is too long")

    if _INJECTION_PATTERNS.search(name):
        raise ValidationError(f"Invalid {field_name}")

    return name
