"""
Shared utilities for the Clinic Scheduling API.

Input validators used by every facade function.
"""

from .validators import (
    validate_date_string,
    validate_slot_string,
    validate_docname,
)

__all__ = [
    "validate_date_string",
    "validate_slot_string",
    "validate_docname",
]
