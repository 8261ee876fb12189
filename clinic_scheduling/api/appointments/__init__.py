"""
Appointments API Domain

Slot availability, room timelines, booking validation, recurring series
and doctor consultations.
"""

# Re-export functions from appointment_api for new-style imports
from clinic_scheduling.api.appointment_api import (
    # Availability
    get_available_slots,
    get_room_timeline,
    get_schedule_matrix,
    # Validation
    validate_appointment,
    get_booking_options_for_slot,
    # Recurring series
    get_recurring_alternatives,
    # Doctor consultations
    check_doctor_appointment,
)

__all__ = [
    # Availability
    "get_available_slots",
    "get_room_timeline",
    "get_schedule_matrix",
    # Validation
    "validate_appointment",
    "get_booking_options_for_slot",
    # Recurring series
    "get_recurring_alternatives",
    # Doctor consultations
    "check_doctor_appointment",
]
