"""
Clinic Scheduling API

In-process facade over the scheduling engine.

Structure:
    api/
    ├── __init__.py              # This file
    ├── appointments/            # Appointments domain
    │   └── __init__.py          # Re-exports from appointment_api
    ├── shared/                  # Shared utilities
    │   ├── __init__.py          # Re-exports validators
    │   └── validators.py        # Date / slot / identifier validators
    └── appointment_api.py       # All facade functions

Usage:
    from clinic_scheduling.api.appointments import get_schedule_matrix
"""

# Re-export domains for convenient access
from . import appointments
from . import shared

__all__ = [
    "appointments",
    "shared",
]
