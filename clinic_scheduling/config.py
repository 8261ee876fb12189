"""
Engine configuration for clinic_scheduling.

Default values used by the scheduling services when the caller does
not pass an explicit override. Every value can be changed through an
environment variable.
"""

import os

# Duración (minutos) de una cita sin "duration"
DEFAULT_BOOKING_DURATION = int(os.getenv("CLINIC_DEFAULT_BOOKING_DURATION", "60"))

# Granularidad por defecto del grid de slots
DEFAULT_SLOT_DURATION = int(os.getenv("CLINIC_DEFAULT_SLOT_DURATION", "60"))

# Límites de alternativas
MAX_RECURRING_ALTERNATIVES = int(os.getenv("CLINIC_MAX_RECURRING_ALTERNATIVES", "5"))
MAX_FALLBACK_SLOTS = int(os.getenv("CLINIC_MAX_FALLBACK_SLOTS", "10"))

# Consultas médicas (grid fijo)
DOCTOR_SLOT_MINUTES = int(os.getenv("CLINIC_DOCTOR_SLOT_MINUTES", "15"))
DOCTOR_DAY_START = os.getenv("CLINIC_DOCTOR_DAY_START", "09:00")
DOCTOR_DAY_END = os.getenv("CLINIC_DOCTOR_DAY_END", "18:00")

# Grid horario usado para buscar salas cuando no hay horario de clínica
ROOM_SCAN_START = os.getenv("CLINIC_ROOM_SCAN_START", "08:00")
ROOM_SCAN_END = os.getenv("CLINIC_ROOM_SCAN_END", "18:00")
ROOM_SCAN_STEP = int(os.getenv("CLINIC_ROOM_SCAN_STEP", "60"))

CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")

WEEKDAYS = (
	"monday",
	"tuesday",
	"wednesday",
	"thursday",
	"friday",
	"saturday",
	"sunday",
)
