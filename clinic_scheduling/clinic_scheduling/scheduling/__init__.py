"""
Scheduling Module

Core scheduling engine for clinic resources:
- timing.py: "HH:mm" / date arithmetic, clinic timezone, past-slot test
- overlap.py: interval overlap detection
- availability.py: therapist / room / patient free-busy checks
- slots.py: slot generation per day and per entity
- timeline.py: per-room timeline merging slots and bookings
- matrix.py: schedule matrix for all rooms, slot recommendations
- rules.py: pre-commit booking rules and conflict listings
- recurring.py: multi-day requests and alternatives
- doctor.py: fixed-grid doctor consultations
"""
