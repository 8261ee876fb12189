"""
Scheduling exceptions.

Unavailability is never an exception: it is returned as a result with a
reason. These classes cover malformed input and facade failures only.
"""


class SchedulingError(Exception):
	"""Error base del motor de agendamiento."""
	pass


class ValidationError(SchedulingError, ValueError):
	"""Entrada inválida (fecha, slot, catálogo, parámetros)."""
	pass
