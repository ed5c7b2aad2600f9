"""Hazard Alert Hub - citizen hazard reporting with admin triage."""

__version__ = "0.1.0"
