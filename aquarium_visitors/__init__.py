"""Aquarium visitor simulation: grid A*, steering and a timed visitor state machine."""

__version__ = "0.1.0"
