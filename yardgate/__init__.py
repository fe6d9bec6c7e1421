"""Yard truck lifecycle backend."""

__version__ = "1.0.0"
