"""Critpath - critical-path scheduling with working calendars and resource leveling."""

__version__ = "0.1.0"
