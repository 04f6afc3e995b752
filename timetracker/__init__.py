"""Time tracking API: timer sessions, notes and calendar views."""

__version__ = "1.0.0"
