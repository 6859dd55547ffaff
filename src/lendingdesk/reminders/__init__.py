"""Overdue reminders."""

from .manager import ReminderManager

__all__ = ["ReminderManager"]
