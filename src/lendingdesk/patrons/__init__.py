"""Patron account management."""

from .manager import PatronManager

__all__ = ["PatronManager"]
