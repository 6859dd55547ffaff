"""Lending desk: loans, fines and borrowing eligibility for a lending library."""

__version__ = "0.1.0"
