"""Shared utility functions for the RCM workflow rules engine."""

from .date_parser import parse_flexible_date

__all__ = ["parse_flexible_date"]
