"""Utility functions for time handling."""

from .timestamps import (
    add_seconds,
    ensure_utc,
    format_timestamp,
    isoformat_or_none,
    parse_timestamp,
    utc_now,
    utc_today,
)

__all__ = [
    "utc_now",
    "utc_today",
    "ensure_utc",
    "add_seconds",
    "format_timestamp",
    "parse_timestamp",
    "isoformat_or_none",
]
