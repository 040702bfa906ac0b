"""Utility modules for the casino bot."""
from .formatting import (
    format_coins,
    format_multiplier,
    format_timestamp,
    format_duration,
    format_win_rate,
)
from .validation import parse_bet, is_valid_amount, parse_choice, sanitize_username

__all__ = [
    "format_coins",
    "format_multiplier",
    "format_timestamp",
    "format_duration",
    "format_win_rate",
    "parse_bet",
    "is_valid_amount",
    "parse_choice",
    "sanitize_username",
]
