"""
Formatting utilities for display.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union


def format_coins(amount: int, symbol: str = "$") -> str:
    """Format a coin amount for display."""
    if amount < 0:
        return f"-{symbol}{-amount:,}"
    return f"{symbol}{amount:,}"


def format_multiplier(multiplier: Optional[Union[str, Decimal]]) -> str:
    """Format multiplier for display."""
    if multiplier is None:
        return "-"
    value = Decimal(str(multiplier)).normalize()
    return f"{value:f}x"


def format_timestamp(dt: Optional[datetime]) -> str:
    """Render a stored timestamp in UTC, to the minute."""
    if not dt:
        return "N/A"
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%b %d %H:%M UTC")


def format_duration(delta: timedelta) -> str:
    """Format a wait time as hours and minutes."""
    minutes = max(0, int(delta.total_seconds() // 60))
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_win_rate(games_played: int, games_won: int) -> str:
    """Format win rate as a whole percentage."""
    if games_played == 0:
        return "0%"
    win_rate = Decimal(games_won * 100) / Decimal(games_played)
    return f"{win_rate.quantize(Decimal(1), rounding=ROUND_HALF_UP)}%"
