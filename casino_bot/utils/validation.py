"""
Input parsing and validation for chat commands.
"""
from typing import Optional, Sequence, Tuple


def parse_bet(text: Optional[str], balance: Optional[int] = None) -> Tuple[bool, str, int]:
    """Parse a bet argument.

    Accepts whole numbers with optional thousands separators, and "all" or
    "max" for the whole balance when it is known.

    Args:
        text: Raw argument from the command
        balance: Current balance, used for "all"

    Returns:
        Tuple of (is_valid, error_message, amount)
    """
    if not text:
        return False, "Please enter a bet amount", 0

    text = text.strip().lower().replace(",", "").lstrip("$")
    if text in ("all", "max") and balance is not None:
        return True, "", balance

    if not text.isdigit():
        return False, "Bet must be a whole number", 0

    return True, "", int(text)


def is_valid_amount(amount: int, min_amount: int = 10, max_amount: int = 10000) -> Tuple[bool, str]:
    """Validate wager amount against the configured limits.

    Args:
        amount: Amount in coins
        min_amount: Minimum allowed amount
        max_amount: Maximum allowed amount

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        return False, "Amount must be a whole number"

    if amount <= 0:
        return False, "Amount must be greater than 0"

    if amount < min_amount:
        return False, f"Amount must be at least {min_amount}"

    if amount > max_amount:
        return False, f"Amount cannot exceed {max_amount}"

    return True, ""


def parse_choice(text: Optional[str], choices: Sequence[str], aliases: Optional[dict] = None) -> Tuple[bool, str, str]:
    """Match an argument against allowed choices (case-insensitive, with aliases)."""
    if not text:
        return False, f"Choose one of: {', '.join(choices)}", ""

    value = text.strip().lower()
    value = (aliases or {}).get(value, value)
    if value not in choices:
        return False, f"Choose one of: {', '.join(choices)}", ""

    return True, "", value


def sanitize_username(username: str, max_length: int = 32) -> str:
    """Sanitize username for safe storage.

    Args:
        username: Username to sanitize
        max_length: Maximum length

    Returns:
        Sanitized username
    """
    if not username:
        return ""

    # Remove control characters and trim
    sanitized = ''.join(c for c in username if c.isprintable())
    sanitized = sanitized.strip()

    # Truncate to max length
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
