"""
Shared outcome type and payout helpers for the games.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Optional, Dict, Any, Union
from ..database.models import GameOutcome
from ..errors import ValidationError

Number = Union[int, float, str, Decimal]


@dataclass
class Outcome:
    """Result of one play, before any balance change."""
    result: GameOutcome
    bet: int
    payout: int  # Gross amount returned to the player
    multiplier: Optional[Decimal] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_win(self) -> bool:
        return self.result == GameOutcome.WIN

    @property
    def win_amount(self) -> int:
        """Net of the bet: negative on loss, 0 on tie."""
        return self.payout - self.bet


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Number, places: int = 0) -> Decimal:
    """Round like a calculator (0.5 goes up)."""
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def floor_payout(bet: int, multiplier: Number) -> int:
    """Gross payout of `bet` at `multiplier`, rounded down to whole coins."""
    return int((Decimal(bet) * to_decimal(multiplier)).to_integral_value(rounding=ROUND_FLOOR))


def validate_bet(bet) -> int:
    """Bets are positive whole numbers."""
    if isinstance(bet, bool) or not isinstance(bet, int):
        raise ValidationError("bet", "Bet must be a whole number")
    if bet <= 0:
        raise ValidationError("bet", "Bet must be greater than 0")
    return bet


def win(bet: int, multiplier: Number, details: Optional[Dict[str, Any]] = None) -> Outcome:
    """Winning outcome paying `bet * multiplier` rounded down."""
    multiplier = to_decimal(multiplier)
    return Outcome(GameOutcome.WIN, bet, floor_payout(bet, multiplier), multiplier, details or {})


def loss(bet: int, details: Optional[Dict[str, Any]] = None, multiplier: Optional[Number] = None) -> Outcome:
    return Outcome(
        GameOutcome.LOSS,
        bet,
        0,
        to_decimal(multiplier) if multiplier is not None else None,
        details or {},
    )


def tie(bet: int, details: Optional[Dict[str, Any]] = None) -> Outcome:
    return Outcome(GameOutcome.TIE, bet, bet, Decimal(1), details or {})
