"""
Hi-Lo: guess whether the next card ranks higher or lower.

Played in two phases. `start_round` shows the first card without touching any
balance; `resolve_round` draws the second card once the player has chosen.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from .base import Outcome, validate_bet, round_half_up, win, loss, tie
from .cards import RANKS
from .rng import RandomSource, rand_int
from ..database.models import utcnow
from ..errors import ValidationError

logger = logging.getLogger(__name__)

HOUSE_EDGE = Decimal("0.05")
MIN_MULTIPLIER = Decimal("1.1")
CHOICES = ("higher", "lower")
CHOICE_TIMEOUT_SECONDS = 20


@dataclass
class HiloRound:
    """A dealt first card waiting for the player's call."""
    token: str
    bet: int
    first_index: int  # Index into RANKS
    user_id: int = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def first_card(self) -> str:
        return RANKS[self.first_index]


def generate_token() -> str:
    """Generate unique round token."""
    return f"hilo_{uuid.uuid4().hex[:12]}"


def favorable_ranks(first_index: int, choice: str) -> int:
    """How many of the other ranks satisfy the call."""
    if choice == "higher":
        return len(RANKS) - 1 - first_index
    return first_index


def calculate_multiplier(first_index: int, choice: str) -> Decimal:
    """Fewer favorable ranks pay more. Never below 1.1x."""
    favorable = favorable_ranks(first_index, choice)
    if favorable == 0:
        raise ValidationError("choice", f"No card is {choice} than {RANKS[first_index]}")
    raw = Decimal(len(RANKS)) / Decimal(favorable) * (1 - HOUSE_EDGE)
    return round_half_up(max(MIN_MULTIPLIER, raw), 2)


def validate_choice(choice) -> str:
    choice = str(choice).lower()
    if choice not in CHOICES:
        raise ValidationError("choice", "Choice must be higher or lower")
    return choice


def start_round(bet: int, rng: RandomSource, user_id: int = None) -> HiloRound:
    """Deal the first card. No balance changes here."""
    bet = validate_bet(bet)
    return HiloRound(
        token=generate_token(),
        bet=bet,
        first_index=rand_int(rng, 0, len(RANKS) - 1),
        user_id=user_id,
    )


def evaluate(round_: HiloRound, second_index: int, choice: str) -> Outcome:
    """Settle a call against a known second card.

    Equal ranks push. A call no rank can satisfy (higher on an ace, lower on
    a two) always loses.
    """
    choice = validate_choice(choice)
    favorable = favorable_ranks(round_.first_index, choice)
    multiplier = calculate_multiplier(round_.first_index, choice) if favorable else None
    details = {
        "first_card": round_.first_card,
        "second_card": RANKS[second_index],
        "choice": choice,
        "payout_multiplier": str(multiplier) if multiplier is not None else None,
    }

    if second_index == round_.first_index:
        return tie(round_.bet, details)
    went_higher = second_index > round_.first_index
    if favorable and went_higher == (choice == "higher"):
        return win(round_.bet, multiplier, details)
    return loss(round_.bet, details)


def resolve_round(round_: HiloRound, choice: str, rng: RandomSource) -> Outcome:
    """Draw a second card of a different rank and settle the call."""
    choice = validate_choice(choice)

    second_index = rand_int(rng, 0, len(RANKS) - 1)
    while second_index == round_.first_index:
        second_index = rand_int(rng, 0, len(RANKS) - 1)

    outcome = evaluate(round_, second_index, choice)
    logger.info(
        f"Hi-Lo {round_.token}: {round_.first_card} -> {RANKS[second_index]} "
        f"({choice}) {outcome.result.value}"
    )
    return outcome


def play(bet: int, rng: RandomSource, choice: str = None) -> Outcome:
    """Both phases in one call, for callers that already have the choice."""
    choice = validate_choice(choice)
    return resolve_round(start_round(bet, rng), choice, rng)
