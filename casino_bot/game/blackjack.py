"""
Automatic blackjack against the dealer.
"""
import logging
from decimal import Decimal
from typing import List
from .base import Outcome, validate_bet, win, loss, tie
from .cards import Card, new_deck, hand_value, is_natural, format_cards
from .rng import RandomSource
from ..errors import ValidationError

logger = logging.getLogger(__name__)

NATURAL_MULTIPLIER = Decimal("2.5")
WIN_MULTIPLIER = Decimal(2)
PLAYER_STAND = 17  # Player hits below this

# Dealer keeps hitting while the hand is at or below this value
DEALER_HIT_THRESHOLD = {
    "normal": 16,
    "hard": 17,
}


def _details(player: List[Card], dealer: List[Card], mode: str, reason: str) -> dict:
    return {
        "player_hand": format_cards(player),
        "dealer_hand": format_cards(dealer),
        "player_value": hand_value(player),
        "dealer_value": hand_value(dealer),
        "mode": mode,
        "reason": reason,
    }


def settle(player: List[Card], dealer: List[Card], deck: List[Card], bet: int, mode: str = "normal") -> Outcome:
    """Play out dealt hands, drawing from the end of `deck`.

    Args:
        player: Player's two starting cards
        dealer: Dealer's two starting cards
        deck: Remaining cards
        bet: Wager in coins
        mode: "normal" or "hard"

    Returns:
        Settled outcome
    """
    player = list(player)
    dealer = list(dealer)

    player_natural = is_natural(player)
    dealer_natural = is_natural(dealer)
    if player_natural and dealer_natural:
        return tie(bet, _details(player, dealer, mode, "both blackjack"))
    if player_natural:
        return win(bet, NATURAL_MULTIPLIER, _details(player, dealer, mode, "blackjack"))
    if dealer_natural:
        return loss(bet, _details(player, dealer, mode, "dealer blackjack"))

    while hand_value(player) < PLAYER_STAND:
        player.append(deck.pop())
    if hand_value(player) > 21:
        return loss(bet, _details(player, dealer, mode, "bust"))

    threshold = DEALER_HIT_THRESHOLD[mode]
    while hand_value(dealer) <= threshold:
        dealer.append(deck.pop())

    player_value = hand_value(player)
    dealer_value = hand_value(dealer)
    if dealer_value > 21:
        return win(bet, WIN_MULTIPLIER, _details(player, dealer, mode, "dealer bust"))
    if player_value > dealer_value:
        return win(bet, WIN_MULTIPLIER, _details(player, dealer, mode, "higher hand"))
    if player_value == dealer_value:
        return tie(bet, _details(player, dealer, mode, "push"))
    return loss(bet, _details(player, dealer, mode, "dealer higher"))


def play(bet: int, rng: RandomSource, mode: str = "normal") -> Outcome:
    bet = validate_bet(bet)
    mode = str(mode or "normal").lower()
    if mode not in DEALER_HIT_THRESHOLD:
        raise ValidationError("mode", "Mode must be normal or hard")

    deck = new_deck(rng)
    player = [deck.pop(), deck.pop()]
    dealer = [deck.pop(), deck.pop()]

    outcome = settle(player, dealer, deck, bet, mode)
    logger.info(
        f"Blackjack {mode}: player {outcome.details['player_value']} vs dealer "
        f"{outcome.details['dealer_value']} -> {outcome.result.value}"
    )
    return outcome
