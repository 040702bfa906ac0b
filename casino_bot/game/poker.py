"""
Five-card showdown against the dealer.
"""
import logging
from decimal import Decimal
from .base import Outcome, validate_bet, win, loss, tie
from .cards import HandRank, new_deck, evaluate_hand, compare_hands, format_cards
from .rng import RandomSource

logger = logging.getLogger(__name__)

# Gross payout multiplier keyed by the player's winning hand
PAYOUTS = {
    HandRank.HIGH_CARD: Decimal(1),
    HandRank.PAIR: Decimal(1),
    HandRank.TWO_PAIR: Decimal(2),
    HandRank.THREE_OF_A_KIND: Decimal(3),
    HandRank.STRAIGHT: Decimal(4),
    HandRank.FLUSH: Decimal(6),
    HandRank.FULL_HOUSE: Decimal(10),
    HandRank.FOUR_OF_A_KIND: Decimal(25),
    HandRank.STRAIGHT_FLUSH: Decimal(50),
    HandRank.ROYAL_FLUSH: Decimal(100),
}


def play(bet: int, rng: RandomSource) -> Outcome:
    bet = validate_bet(bet)

    deck = new_deck(rng)
    player_cards = []
    dealer_cards = []
    for _ in range(5):
        player_cards.append(deck.pop())
        dealer_cards.append(deck.pop())

    player = evaluate_hand(player_cards)
    dealer = evaluate_hand(dealer_cards)
    details = {
        "player_hand": format_cards(player_cards),
        "dealer_hand": format_cards(dealer_cards),
        "player_rank": player.rank.label,
        "dealer_rank": dealer.rank.label,
    }

    result = compare_hands(player, dealer)
    logger.info(f"Poker: {player.rank.label} vs {dealer.rank.label}")
    if result > 0:
        return win(bet, PAYOUTS[player.rank], details)
    if result == 0:
        return tie(bet, details)
    return loss(bet, details)
