"""
Playing cards and hand evaluation for blackjack and poker.
"""
from collections import Counter
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Sequence
from .rng import RandomSource, shuffle

RANKS = ["2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A"]
SUITS = ["♠", "♥", "♦", "♣"]


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    @property
    def value(self) -> int:
        """Poker value, 2 through 14 (ace high)."""
        return RANKS.index(self.rank) + 2

    @property
    def blackjack_value(self) -> int:
        if self.rank == "A":
            return 11
        if self.rank in ("J", "Q", "K"):
            return 10
        return int(self.rank)

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"


def new_deck(rng: RandomSource = None) -> List[Card]:
    """Fresh 52-card deck, shuffled when a random source is given."""
    deck = [Card(rank, suit) for suit in SUITS for rank in RANKS]
    if rng is not None:
        shuffle(rng, deck)
    return deck


# === Blackjack ===

def hand_value(cards: Sequence[Card]) -> int:
    """Best blackjack total. Aces drop from 11 to 1 while the hand is bust."""
    total = sum(card.blackjack_value for card in cards)
    aces = sum(1 for card in cards if card.rank == "A")
    while total > 21 and aces:
        total -= 10
        aces -= 1
    return total


def is_natural(cards: Sequence[Card]) -> bool:
    return len(cards) == 2 and hand_value(cards) == 21


# === Poker ===

class HandRank(IntEnum):
    """Poker hand categories, weakest first."""
    HIGH_CARD = 0
    PAIR = 1
    TWO_PAIR = 2
    THREE_OF_A_KIND = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    FOUR_OF_A_KIND = 7
    STRAIGHT_FLUSH = 8
    ROYAL_FLUSH = 9

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class PokerHand:
    rank: HandRank
    high_card: int  # Value that decides ties within the same rank


WHEEL = {14, 2, 3, 4, 5}


def evaluate_hand(cards: Sequence[Card]) -> PokerHand:
    """Classify a five-card hand.

    A-2-3-4-5 (the wheel) is a straight with 5 as its high card.
    """
    values = sorted((card.value for card in cards), reverse=True)
    counts = Counter(values)
    # Most copies first, then higher value
    groups = sorted(counts.items(), key=lambda kv: (kv[1], kv[0]), reverse=True)

    is_flush = len({card.suit for card in cards}) == 1
    distinct = set(values)
    is_wheel = distinct == WHEEL
    is_straight = len(distinct) == 5 and (values[0] - values[-1] == 4 or is_wheel)
    straight_high = 5 if is_wheel else values[0]

    if is_straight and is_flush:
        if straight_high == 14:
            return PokerHand(HandRank.ROYAL_FLUSH, 14)
        return PokerHand(HandRank.STRAIGHT_FLUSH, straight_high)
    if groups[0][1] == 4:
        return PokerHand(HandRank.FOUR_OF_A_KIND, groups[0][0])
    if groups[0][1] == 3 and groups[1][1] == 2:
        return PokerHand(HandRank.FULL_HOUSE, groups[0][0])
    if is_flush:
        return PokerHand(HandRank.FLUSH, values[0])
    if is_straight:
        return PokerHand(HandRank.STRAIGHT, straight_high)
    if groups[0][1] == 3:
        return PokerHand(HandRank.THREE_OF_A_KIND, groups[0][0])
    if groups[0][1] == 2 and groups[1][1] == 2:
        return PokerHand(HandRank.TWO_PAIR, groups[0][0])
    if groups[0][1] == 2:
        return PokerHand(HandRank.PAIR, groups[0][0])
    return PokerHand(HandRank.HIGH_CARD, values[0])


def compare_hands(player: PokerHand, dealer: PokerHand) -> int:
    """1 if the player wins, -1 if the dealer wins, 0 on a tie."""
    player_key = (player.rank, player.high_card)
    dealer_key = (dealer.rank, dealer.high_card)
    if player_key > dealer_key:
        return 1
    if player_key < dealer_key:
        return -1
    return 0


def format_cards(cards: Sequence[Card]) -> str:
    return " ".join(str(card) for card in cards)
