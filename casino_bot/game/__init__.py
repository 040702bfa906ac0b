"""Game logic module: payout primitives and hand evaluators."""
from typing import Callable, Dict
from ..database.models import GameType
from . import coinflip, slots, blackjack, roulette, dice, poker, crash, hilo, megamultiplier
from .base import Outcome, validate_bet, floor_payout
from .cards import Card, HandRank, PokerHand, evaluate_hand, hand_value, compare_hands
from .hilo import HiloRound, start_round, resolve_round
from .rng import RandomSource, default_rng

# Every game shares the signature play(bet, rng, **params) -> Outcome
GAMES: Dict[GameType, Callable[..., Outcome]] = {
    GameType.COINFLIP: coinflip.play,
    GameType.SLOTS: slots.play,
    GameType.BLACKJACK: blackjack.play,
    GameType.ROULETTE: roulette.play,
    GameType.DICE: dice.play,
    GameType.POKER: poker.play,
    GameType.CRASH: crash.play,
    GameType.HILO: hilo.play,
    GameType.MEGAMULTIPLIER: megamultiplier.play,
}

DESCRIPTIONS = {
    GameType.COINFLIP: "Call heads or tails. Pays 2x.",
    GameType.SLOTS: "Spin three reels. Pairs and triples pay, three sevens pay 50x.",
    GameType.BLACKJACK: "Beat the dealer to 21. Blackjack pays 2.5x.",
    GameType.ROULETTE: "Bet on a color, parity, range or single number.",
    GameType.DICE: "Bet the sum of two dice goes higher, lower or hits exactly.",
    GameType.POKER: "Five-card showdown against the dealer.",
    GameType.CRASH: "Set an auto cashout before the multiplier crashes.",
    GameType.HILO: "Guess if the next card is higher or lower.",
    GameType.MEGAMULTIPLIER: "Pick a risk level for a shot at up to 100000x.",
}


def play_game(game_type: GameType, bet: int, rng: RandomSource = None, **params) -> Outcome:
    """Look up and run the game for `game_type`."""
    return GAMES[game_type](bet, rng or default_rng(), **params)


__all__ = [
    "GAMES",
    "DESCRIPTIONS",
    "play_game",
    "Outcome",
    "validate_bet",
    "floor_payout",
    "Card",
    "HandRank",
    "PokerHand",
    "evaluate_hand",
    "hand_value",
    "compare_hands",
    "HiloRound",
    "start_round",
    "resolve_round",
    "RandomSource",
    "default_rng",
]
