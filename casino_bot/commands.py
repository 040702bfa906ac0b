"""
Chat command catalog, shared by /help and the admin API.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple
from .database.models import BotSettings, GameType
from .game import DESCRIPTIONS


@dataclass(frozen=True)
class Command:
    """One chat command as shown to players."""
    name: str
    description: str
    usage: str
    aliases: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = ()
    game_type: Optional[GameType] = None

    @property
    def category(self) -> str:
        return "game" if self.game_type else "account"

    def is_enabled(self, settings: BotSettings) -> bool:
        return self.game_type is None or settings.is_enabled(self.game_type)


def _game(game_type: GameType, usage: str, *examples: str, aliases: Tuple[str, ...] = ()) -> Command:
    return Command(
        name=game_type.value,
        description=DESCRIPTIONS[game_type],
        usage=usage,
        aliases=aliases,
        examples=examples,
        game_type=game_type,
    )


COMMANDS: List[Command] = [
    # === Games ===
    _game(GameType.COINFLIP, "/coinflip <heads|tails> <bet>", "/coinflip heads 100", "/coinflip t all"),
    _game(GameType.SLOTS, "/slots <bet>", "/slots 50"),
    _game(GameType.BLACKJACK, "/blackjack <bet> [normal|hard]", "/blackjack 100", "/blackjack 250 hard"),
    _game(
        GameType.ROULETTE,
        "/roulette <color|parity|range|number> <choice> <bet>",
        "/roulette color red 100",
        "/roulette number 17 10",
    ),
    _game(GameType.DICE, "/dice <higher|lower|exact> <number> <bet>", "/dice higher 7 100", "/dice exact 12 10"),
    _game(GameType.POKER, "/poker <bet>", "/poker 200"),
    _game(GameType.CRASH, "/crash <bet> [auto cashout]", "/crash 100 2.5x"),
    _game(GameType.HILO, "/hilo <bet>", "/hilo 100"),
    _game(GameType.MEGAMULTIPLIER, "/mega <bet> [risk 1-10]", "/mega 100 8", aliases=("mega",)),

    # === Account ===
    Command("start", "Create your account and show the menu.", "/start"),
    Command("help", "List every command.", "/help"),
    Command("balance", "Show your balance and record.", "/balance"),
    Command("daily", "Claim the daily reward. Consecutive days add a streak bonus.", "/daily"),
    Command(
        "transfer",
        "Send coins to another player, by username or as a reply to their message.",
        "/transfer <user> <amount>",
        examples=("/transfer @bob 250",),
    ),
    Command("stats", "Your results per game.", "/stats"),
    Command("history", "Your most recent transactions.", "/history"),
    Command(
        "leaderboard",
        "Richest players, or the best players of one game.",
        "/leaderboard [game]",
        examples=("/leaderboard", "/leaderboard slots"),
    ),
    Command("delete_my_data", "Delete your balance, streak and stats.", "/delete_my_data"),
]


def get_command(name: str) -> Optional[Command]:
    """Look up a command by name or alias."""
    name = name.lstrip("/").lower()
    for command in COMMANDS:
        if command.name == name or name in command.aliases:
            return command
    return None
