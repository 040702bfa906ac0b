"""
Environment configuration.

Values come from the environment (and a .env file when present). The core
never reads these constants; entry points build a BotSettings with
load_settings() and pass it into each operation.
"""
import os
from dotenv import load_dotenv
from .database.models import BotSettings, GameType

load_dotenv()


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


# Chat bot
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Admin API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _get_int("API_PORT", 8000)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Game settings (defaults for a fresh store)
PREFIX = os.getenv("COMMAND_PREFIX", "!")
CURRENCY_NAME = os.getenv("CURRENCY_NAME", "coins")
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "$")
STARTING_BALANCE = _get_int("STARTING_BALANCE", 1000)
MIN_BET = _get_int("MIN_BET", 10)
MAX_BET = _get_int("MAX_BET", 10000)
DAILY_REWARD_AMOUNT = _get_int("DAILY_REWARD_AMOUNT", 100)
STREAK_BONUS_AMOUNT = _get_int("STREAK_BONUS_AMOUNT", 25)
MAX_STREAK_BONUS = _get_int("MAX_STREAK_BONUS", 250)
COOLDOWN_MINUTES = _get_int("COOLDOWN_MINUTES", 5)
ALLOW_TRANSFERS = _get_bool("ALLOW_TRANSFERS", True)
ALLOW_USER_RESET = _get_bool("ALLOW_USER_RESET", True)
LOG_COMMANDS = _get_bool("LOG_COMMANDS", True)
DISABLED_GAMES = [g.strip().lower() for g in os.getenv("DISABLED_GAMES", "").split(",") if g.strip()]


def load_settings() -> BotSettings:
    """Build bot settings from the environment."""
    return BotSettings(
        prefix=PREFIX,
        currency_name=CURRENCY_NAME,
        currency_symbol=CURRENCY_SYMBOL,
        starting_balance=STARTING_BALANCE,
        log_commands=LOG_COMMANDS,
        allow_user_reset=ALLOW_USER_RESET,
        cooldown_minutes=COOLDOWN_MINUTES,
        game_enabled={g: g.value not in DISABLED_GAMES for g in GameType},
        daily_reward_amount=DAILY_REWARD_AMOUNT,
        streak_bonus_amount=STREAK_BONUS_AMOUNT,
        max_streak_bonus=MAX_STREAK_BONUS,
        minimum_bet=MIN_BET,
        maximum_bet=MAX_BET,
        allow_transfers=ALLOW_TRANSFERS,
    )
