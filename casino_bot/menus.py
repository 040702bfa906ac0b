"""
Telegram bot keyboard menus.
"""
from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from .game.cards import RANKS


def main_menu() -> InlineKeyboardMarkup:
    """Main menu shortcuts."""
    keyboard = [
        [
            InlineKeyboardButton("Balance", callback_data="balance"),
            InlineKeyboardButton("Daily Reward", callback_data="daily"),
        ],
        [
            InlineKeyboardButton("Stats", callback_data="stats"),
            InlineKeyboardButton("Leaderboard", callback_data="leaderboard"),
        ],
        [InlineKeyboardButton("History", callback_data="history")],
        [InlineKeyboardButton("Help", callback_data="help")],
    ]
    return InlineKeyboardMarkup(keyboard)


def hilo_menu(token: str, first_index: int) -> InlineKeyboardMarkup:
    """Higher / lower buttons. A call that cannot win is left out."""
    row = []
    if first_index < len(RANKS) - 1:
        row.append(InlineKeyboardButton("Higher", callback_data=f"hilo:{token}:higher"))
    if first_index > 0:
        row.append(InlineKeyboardButton("Lower", callback_data=f"hilo:{token}:lower"))
    keyboard = [
        row,
        [InlineKeyboardButton("Cancel", callback_data=f"hilo:{token}:cancel")],
    ]
    return InlineKeyboardMarkup(keyboard)


def confirm_delete_menu() -> InlineKeyboardMarkup:
    """Confirm wiping account data."""
    keyboard = [
        [InlineKeyboardButton("Yes, delete my data", callback_data="delete_confirm")],
        [InlineKeyboardButton("Cancel", callback_data="delete_cancel")],
    ]
    return InlineKeyboardMarkup(keyboard)
