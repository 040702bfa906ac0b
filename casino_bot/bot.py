"""
Telegram bot front end for the casino.
"""
import asyncio
import logging
from typing import Optional, Tuple

import uvicorn
from fastapi import FastAPI
from telegram import Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes
from telegram.helpers import escape_markdown

from . import config, menus
from .api import create_app
from .commands import COMMANDS, get_command
from .casino import CasinoService, PlayResult, GAME_NAMES
from .database import Database, GameType, GameOutcome, BotSettings, Transaction, User
from .errors import CasinoError, PolicyError
from .game import hilo
from .utils import (
    format_coins,
    format_duration,
    format_multiplier,
    format_timestamp,
    format_win_rate,
    parse_bet,
    parse_choice,
)

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 10
HISTORY_SIZE = 10


def get_casino(context: ContextTypes.DEFAULT_TYPE) -> CasinoService:
    return context.bot_data["casino"]


async def reply(update: Update, text: str, **kwargs):
    await update.effective_message.reply_text(text, parse_mode="Markdown", **kwargs)


async def ensure_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> User:
    """Ensure the Telegram user has an account."""
    casino = get_casino(context)
    settings = casino.db.get_settings()
    tg_user = update.effective_user

    if settings.log_commands and update.message and update.message.text:
        logger.info(f"Command from {tg_user.id}: {update.message.text}")

    return casino.get_or_create_user(str(tg_user.id), tg_user.username or tg_user.first_name, settings)


# ===== RESULT FORMATTING =====

def describe_outcome(game_type: GameType, details: dict) -> str:
    """Game-specific lines of a result message."""
    if game_type == GameType.COINFLIP:
        return f"Your call: {details['choice'].title()}\nResult: {details['result'].title()}"
    if game_type == GameType.SLOTS:
        return f"[ {details['display']} ]"
    if game_type == GameType.BLACKJACK:
        return (
            f"Your hand: {details['player_hand']} ({details['player_value']})\n"
            f"Dealer: {details['dealer_hand']} ({details['dealer_value']})\n"
            f"Mode: {details['mode'].title()}"
        )
    if game_type == GameType.ROULETTE:
        return (
            f"Ball landed on *{details['number']}* ({details['color']})\n"
            f"Your bet: {details['bet_type']} {details['choice']}"
        )
    if game_type == GameType.DICE:
        die1, die2 = details["dice"]
        return f"Dice: {die1} + {die2} = *{details['total']}*\nYour bet: {details['bet_type']} {details['target']}"
    if game_type == GameType.POKER:
        return (
            f"Your hand: {details['player_hand']} ({details['player_rank']})\n"
            f"Dealer: {details['dealer_hand']} ({details['dealer_rank']})"
        )
    if game_type == GameType.CRASH:
        cashout = f"{details['cashout']}x" if details["cashout"] else "none"
        return f"Crashed at *{details['crash_point']}x*\nAuto cashout: {cashout}"
    if game_type == GameType.HILO:
        return f"{details['first_card']} → {details['second_card']} (you called {details['choice']})"
    if game_type == GameType.MEGAMULTIPLIER:
        return f"Risk level: {details['risk']} ({details['win_chance']}% win chance)"
    return ""


def format_play_result(game_type: GameType, result: PlayResult, settings: BotSettings) -> str:
    outcome = result.outcome
    symbol = settings.currency_symbol
    if outcome.result == GameOutcome.WIN:
        header = f"🎉 *{GAME_NAMES[game_type]}: You won!*"
    elif outcome.result == GameOutcome.TIE:
        header = f"🤝 *{GAME_NAMES[game_type]}: Push*"
    else:
        header = f"😢 *{GAME_NAMES[game_type]}: You lost*"

    lines = [header, "", describe_outcome(game_type, outcome.details), ""]
    lines.append(f"Bet: {format_coins(outcome.bet, symbol)}")
    if outcome.is_win:
        lines.append(f"Multiplier: {format_multiplier(outcome.multiplier)}")
    lines.append(f"Winnings: {format_coins(outcome.payout, symbol)}")
    lines.append(f"New balance: {format_coins(result.balance, symbol)}")
    return "\n".join(lines)


def format_history_line(tx: Transaction, symbol: str) -> str:
    sign = "+" if tx.amount > 0 else ""
    amount = f"{sign}{format_coins(tx.amount, symbol)}"
    return f"`{format_timestamp(tx.timestamp)}` {amount} {escape_markdown(tx.description)}"


async def run_game(update: Update, context: ContextTypes.DEFAULT_TYPE, game_type: GameType, bet_text: Optional[str], **params):
    """Parse the bet, play, reply with the result or the reason it was refused."""
    casino = get_casino(context)
    user = await ensure_user(update, context)
    settings = casino.db.get_settings()

    ok, error, bet = parse_bet(bet_text, user.balance)
    if not ok:
        await reply(update, f"❌ {error}")
        return

    try:
        result = casino.play(user.user_id, game_type, bet, settings, **params)
    except CasinoError as e:
        logger.warning(f"User {user.user_id} {game_type.value} rejected: {e.message}")
        await reply(update, f"❌ {escape_markdown(e.message)}")
        return

    await reply(update, format_play_result(game_type, result, settings))


def arg(context: ContextTypes.DEFAULT_TYPE, index: int) -> Optional[str]:
    args = context.args or []
    return args[index] if len(args) > index else None


# ===== COMMAND HANDLERS =====

async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    user = await ensure_user(update, context)
    settings = get_casino(context).db.get_settings()

    welcome_msg = (
        "🎰 *Welcome to the Casino!*\n\n"
        f"You have {format_coins(user.balance, settings.currency_symbol)} {settings.currency_name} to play with.\n\n"
        "*Games:* coinflip, slots, blackjack, roulette, dice, poker, crash, hilo, mega\n"
        "Claim free coins every day with /daily.\n\n"
        "Type /help for the full command list."
    )
    await reply(update, welcome_msg, reply_markup=menus.main_menu())


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help [command]."""
    settings = get_casino(context).db.get_settings()
    symbol = settings.currency_symbol

    name = arg(context, 0)
    if name:
        command = get_command(name)
        if not command:
            await reply(update, f"❌ Unknown command: {escape_markdown(name)}")
            return
        lines = [f"❓ *{escape_markdown(command.usage)}*", "", command.description]
        if command.examples:
            lines.append("")
            lines.append("Examples:")
            lines.extend(escape_markdown(example) for example in command.examples)
        if not command.is_enabled(settings):
            lines.append("")
            lines.append("_Currently disabled._")
        await reply(update, "\n".join(lines))
        return

    lines = ["❓ *Help & Commands*", "", "*Games:*"]
    lines.extend(escape_markdown(c.usage) for c in COMMANDS if c.category == "game" and c.is_enabled(settings))
    lines.extend(["", "*Account:*"])
    lines.extend(escape_markdown(c.usage) for c in COMMANDS if c.category == "account")
    lines.extend([
        "",
        f"Bets: {format_coins(settings.minimum_bet, symbol)} to {format_coins(settings.maximum_bet, symbol)}. "
        "Use `all` to bet your whole balance. /help <command> for details.",
    ])
    await reply(update, "\n".join(lines), reply_markup=menus.main_menu())


async def balance_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /balance command."""
    user = await ensure_user(update, context)
    settings = get_casino(context).db.get_settings()
    symbol = settings.currency_symbol

    msg = (
        f"💰 *Balance:* {format_coins(user.balance, symbol)}\n\n"
        f"Highest balance: {format_coins(user.highest_balance, symbol)}\n"
        f"Games played: {user.games_played} (won {user.games_won}, "
        f"{format_win_rate(user.games_played, user.games_won)})"
    )
    await reply(update, msg)


async def daily_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /daily command."""
    casino = get_casino(context)
    user = await ensure_user(update, context)
    settings = casino.db.get_settings()

    try:
        reward = casino.rewards.claim(user.user_id, settings)
    except PolicyError as e:
        status = casino.rewards.get_status(user.user_id)
        await reply(update, f"⏳ {e.message}. Come back in {format_duration(status.time_remaining)}.")
        return

    symbol = settings.currency_symbol
    msg = (
        f"🎁 *Daily reward claimed!*\n\n"
        f"Base: {format_coins(reward.base, symbol)}\n"
        f"Streak bonus: {format_coins(reward.bonus, symbol)} (day {reward.streak})\n"
        f"Total: *{format_coins(reward.amount, symbol)}*\n\n"
        f"New balance: {format_coins(reward.transaction.balance_after, symbol)}"
    )
    await reply(update, msg)


def find_user_by_name(casino: CasinoService, name: str) -> Optional[User]:
    name = name.lstrip("@").lower()
    for user in casino.db.get_all_users():
        if user.username and user.username.lower() == name:
            return user
    return None


async def transfer_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /transfer <user> <amount>, or /transfer <amount> as a reply."""
    casino = get_casino(context)
    sender = await ensure_user(update, context)
    settings = casino.db.get_settings()

    replied = update.message.reply_to_message if update.message else None
    if replied and replied.from_user:
        recipient = casino.get_or_create_user(
            str(replied.from_user.id), replied.from_user.username or replied.from_user.first_name, settings
        )
        amount_text = arg(context, 0)
    else:
        name = arg(context, 0)
        recipient = find_user_by_name(casino, name) if name else None
        amount_text = arg(context, 1)
        if not recipient:
            await reply(update, "❌ Usage: /transfer <username> <amount> (the recipient must have played before)")
            return

    ok, error, amount = parse_bet(amount_text)
    if not ok:
        await reply(update, f"❌ {error}")
        return

    try:
        sent, _ = casino.ledger.transfer(
            sender.user_id, recipient.user_id, amount, allow_transfers=settings.allow_transfers
        )
    except CasinoError as e:
        await reply(update, f"❌ {escape_markdown(e.message)}")
        return

    symbol = settings.currency_symbol
    await reply(
        update,
        f"💸 Sent {format_coins(amount, symbol)} to {escape_markdown(recipient.display_name)}.\n"
        f"New balance: {format_coins(sent.balance_after, symbol)}",
    )


async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /stats command."""
    casino = get_casino(context)
    user = await ensure_user(update, context)
    rows = casino.stats.get_user_stats(user.user_id)

    if not rows:
        await reply(update, "📊 You have not played any games yet.")
        return

    symbol = casino.db.get_settings().currency_symbol
    lines = ["📊 *Your Stats*", ""]
    for row in rows:
        star = " ⭐" if row.favorite_game else ""
        lines.append(
            f"*{GAME_NAMES[row.game_type]}*{star}: {row.games_played} played, {row.win_rate} won, "
            f"net {format_coins(row.net_profit_loss, symbol)}"
        )
    lines.append("")
    lines.append(f"Overall: {user.games_played} games, {format_win_rate(user.games_played, user.games_won)} won")
    await reply(update, "\n".join(lines))


async def history_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /history command."""
    casino = get_casino(context)
    user = await ensure_user(update, context)
    txs = casino.ledger.get_history(user.user_id, HISTORY_SIZE)

    if not txs:
        await reply(update, "📜 No transactions yet.")
        return

    symbol = casino.db.get_settings().currency_symbol
    lines = ["📜 *Recent Transactions*", ""]
    lines.extend(format_history_line(tx, symbol) for tx in txs)
    await reply(update, "\n".join(lines))


async def leaderboard_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /leaderboard [game] command."""
    casino = get_casino(context)
    await ensure_user(update, context)
    symbol = casino.db.get_settings().currency_symbol

    game_name = arg(context, 0)
    if game_name:
        aliases = {"mega": GameType.MEGAMULTIPLIER.value}
        ok, error, value = parse_choice(game_name, [g.value for g in GameType], aliases)
        if not ok:
            await reply(update, f"❌ {error}")
            return
        game_type = GameType(value)
        standings = casino.stats.player_leaderboard(game_type, "net_profit_loss", LEADERBOARD_SIZE)
        lines = [f"🏆 *{GAME_NAMES[game_type]} Leaderboard*", ""]
        for i, s in enumerate(standings, 1):
            name = escape_markdown(s.username or f"Player {s.user_id}")
            lines.append(f"{i}. {name}: {format_coins(s.net_profit_loss, symbol)} ({s.games_played} played)")
    else:
        lines = ["🏆 *Richest Players*", ""]
        for i, u in enumerate(casino.stats.top_balances(LEADERBOARD_SIZE), 1):
            lines.append(f"{i}. {escape_markdown(u.display_name)}: {format_coins(u.balance, symbol)}")

    if len(lines) == 2:
        lines.append("Nobody yet. Be the first!")
    await reply(update, "\n".join(lines))


async def delete_data_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /delete_my_data command."""
    casino = get_casino(context)
    await ensure_user(update, context)
    if not casino.db.get_settings().allow_user_reset:
        await reply(update, "❌ Deleting user data is disabled.")
        return

    await reply(
        update,
        "⚠️ *This deletes your balance, streak and stats.* This cannot be undone.",
        reply_markup=menus.confirm_delete_menu(),
    )


# ===== GAME COMMANDS =====

async def coinflip_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /coinflip <heads|tails> <bet>."""
    ok, error, choice = parse_choice(arg(context, 0), ("heads", "tails"), {"h": "heads", "t": "tails"})
    if not ok:
        await reply(update, f"❌ {error}\nUsage: /coinflip <heads|tails> <bet>")
        return
    await run_game(update, context, GameType.COINFLIP, arg(context, 1), choice=choice)


async def slots_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /slots <bet>."""
    await run_game(update, context, GameType.SLOTS, arg(context, 0))


async def blackjack_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /blackjack <bet> [normal|hard]."""
    await run_game(update, context, GameType.BLACKJACK, arg(context, 0), mode=arg(context, 1) or "normal")


async def roulette_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /roulette <bet_type> <choice> <bet>."""
    if len(context.args or []) < 3:
        await reply(update, "❌ Usage: /roulette <color|parity|range|number> <choice> <bet>")
        return
    await run_game(update, context, GameType.ROULETTE, arg(context, 2), bet_type=arg(context, 0), choice=arg(context, 1))


async def dice_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /dice <higher|lower|exact> <number> <bet>."""
    aliases = {"h": "higher", "over": "higher", "l": "lower", "under": "lower", "e": "exact"}
    ok, error, bet_type = parse_choice(arg(context, 0), ("higher", "lower", "exact"), aliases)
    if not ok:
        await reply(update, f"❌ {error}\nUsage: /dice <higher|lower|exact> <number> <bet>")
        return
    await run_game(update, context, GameType.DICE, arg(context, 2), bet_type=bet_type, target=arg(context, 1))


async def poker_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /poker <bet>."""
    await run_game(update, context, GameType.POKER, arg(context, 0))


async def crash_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /crash <bet> [cashout]."""
    cashout = arg(context, 1)
    await run_game(update, context, GameType.CRASH, arg(context, 0), cashout=cashout.rstrip("xX") if cashout else None)


async def megamultiplier_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /mega <bet> [risk]."""
    await run_game(update, context, GameType.MEGAMULTIPLIER, arg(context, 0), risk=arg(context, 1))


async def hilo_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /hilo <bet>: deal a card and wait for the call."""
    casino = get_casino(context)
    user = await ensure_user(update, context)
    settings = casino.db.get_settings()

    ok, error, bet = parse_bet(arg(context, 0), user.balance)
    if not ok:
        await reply(update, f"❌ {error}")
        return

    try:
        round_ = casino.start_hilo(user.user_id, bet, settings)
    except CasinoError as e:
        await reply(update, f"❌ {escape_markdown(e.message)}")
        return

    odds = []
    for choice in hilo.CHOICES:
        if hilo.favorable_ranks(round_.first_index, choice):
            odds.append(f"{choice.title()}: {format_multiplier(hilo.calculate_multiplier(round_.first_index, choice))}")

    msg = (
        f"🃏 *Hi-Lo*\n\n"
        f"Card: *{round_.first_card}*\n"
        f"Bet: {format_coins(bet, settings.currency_symbol)}\n"
        f"{' | '.join(odds)}\n\n"
        f"Higher or lower? You have {hilo.CHOICE_TIMEOUT_SECONDS} seconds."
    )
    await reply(update, msg, reply_markup=menus.hilo_menu(round_.token, round_.first_index))

    context.job_queue.run_once(
        hilo_timeout,
        hilo.CHOICE_TIMEOUT_SECONDS,
        data=round_.token,
        chat_id=update.effective_chat.id,
        name=round_.token,
    )


async def hilo_timeout(context: ContextTypes.DEFAULT_TYPE):
    """Expire an unanswered round. The bet was never taken."""
    round_ = get_casino(context).cancel_hilo(context.job.data)
    if round_:
        await context.bot.send_message(
            chat_id=context.job.chat_id,
            text=f"⏰ Hi-Lo on {round_.first_card} timed out. Your bet was not taken.",
        )


async def handle_hilo_choice(update: Update, context: ContextTypes.DEFAULT_TYPE, data: str):
    query = update.callback_query
    casino = get_casino(context)
    user = await ensure_user(update, context)
    _, token, choice = data.split(":", 2)

    round_ = casino.pending_rounds.get(token)
    if not round_:
        await query.edit_message_text("⌛ This round has expired or was already played.")
        return
    if round_.user_id != user.user_id:
        return

    for job in context.job_queue.get_jobs_by_name(token):
        job.schedule_removal()

    if choice == "cancel":
        casino.cancel_hilo(token)
        await query.edit_message_text("Round cancelled. Your bet was not taken.")
        return

    settings = casino.db.get_settings()
    try:
        result = casino.resolve_hilo(token, choice)
    except CasinoError as e:
        await query.edit_message_text(f"❌ {e.message}")
        return

    await query.edit_message_text(format_play_result(GameType.HILO, result, settings), parse_mode="Markdown")


# ===== CALLBACK HANDLERS =====

async def handle_delete_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    casino = get_casino(context)
    user = await ensure_user(update, context)

    try:
        casino.delete_user_data(user.user_id, casino.db.get_settings())
    except CasinoError as e:
        await query.edit_message_text(f"❌ {e.message}")
        return
    await query.edit_message_text("🗑️ Your data has been deleted.")


async def button_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle all button callbacks."""
    query = update.callback_query
    await query.answer()
    data = query.data

    if data.startswith("hilo:"):
        await handle_hilo_choice(update, context, data)
    elif data == "delete_confirm":
        await handle_delete_confirm(update, context)
    elif data == "delete_cancel":
        await query.edit_message_text("Nothing was deleted.")
    elif data == "balance":
        await balance_command(update, context)
    elif data == "daily":
        await daily_command(update, context)
    elif data == "stats":
        await stats_command(update, context)
    elif data == "leaderboard":
        await leaderboard_command(update, context)
    elif data == "history":
        await history_command(update, context)
    elif data == "help":
        await help_command(update, context)
    else:
        logger.warning(f"Unknown callback data: {data}")


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    logger.error("Exception while handling an update", exc_info=context.error)


# ===== MAIN =====

def build_application(casino: CasinoService, token: str) -> Application:
    """Wire command handlers around a casino service."""
    app = Application.builder().token(token).build()
    app.bot_data["casino"] = casino

    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("balance", balance_command))
    app.add_handler(CommandHandler("daily", daily_command))
    app.add_handler(CommandHandler("transfer", transfer_command))
    app.add_handler(CommandHandler("stats", stats_command))
    app.add_handler(CommandHandler("history", history_command))
    app.add_handler(CommandHandler("leaderboard", leaderboard_command))
    app.add_handler(CommandHandler("delete_my_data", delete_data_command))

    app.add_handler(CommandHandler("coinflip", coinflip_command))
    app.add_handler(CommandHandler("slots", slots_command))
    app.add_handler(CommandHandler("blackjack", blackjack_command))
    app.add_handler(CommandHandler("roulette", roulette_command))
    app.add_handler(CommandHandler("dice", dice_command))
    app.add_handler(CommandHandler("poker", poker_command))
    app.add_handler(CommandHandler("crash", crash_command))
    app.add_handler(CommandHandler("hilo", hilo_command))
    app.add_handler(CommandHandler(["megamultiplier", "mega"], megamultiplier_command))

    app.add_handler(CallbackQueryHandler(button_callback))
    app.add_error_handler(error_handler)
    return app


def create_runtime(token: str, settings: Optional[BotSettings] = None) -> Tuple[Application, FastAPI]:
    """Build the bot and the admin API over one casino service."""
    casino = CasinoService(Database(settings or config.load_settings()))
    return build_application(casino, token), create_app(casino=casino)


async def serve(application: Application, api_app: FastAPI):
    """Poll for updates and serve the admin API until the server stops."""
    server = uvicorn.Server(uvicorn.Config(
        api_app,
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower(),
    ))
    async with application:
        await application.start()
        await application.updater.start_polling(allowed_updates=Update.ALL_TYPES)
        logger.info(f"Admin API listening on {config.API_HOST}:{config.API_PORT}")
        try:
            await server.serve()
        finally:
            await application.updater.stop()
            await application.stop()


def main():
    """Run the bot and the admin API in one process."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=config.LOG_LEVEL,
    )
    if not config.BOT_TOKEN:
        raise SystemExit("BOT_TOKEN is not set")

    application, api_app = create_runtime(config.BOT_TOKEN)

    logger.info("=" * 50)
    logger.info("Casino bot starting...")
    logger.info("=" * 50)
    asyncio.run(serve(application, api_app))


if __name__ == "__main__":
    main()
