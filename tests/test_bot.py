from datetime import datetime, timezone

from fastapi.testclient import TestClient

from casino_bot import menus
from casino_bot.bot import create_runtime, format_history_line, format_play_result, describe_outcome
from casino_bot.commands import get_command
from casino_bot.database import BotSettings, GameType, Transaction, TransactionType


def callbacks(markup):
    return [button.callback_data for row in markup.inline_keyboard for button in row]


def test_hilo_menu_offers_both_calls_mid_deck():
    assert callbacks(menus.hilo_menu("hilo_abc", 6)) == [
        "hilo:hilo_abc:higher",
        "hilo:hilo_abc:lower",
        "hilo:hilo_abc:cancel",
    ]


def test_hilo_menu_hides_impossible_calls():
    assert "hilo:t:higher" not in callbacks(menus.hilo_menu("t", 12))
    assert "hilo:t:lower" not in callbacks(menus.hilo_menu("t", 0))


def test_main_menu_callbacks():
    assert callbacks(menus.main_menu()) == ["balance", "daily", "stats", "leaderboard", "history", "help"]


def test_format_winning_coinflip(casino, user, settings, scripted):
    result = casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")
    text = format_play_result(GameType.COINFLIP, result, settings)

    assert "You won" in text
    assert "Multiplier: 2x" in text
    assert "Winnings: $200" in text
    assert "New balance: $1,100" in text


def test_format_losing_coinflip_has_no_multiplier(casino, user, settings, scripted):
    result = casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")
    text = format_play_result(GameType.COINFLIP, result, settings)

    assert "You lost" in text
    assert "Multiplier" not in text
    assert "Winnings: $0" in text


def test_describe_dice():
    details = {"dice": [3, 4], "total": 7, "bet_type": "exact", "target": 7}
    assert describe_outcome(GameType.DICE, details).startswith("Dice: 3 + 4 = *7*")


def test_history_line_shows_time_and_signed_amount():
    tx = Transaction(
        tx_id=1,
        user_id=1,
        tx_type=TransactionType.WIN,
        amount=200,
        balance_before=900,
        balance_after=1100,
        description="Coinflip win",
        timestamp=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
    )
    assert format_history_line(tx, "$") == "`Mar 01 12:00 UTC` +$200 Coinflip win"


def test_command_lookup_by_name_or_alias():
    assert get_command("mega").game_type == GameType.MEGAMULTIPLIER
    assert get_command("/Coinflip").name == "coinflip"
    assert get_command("history").category == "account"
    assert get_command("nope") is None


def test_bot_and_api_share_one_casino(scripted):
    application, api_app = create_runtime("123456:TEST-TOKEN", BotSettings())
    casino = application.bot_data["casino"]
    user = casino.db.create_user("tg-7", "gina", 1000)
    casino.play(user.user_id, GameType.COINFLIP, 100, casino.db.get_settings(), scripted(0.1), choice="heads")

    with TestClient(api_app) as client:
        assert client.get("/api/bot/stats").json()["total_games"] == 1

        current = client.get("/api/bot/settings").json()
        current["game_enabled"] = {"coinflip": False}
        client.post("/api/bot/settings", json=current)

    assert not casino.db.get_settings().is_enabled(GameType.COINFLIP)
