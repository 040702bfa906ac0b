import pytest

from casino_bot.casino import CasinoService
from casino_bot.database import GameType, GameOutcome, TransactionType
from casino_bot.errors import ValidationError, InsufficientFundsError, PolicyError, NotFoundError
from casino_bot.game import GAMES
from casino_bot.game.base import tie


def snapshot(db, user_id):
    return (
        db.get_user(user_id),
        db.get_user_transactions(user_id, limit=None),
        db.get_all_games(),
        db.get_all_game_stats(),
    )


def test_winning_play_moves_balance_through_bet_and_win(casino, db, user, settings, scripted):
    result = casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")

    assert result.balance == 1100
    bet_tx, win_tx = result.transactions
    assert (bet_tx.tx_type, bet_tx.amount, bet_tx.description) == (TransactionType.BET, -100, "Coinflip bet")
    assert (win_tx.tx_type, win_tx.amount, win_tx.description) == (TransactionType.WIN, 200, "Coinflip win")
    assert bet_tx.balance_after == 900
    assert win_tx.balance_before == 900
    assert bet_tx.game_id == win_tx.game_id == result.game.game_id

    stored = db.get_user(user.user_id)
    assert stored.balance == 1100
    assert (stored.games_played, stored.games_won) == (1, 1)
    assert result.game.win_amount == 100
    assert result.game.multiplier == "2"


def test_losing_play_has_only_the_bet(casino, db, user, settings, scripted):
    result = casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")

    assert result.balance == 900
    assert [tx.tx_type for tx in result.transactions] == [TransactionType.BET]
    assert result.game.outcome == GameOutcome.LOSS
    assert result.game.win_amount == -100
    assert result.game.multiplier is None


def test_tie_refunds_the_bet(casino, db, user, settings, monkeypatch):
    monkeypatch.setitem(GAMES, GameType.BLACKJACK, lambda bet, rng, **kw: tie(bet, {"reason": "push"}))

    result = casino.play(user.user_id, GameType.BLACKJACK, 50, settings)

    assert result.balance == 1000
    assert [tx.tx_type for tx in result.transactions] == [TransactionType.BET, TransactionType.REFUND]
    assert result.transactions[1].description == "Blackjack push"
    assert db.get_user(user.user_id).games_won == 0
    assert casino.stats.get_game_stats(GameType.BLACKJACK).total_profit_loss == 0


def test_play_updates_statistics(casino, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")
    casino.play(user.user_id, GameType.COINFLIP, 50, settings, scripted(0.9), choice="heads")

    game_stats = casino.stats.get_game_stats(GameType.COINFLIP)
    assert game_stats.total_played == 2
    assert game_stats.total_profit_loss == -50
    row = casino.stats.get_user_game_stats(user.user_id, GameType.COINFLIP)
    assert row.net_profit_loss == 50
    assert row.favorite_game


@pytest.mark.parametrize("bet,error", [
    (0, ValidationError),
    (-10, ValidationError),
    (5, ValidationError),
    (20000, ValidationError),
    (1500, InsufficientFundsError),
])
def test_rejected_bets_leave_no_trace(casino, db, user, settings, scripted, bet, error):
    before = snapshot(db, user.user_id)
    with pytest.raises(error):
        casino.play(user.user_id, GameType.COINFLIP, bet, settings, scripted(0.1), choice="heads")
    assert snapshot(db, user.user_id) == before


def test_disabled_game_rejected(casino, db, user, settings, scripted):
    settings.game_enabled[GameType.SLOTS] = False
    before = snapshot(db, user.user_id)
    with pytest.raises(PolicyError):
        casino.play(user.user_id, GameType.SLOTS, 100, settings, scripted(0.1, 0.1, 0.1))
    assert snapshot(db, user.user_id) == before


def test_invalid_game_option_leaves_no_trace(casino, db, user, settings, scripted):
    before = snapshot(db, user.user_id)
    with pytest.raises(ValidationError):
        casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="edge")
    assert snapshot(db, user.user_id) == before


def test_unknown_player(casino, settings, scripted):
    with pytest.raises(NotFoundError):
        casino.play(77, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")


def test_get_or_create_user_is_idempotent(casino, settings):
    first = casino.get_or_create_user("tg-9", "dave", settings)
    again = casino.get_or_create_user("tg-9", "someone-else", settings)
    assert first.user_id == again.user_id
    assert first.balance == settings.starting_balance


# === Hi-Lo rounds ===

def test_hilo_start_does_not_touch_balance(casino, db, user, settings, scripted):
    round_ = casino.start_hilo(user.user_id, 100, settings, scripted(0.5))

    assert round_.first_card == "8"
    assert round_.token in casino.pending_rounds
    assert db.get_user(user.user_id).balance == 1000
    assert db.get_user_transactions(user.user_id) == []


def test_hilo_resolve_settles_once(casino, db, user, settings, scripted):
    round_ = casino.start_hilo(user.user_id, 100, settings, scripted(0.5))
    result = casino.resolve_hilo(round_.token, "higher", scripted(0.99))

    assert result.outcome.details["second_card"] == "A"
    assert result.balance == 1106
    assert len(db.get_all_games()) == 1

    with pytest.raises(NotFoundError):
        casino.resolve_hilo(round_.token, "higher", scripted(0.99))
    assert db.get_user(user.user_id).balance == 1106


def test_hilo_bad_choice_keeps_round_pending(casino, user, settings, scripted):
    round_ = casino.start_hilo(user.user_id, 100, settings, scripted(0.5))
    with pytest.raises(ValidationError):
        casino.resolve_hilo(round_.token, "sideways")
    assert round_.token in casino.pending_rounds


def test_hilo_cancel_leaves_balance(casino, db, user, settings, scripted):
    round_ = casino.start_hilo(user.user_id, 100, settings, scripted(0.5))
    assert casino.cancel_hilo(round_.token) is not None
    assert casino.cancel_hilo(round_.token) is None
    assert db.get_user(user.user_id).balance == 1000
    with pytest.raises(NotFoundError):
        casino.resolve_hilo(round_.token, "higher")


def test_hilo_start_checks_funds(casino, user, settings, scripted):
    with pytest.raises(InsufficientFundsError):
        casino.start_hilo(user.user_id, 5000, settings, scripted(0.5))
    assert casino.pending_rounds == {}



def test_one_shot_hilo_higher_on_ace_settles_as_loss(casino, db, user, settings, scripted):
    result = casino.play(user.user_id, GameType.HILO, 100, settings, scripted(0.999, 0.1), choice="higher")

    assert result.outcome.result == GameOutcome.LOSS
    assert result.outcome.details["first_card"] == "A"
    assert result.outcome.details["second_card"] == "3"
    assert result.balance == 900
    assert db.get_user(user.user_id).games_won == 0


def test_interactive_hilo_rejects_impossible_call(casino, db, user, settings, scripted):
    round_ = casino.start_hilo(user.user_id, 100, settings, scripted(0.999))
    with pytest.raises(ValidationError):
        casino.resolve_hilo(round_.token, "higher", scripted(0.1))
    assert round_.token in casino.pending_rounds
    assert db.get_user(user.user_id).balance == 1000

# === Deleting data ===

def test_delete_keeps_game_log_and_global_stats(casino, db, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")
    casino.delete_user_data(user.user_id, settings)

    assert db.get_user(user.user_id) is None
    assert db.get_user_transactions(user.user_id) == []
    assert casino.stats.get_user_stats(user.user_id) == []
    assert len(db.get_all_games()) == 1
    assert casino.stats.get_game_stats(GameType.COINFLIP).total_played == 1


def test_delete_drops_pending_rounds(casino, user, settings, scripted):
    round_ = casino.start_hilo(user.user_id, 100, settings, scripted(0.5))
    casino.delete_user_data(user.user_id, settings)
    assert round_.token not in casino.pending_rounds


def test_delete_respects_setting(casino, db, user, settings):
    settings.allow_user_reset = False
    with pytest.raises(PolicyError):
        casino.delete_user_data(user.user_id, settings)
    assert db.get_user(user.user_id) is not None


def test_delete_unknown_user(casino, settings):
    with pytest.raises(NotFoundError):
        casino.delete_user_data(404, settings)


def test_new_account_after_delete_gets_new_id(casino, db, user, settings):
    casino.delete_user_data(user.user_id, settings)
    fresh = casino.get_or_create_user("tg-1", "alice", settings)
    assert fresh.user_id != user.user_id
    assert fresh.balance == settings.starting_balance


# === Reporting ===

def test_games_summary(casino, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")

    summary = {row["id"]: row for row in casino.games_summary()}
    assert len(summary) == len(GameType)
    assert summary["coinflip"]["play_count"] == 2
    assert summary["coinflip"]["win_rate"] == 50.0
    assert summary["slots"]["win_rate"] == 0


def test_service_components_share_storage(db):
    casino = CasinoService(db)
    assert casino.ledger.db is casino.stats.db is casino.rewards.db is db
