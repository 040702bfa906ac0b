import random

import pytest

from casino_bot.database import GameType, GameOutcome, TransactionType
from casino_bot.errors import ValidationError
from casino_bot.ledger import Ledger
from casino_bot.stats import StatisticsAggregator


@pytest.fixture
def stats(db):
    return StatisticsAggregator(db)


def record(db, stats, user_id, game_type, bet, outcome, win_amount, multiplier=None):
    game = db.add_game(game_type, user_id, bet, outcome, win_amount, multiplier)
    stats.record(game)
    return game


def random_log(db, user_ids, n, seed):
    rng = random.Random(seed)
    games = []
    for _ in range(n):
        bet = rng.randint(1, 500)
        outcome = rng.choice(list(GameOutcome))
        if outcome == GameOutcome.WIN:
            multiplier = rng.choice(["1.1", "2", "2.5", "36", "12.35"])
            win_amount = int(bet * float(multiplier)) - bet
        elif outcome == GameOutcome.TIE:
            multiplier, win_amount = None, 0
        else:
            multiplier, win_amount = None, -bet
        games.append(db.add_game(
            rng.choice(list(GameType)), rng.choice(user_ids), bet, outcome, win_amount, multiplier
        ))
    return games


def test_game_stats_fields(db, stats, user):
    record(db, stats, user.user_id, GameType.DICE, 100, GameOutcome.WIN, 400, "5")
    record(db, stats, user.user_id, GameType.DICE, 300, GameOutcome.LOSS, -300)
    record(db, stats, user.user_id, GameType.DICE, 50, GameOutcome.TIE, 0)

    dice = stats.get_game_stats(GameType.DICE)
    assert dice.total_played == 3
    assert dice.total_wagered == 450
    assert dice.total_paid_out == 550
    assert dice.total_profit_loss == -100
    assert dice.highest_win == 400
    assert dice.highest_wager == 300
    assert dice.highest_multiplier == "5"


def test_multiplier_compared_numerically(db, stats, user):
    record(db, stats, user.user_id, GameType.CRASH, 10, GameOutcome.WIN, 80, "9.5")
    record(db, stats, user.user_id, GameType.CRASH, 10, GameOutcome.WIN, 100, "11")
    assert stats.get_game_stats(GameType.CRASH).highest_multiplier == "11"


def test_unplayed_game_has_empty_stats(stats):
    empty = stats.get_game_stats(GameType.POKER)
    assert empty.total_played == 0
    assert empty.total_profit_loss == 0


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_profit_invariant_after_replay(db, user, other_user, seed):
    games = random_log(db, [user.user_id, other_user.user_id], 200, seed)
    game_stats, _ = StatisticsAggregator.replay(games)

    assert sum(s.total_played for s in game_stats.values()) == 200
    for game_type, s in game_stats.items():
        assert s.total_profit_loss == s.total_wagered - s.total_paid_out
        assert s.total_played == sum(1 for g in games if g.game_type == game_type)


def test_incremental_matches_replay(db, stats, user, other_user):
    games = random_log(db, [user.user_id, other_user.user_id], 150, seed=9)
    for game in games:
        stats.record(game)

    game_stats, user_stats = StatisticsAggregator.replay(games)
    for game_type, expected in game_stats.items():
        assert stats.get_game_stats(game_type) == expected
    for (user_id, game_type), expected in user_stats.items():
        assert db.get_user_game_stats(user_id, game_type) == expected


def test_user_game_stats_and_win_rate(db, stats, user):
    record(db, stats, user.user_id, GameType.SLOTS, 10, GameOutcome.WIN, 10, "2")
    record(db, stats, user.user_id, GameType.SLOTS, 10, GameOutcome.LOSS, -10)
    record(db, stats, user.user_id, GameType.SLOTS, 10, GameOutcome.LOSS, -10)

    row = stats.get_user_game_stats(user.user_id, GameType.SLOTS)
    assert row.games_played == 3
    assert row.games_won == 1
    assert row.total_won == 20
    assert row.net_profit_loss == -10
    assert row.win_rate == "33%"


def test_favorite_game_ties_go_to_first_played(db, stats, user):
    record(db, stats, user.user_id, GameType.ROULETTE, 10, GameOutcome.LOSS, -10)
    record(db, stats, user.user_id, GameType.POKER, 10, GameOutcome.LOSS, -10)
    assert stats.get_favorite_game(user.user_id) == GameType.ROULETTE

    record(db, stats, user.user_id, GameType.POKER, 10, GameOutcome.LOSS, -10)
    assert stats.get_favorite_game(user.user_id) == GameType.POKER
    flags = {row.game_type: row.favorite_game for row in stats.get_user_stats(user.user_id)}
    assert flags == {GameType.ROULETTE: False, GameType.POKER: True}


def test_top_balances_stable_for_ties(db, stats, user, other_user):
    third = db.create_user("tg-3", "carol", 5000)
    ranked = stats.top_balances()
    assert [u.user_id for u in ranked] == [third.user_id, user.user_id, other_user.user_id]


def test_top_earners_and_most_generous(db, stats, user, other_user):
    ledger = Ledger(db)
    ledger.debit(user.user_id, 100, TransactionType.BET, "bet")
    ledger.credit(user.user_id, 300, TransactionType.WIN, "win")
    ledger.transfer(other_user.user_id, user.user_id, 250)

    earners = stats.top_earners()
    assert (earners[0][0].user_id, earners[0][1]) == (user.user_id, 200)

    generous = stats.most_generous()
    assert [(u.user_id, sent) for u, sent in generous] == [(other_user.user_id, 250)]


def test_profitable_game_rankings(db, stats, user):
    record(db, stats, user.user_id, GameType.SLOTS, 100, GameOutcome.LOSS, -100)
    record(db, stats, user.user_id, GameType.COINFLIP, 100, GameOutcome.WIN, 100, "2")
    record(db, stats, user.user_id, GameType.DICE, 50, GameOutcome.LOSS, -50)

    most = [s.game_type for s in stats.most_profitable_games()]
    least = [s.game_type for s in stats.least_profitable_games()]
    assert most == [GameType.SLOTS, GameType.DICE, GameType.COINFLIP]
    assert least == [GameType.COINFLIP, GameType.DICE, GameType.SLOTS]
    assert len(stats.top_games()) == 3


def test_player_leaderboard_per_game_and_overall(db, stats, user, other_user):
    record(db, stats, user.user_id, GameType.SLOTS, 100, GameOutcome.WIN, 400, "5")
    record(db, stats, other_user.user_id, GameType.SLOTS, 100, GameOutcome.LOSS, -100)
    record(db, stats, other_user.user_id, GameType.DICE, 100, GameOutcome.WIN, 1000, "11")
    record(db, stats, other_user.user_id, GameType.DICE, 100, GameOutcome.LOSS, -100)

    slots = stats.player_leaderboard(GameType.SLOTS)
    assert [s.user_id for s in slots] == [user.user_id, other_user.user_id]

    overall = stats.player_leaderboard(sort_by="net_profit_loss")
    assert overall[0].user_id == other_user.user_id
    assert overall[0].net_profit_loss == 800

    by_plays = stats.player_leaderboard(sort_by="games_played", limit=1)
    assert [s.user_id for s in by_plays] == [other_user.user_id]


def test_player_leaderboard_equal_keys_keep_id_order(db, stats, user, other_user):
    record(db, stats, other_user.user_id, GameType.SLOTS, 10, GameOutcome.LOSS, -10)
    record(db, stats, user.user_id, GameType.SLOTS, 10, GameOutcome.LOSS, -10)
    ranked = stats.player_leaderboard(GameType.SLOTS, sort_by="games_played")
    assert [s.user_id for s in ranked] == [user.user_id, other_user.user_id]


def test_player_leaderboard_rejects_unknown_sort(stats):
    with pytest.raises(ValidationError):
        stats.player_leaderboard(sort_by="luck")


def test_queries_do_not_mutate(db, stats, user):
    record(db, stats, user.user_id, GameType.SLOTS, 10, GameOutcome.LOSS, -10)
    before = (db.get_all_game_stats(), db.get_all_user_game_stats())
    stats.top_games()
    stats.player_leaderboard(GameType.SLOTS)
    stats.most_profitable_games()
    assert (db.get_all_game_stats(), db.get_all_user_game_stats()) == before


def test_tie_counts_returned_bet_as_paid_out(db, stats, user):
    record(db, stats, user.user_id, GameType.BLACKJACK, 100, GameOutcome.TIE, 0)

    game = stats.get_game_stats(GameType.BLACKJACK)
    assert game.total_wagered == 100
    assert game.total_paid_out == 100
    assert game.total_profit_loss == 0
    assert stats.get_user_game_stats(user.user_id, GameType.BLACKJACK).net_profit_loss == 0
