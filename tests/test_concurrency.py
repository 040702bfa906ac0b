import random
import threading
import time

from casino_bot.database import GameType
from casino_bot.stats import StatisticsAggregator


def run_threads(targets, timeout=10):
    threads = [threading.Thread(target=t) for t in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout)
    assert not any(thread.is_alive() for thread in threads), "threads did not finish"


def assert_stats_match_log(db):
    game_stats, user_stats = StatisticsAggregator.replay(db.get_all_games())
    assert {s.game_type: s for s in db.get_all_game_stats()} == game_stats
    for (user_id, game_type), expected in user_stats.items():
        assert db.get_user_game_stats(user_id, game_type) == expected


def test_same_user_plays_keep_balance_chain(casino, db, user, settings):
    def play(seed):
        return lambda: casino.play(user.user_id, GameType.COINFLIP, 10, settings, random.Random(seed), choice="heads")

    run_threads([play(i) for i in range(20)])

    stored = db.get_user(user.user_id)
    assert stored.games_played == 20
    assert casino.ledger.replay_balance(user.user_id, 1000) == stored.balance
    assert len(db.get_user_transactions(user.user_id, limit=None)) >= 20
    assert_stats_match_log(db)


def test_opposite_transfers_do_not_deadlock(casino, db, user, other_user):
    def send(from_id, to_id):
        def run():
            for _ in range(50):
                casino.ledger.transfer(from_id, to_id, 1)
        return run

    run_threads([send(user.user_id, other_user.user_id), send(other_user.user_id, user.user_id)])

    assert db.get_user(user.user_id).balance + db.get_user(other_user.user_id).balance == 2000
    assert casino.ledger.replay_balance(user.user_id, 1000) == db.get_user(user.user_id).balance
    assert casino.ledger.replay_balance(other_user.user_id, 1000) == db.get_user(other_user.user_id).balance


def test_parallel_players_keep_aggregates_consistent(casino, db, settings):
    players = [db.create_user(f"tg-{n}", f"player{n}", 1000) for n in range(10, 14)]

    def session(player, seed):
        def run():
            rng = random.Random(seed)
            for _ in range(25):
                casino.play(player.user_id, GameType.COINFLIP, 10, settings, rng, choice="tails")
        return run

    run_threads([session(p, n) for n, p in enumerate(players)])

    games = db.get_all_games()
    assert len(games) == 100
    assert sum(s.total_played for s in db.get_all_game_stats()) == len(games)
    for player in players:
        assert db.get_user(player.user_id).games_played == 25
        casino.ledger.replay_balance(player.user_id, 1000)
    assert_stats_match_log(db)


def test_rebuild_during_play_counts_each_game_once(casino, db, user):
    settings = db.get_settings()
    play = threading.Thread(
        target=casino.play,
        args=(user.user_id, GameType.COINFLIP, 100, settings, random.Random(1)),
        kwargs={"choice": "heads"},
    )

    with db.stats_lock():
        play.start()
        time.sleep(0.05)
        casino.stats.rebuild()
    play.join(10)
    assert not play.is_alive()

    games = db.get_all_games()
    assert len(games) == 1
    assert casino.stats.get_game_stats(GameType.COINFLIP).total_played == 1
    assert db.get_user_game_stats(user.user_id, GameType.COINFLIP).games_played == 1
    assert_stats_match_log(db)


def test_rebuild_after_concurrent_play_is_stable(casino, db, user, other_user, settings):
    def session(player, seed):
        def run():
            rng = random.Random(seed)
            for _ in range(20):
                casino.play(player.user_id, GameType.COINFLIP, 10, settings, rng, choice="heads")
        return run

    def rebuild():
        for _ in range(10):
            casino.stats.rebuild()

    run_threads([session(user, 1), session(other_user, 2), rebuild])

    assert casino.stats.get_game_stats(GameType.COINFLIP).total_played == 40
    assert_stats_match_log(db)
