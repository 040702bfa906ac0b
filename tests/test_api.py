from casino_bot.database import GameType


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_status(client):
    data = client.get("/api/bot/status").json()
    assert data["status"] == "online"
    assert data["uptime_seconds"] >= 0


def test_create_and_fetch_user(client):
    created = client.post("/api/bot/users", json={"external_id": "tg-50", "username": "erin"})
    assert created.status_code == 200
    body = created.json()
    assert body["balance"] == 1000
    assert body["win_rate"] == "0%"

    fetched = client.get(f"/api/bot/users/{body['user_id']}").json()
    assert fetched["username"] == "erin"

    again = client.post("/api/bot/users", json={"external_id": "tg-50"}).json()
    assert again["user_id"] == body["user_id"]


def test_missing_user_is_404(client):
    assert client.get("/api/bot/users/999").status_code == 404
    assert client.get("/api/bot/users/999/transactions").status_code == 404
    assert client.delete("/api/bot/users/999").status_code == 404


def test_list_users_pagination(client, user, other_user):
    assert len(client.get("/api/bot/users").json()) == 2
    page = client.get("/api/bot/users", params={"limit": 1, "offset": 1}).json()
    assert [u["user_id"] for u in page] == [other_user.user_id]


def test_adjust_balance_and_history(client, user):
    response = client.post(f"/api/bot/users/{user.user_id}/balance", json={"amount": 250})
    assert response.status_code == 200
    assert response.json()["balance_after"] == 1250

    client.post(f"/api/bot/users/{user.user_id}/balance", json={"amount": -50, "description": "Fine"})
    history = client.get(f"/api/bot/users/{user.user_id}/transactions").json()
    assert [tx["amount"] for tx in history] == [-50, 250]
    assert history[0]["type"] == "admin"
    assert history[0]["description"] == "Fine"


def test_adjust_balance_errors_map_to_status_codes(client, user):
    overdraw = client.post(f"/api/bot/users/{user.user_id}/balance", json={"amount": -5000})
    assert overdraw.status_code == 409
    assert "Insufficient balance" in overdraw.json()["detail"]

    zero = client.post(f"/api/bot/users/{user.user_id}/balance", json={"amount": 0})
    assert zero.status_code == 400


def test_delete_user_keeps_game_counts(client, casino, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")

    assert client.delete(f"/api/bot/users/{user.user_id}").json() == {"success": True}
    assert client.get(f"/api/bot/users/{user.user_id}").status_code == 404
    coinflip = client.get("/api/bot/statistics/games/coinflip").json()
    assert coinflip["total_played"] == 1


def test_daily_status(client, casino, user, settings):
    before = client.get(f"/api/bot/users/{user.user_id}/daily").json()
    assert before["available"] is True

    casino.rewards.claim(user.user_id, settings)
    after = client.get(f"/api/bot/users/{user.user_id}/daily").json()
    assert after["available"] is False
    assert after["streak"] == 1
    assert after["seconds_remaining"] > 0


def test_games_listing(client):
    games = client.get("/api/bot/games").json()
    assert {g["id"] for g in games} == {g.value for g in GameType}


def test_settings_round_trip(client):
    current = client.get("/api/bot/settings").json()
    assert current["game_enabled"]["slots"] is True

    current["minimum_bet"] = 25
    current["game_enabled"] = {"slots": False}
    updated = client.post("/api/bot/settings", json=current).json()
    assert updated["minimum_bet"] == 25
    assert updated["game_enabled"]["slots"] is False
    assert updated["game_enabled"]["dice"] is True

    assert client.get("/api/bot/settings").json()["minimum_bet"] == 25


def test_settings_reject_inverted_bet_limits(client):
    current = client.get("/api/bot/settings").json()
    current["minimum_bet"] = 500
    current["maximum_bet"] = 100
    assert client.post("/api/bot/settings", json=current).status_code == 400


def test_game_statistics(client, casino, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")

    all_stats = client.get("/api/bot/statistics/games").json()
    assert len(all_stats) == len(GameType)

    coinflip = client.get("/api/bot/statistics/games/coinflip").json()
    assert coinflip["total_paid_out"] == 200
    assert coinflip["total_profit_loss"] == -100
    assert coinflip["highest_multiplier"] == "2"

    assert client.get("/api/bot/statistics/games/baccarat").status_code == 404


def test_user_statistics(client, casino, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")

    rows = client.get(f"/api/bot/statistics/users/{user.user_id}").json()
    assert [r["game_type"] for r in rows] == ["coinflip"]
    assert rows[0]["favorite_game"] is True

    row = client.get(f"/api/bot/statistics/users/{user.user_id}/coinflip").json()
    assert row["net_profit_loss"] == -100
    assert client.get(f"/api/bot/statistics/users/{user.user_id}/slots").status_code == 404

    profile = client.get(f"/api/bot/users/{user.user_id}").json()
    assert profile["favorite_game"] == "coinflip"


def test_rebuild_statistics(client, casino, db, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")
    before = client.get("/api/bot/statistics/games/coinflip").json()

    assert client.post("/api/bot/statistics/rebuild").json() == {"success": True}
    assert client.get("/api/bot/statistics/games/coinflip").json() == before


def test_leaderboards(client, casino, user, other_user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")
    casino.play(other_user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")
    casino.ledger.transfer(other_user.user_id, user.user_id, 50)

    players = client.get("/api/bot/statistics/leaderboard/players").json()
    assert [p["user_id"] for p in players] == [user.user_id, other_user.user_id]
    assert players[0]["value"] == 1150

    earners = client.get("/api/bot/statistics/leaderboard/earners").json()
    assert earners[0] == {"user_id": user.user_id, "username": "alice", "value": 100}

    generous = client.get("/api/bot/statistics/leaderboard/generous").json()
    assert [g["user_id"] for g in generous] == [other_user.user_id]

    games = client.get("/api/bot/statistics/leaderboard/games").json()
    assert [g["game_type"] for g in games] == ["coinflip"]
    assert client.get("/api/bot/statistics/leaderboard/mostProfitable").json()[0]["total_profit_loss"] == 0
    assert len(client.get("/api/bot/statistics/leaderboard/leastProfitable").json()) == 1


def test_player_leaderboard_by_game(client, casino, user, other_user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.1), choice="heads")
    casino.play(other_user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")

    ranked = client.get(
        "/api/bot/statistics/leaderboard/players/byGame",
        params={"gameType": "coinflip", "sortBy": "net_profit_loss"},
    ).json()
    assert [(r["user_id"], r["net_profit_loss"]) for r in ranked] == [
        (user.user_id, 100),
        (other_user.user_id, -100),
    ]

    bad_sort = client.get("/api/bot/statistics/leaderboard/players/byGame", params={"sortBy": "luck"})
    assert bad_sort.status_code == 400


def test_headline_stats(client, casino, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")
    data = client.get("/api/bot/stats").json()
    assert data["total_users"] == 1
    assert data["total_games"] == 1
    assert data["house_profit"] == 100


def test_recent_games(client, casino, user, settings, scripted):
    casino.play(user.user_id, GameType.COINFLIP, 100, settings, scripted(0.9), choice="heads")
    casino.play(user.user_id, GameType.HILO, 50, settings, scripted(0.5, 0.99), choice="higher")

    games = client.get(f"/api/bot/users/{user.user_id}/games").json()
    assert [g["game_type"] for g in games] == ["hilo", "coinflip"]
    assert games[0]["outcome"] == "win"
    assert games[0]["details"]["second_card"] == "A"
    assert games[1]["win_amount"] == -100
    assert games[1]["multiplier"] is None

    assert len(client.get(f"/api/bot/users/{user.user_id}/games?limit=1").json()) == 1
    assert client.get("/api/bot/users/999/games").status_code == 404


def test_command_catalog(client):
    commands = {c["name"]: c for c in client.get("/api/bot/commands").json()}

    assert commands["megamultiplier"]["aliases"] == ["mega"]
    assert commands["coinflip"]["category"] == "game"
    assert commands["coinflip"]["examples"] == ["/coinflip heads 100", "/coinflip t all"]
    assert commands["transfer"]["category"] == "account"
    assert all(c["enabled"] for c in commands.values())


def test_command_catalog_reflects_disabled_games(client):
    current = client.get("/api/bot/settings").json()
    current["game_enabled"] = {"poker": False}
    client.post("/api/bot/settings", json=current)

    commands = {c["name"]: c for c in client.get("/api/bot/commands").json()}
    assert commands["poker"]["enabled"] is False
    assert commands["balance"]["enabled"] is True
