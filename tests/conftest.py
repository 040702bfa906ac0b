import pytest
from fastapi.testclient import TestClient

from casino_bot.api import create_app
from casino_bot.casino import CasinoService
from casino_bot.database import Database, BotSettings


class ScriptedRandom:
    """Random source that replays fixed draws in order."""

    def __init__(self, *values):
        self.values = list(values)

    def random(self):
        if not self.values:
            raise AssertionError("scripted random source exhausted")
        return self.values.pop(0)


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def settings():
    return BotSettings()


@pytest.fixture
def db(settings):
    return Database(settings)


@pytest.fixture
def casino(db):
    return CasinoService(db)


@pytest.fixture
def user(db):
    return db.create_user("tg-1", "alice", 1000)


@pytest.fixture
def other_user(db):
    return db.create_user("tg-2", "bob", 1000)


@pytest.fixture
def client(casino):
    app = create_app(casino=casino)
    with TestClient(app) as c:
        yield c
