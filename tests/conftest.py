"""
Shared pytest fixtures for arbiter tests.

Each test gets its own file-backed SQLite database under tmp_path so that
concurrent sessions behave like they would against a real database file.
"""

import os

# File logging off for tests; set before any tictactoe import reads Config
os.environ.setdefault('LOG_DIR', '')

import pytest
import pytest_asyncio

from tictactoe.database.database import Database
from tictactoe.operations.match_operations import MatchOperations
from tictactoe.operations.move_operations import MoveOperations
from tictactoe.operations.player_operations import PlayerOperations
from tictactoe.services.arbiter_service import ArbiterService

from helpers import NEVER_CHAOS, StubRandom


@pytest.fixture
def quiet_rng():
    """Random source that never triggers the chaos rule"""
    return StubRandom(NEVER_CHAOS)


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'arbiter_test.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def player_ops(database):
    return PlayerOperations(database)


@pytest.fixture
def match_ops(database, player_ops):
    return MatchOperations(database, player_ops)


@pytest.fixture
def move_ops(database, player_ops, quiet_rng):
    return MoveOperations(database, player_ops, rng=quiet_rng)


@pytest.fixture
def service(database, quiet_rng):
    return ArbiterService(database, rng=quiet_rng)


@pytest_asyncio.fixture
async def players(player_ops):
    """Three registered players: alice (X), bob (O) and carol (outsider)"""
    return {
        name: await player_ops.register(name)
        for name in ('alice', 'bob', 'carol')
    }


@pytest_asyncio.fixture
async def match(match_ops, players):
    """A fresh 3x3, run-of-3 match with alice as X and bob as O"""
    return await match_ops.create_match(players['alice'].id, players['bob'].id, 3, 3)

