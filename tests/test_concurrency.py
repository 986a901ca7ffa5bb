"""
Concurrent and racing move submissions.

The gather-based tests run real overlapping transactions against one SQLite
file. The stale-read tests replay a lost race deterministically by handing
the adjudicator a match snapshot taken before a competing move committed.
"""

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from tictactoe.constants import ErrorMessages
from tictactoe.data_models.search import MoveFilter
from tictactoe.database.database import (
    MoveConstraint, MoveConstraintViolation, classify_move_integrity_error
)
from tictactoe.database.models import PlayerSymbol
from tictactoe.utils.exceptions import ConflictError, UnexpectedError


def serve_stale_match(monkeypatch, database, snapshot):
    """Return ``snapshot`` for lookups made inside the submit transaction."""
    original = database.get_match

    async def get_match(match_id, session=None):
        if session is not None:
            return snapshot
        return await original(match_id)

    monkeypatch.setattr(database, 'get_match', get_match)


# More racers than the default connection pool (5 + 10 overflow) holds
RACER_COUNTS = [2, 8, 24]


class TestGatheredSubmissions:
    @pytest.mark.parametrize("racers", RACER_COUNTS)
    async def test_same_cell_different_tokens_one_wins(self, database, move_ops, match, players, racers):
        results = await asyncio.gather(
            *(
                move_ops.submit_move(match.id, players['alice'].id, 1, 1, f"t{i}")
                for i in range(racers)
            ),
            return_exceptions=True
        )

        accepted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(accepted) == 1
        assert len(rejected) == racers - 1
        assert all(isinstance(r, ConflictError) for r in rejected)

        page = await database.search_moves(MoveFilter(match_id=match.id))
        assert page.total_count == 1
        assert page.items[0].id == accepted[0].move.id

    @pytest.mark.parametrize("racers", RACER_COUNTS)
    async def test_same_token_resolves_to_one_move(self, database, move_ops, match, players, racers):
        results = await asyncio.gather(*(
            move_ops.submit_move(match.id, players['alice'].id, 0, 0, "dup")
            for _ in range(racers)
        ))

        assert {r.move.id for r in results} == {results[0].move.id}
        assert {r.etag for r in results} == {results[0].etag}
        assert sum(1 for r in results if not r.replayed) == 1

        page = await database.search_moves(MoveFilter(match_id=match.id))
        assert page.total_count == 1

    @pytest.mark.parametrize("racers", RACER_COUNTS)
    async def test_different_cells_only_one_accepted(self, match_ops, move_ops, players, racers):
        match = await match_ops.create_match(players['alice'].id, players['bob'].id, 5, 5)

        results = await asyncio.gather(
            *(
                move_ops.submit_move(match.id, players['alice'].id, i % 5, i // 5, f"t{i}")
                for i in range(racers)
            ),
            return_exceptions=True
        )

        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(rejected) == racers - 1
        assert all(isinstance(r, ConflictError) for r in rejected)

        updated = await match_ops.get_match(match.id)
        assert len(updated.moves) == 1
        assert updated.current_turn == PlayerSymbol.O


class TestLostRaces:
    async def test_same_cell_reports_occupied(self, monkeypatch, database, match_ops, move_ops, match, players):
        snapshot = await match_ops.get_match(match.id)
        await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "winner")

        serve_stale_match(monkeypatch, database, snapshot)
        with pytest.raises(ConflictError) as exc_info:
            await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "loser")
        assert exc_info.value.user_message == ErrorMessages.CELL_OCCUPIED

    async def test_other_cell_reports_concurrent_move(
        self, monkeypatch, database, match_ops, move_ops, match, players
    ):
        snapshot = await match_ops.get_match(match.id)
        await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "winner")

        serve_stale_match(monkeypatch, database, snapshot)
        with pytest.raises(ConflictError) as exc_info:
            await move_ops.submit_move(match.id, players['alice'].id, 2, 2, "loser")
        assert exc_info.value.user_message == ErrorMessages.CONCURRENT_MOVE

    async def test_lost_race_leaves_match_untouched(
        self, monkeypatch, database, match_ops, move_ops, match, players
    ):
        snapshot = await match_ops.get_match(match.id)
        winner = await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "winner")

        serve_stale_match(monkeypatch, database, snapshot)
        with pytest.raises(ConflictError):
            await move_ops.submit_move(match.id, players['alice'].id, 2, 2, "loser")
        monkeypatch.undo()

        updated = await match_ops.get_match(match.id)
        assert [m.id for m in updated.moves] == [winner.move.id]
        assert updated.current_turn == PlayerSymbol.O

    async def test_duplicate_token_after_violation_is_replayed(
        self, monkeypatch, database, match_ops, move_ops, match, players
    ):
        snapshot = await match_ops.get_match(match.id)
        accepted = await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "dup")

        serve_stale_match(monkeypatch, database, snapshot)
        original_lookup = database.get_move_by_client_move_id

        async def token_lookup(match_id, client_move_id, session=None):
            # The competing insert was not yet visible when the transaction began
            if session is not None:
                return None
            return await original_lookup(match_id, client_move_id)

        monkeypatch.setattr(database, 'get_move_by_client_move_id', token_lookup)

        replayed = await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "dup")
        assert replayed.replayed
        assert replayed.move.id == accepted.move.id
        assert replayed.etag == accepted.etag

    async def test_failed_refetch_after_lost_race_is_unexpected(
        self, monkeypatch, database, match_ops, move_ops, match, players
    ):
        snapshot = await match_ops.get_match(match.id)
        await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "winner")

        async def get_match(match_id, session=None):
            if session is not None:
                return snapshot
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(database, 'get_match', get_match)

        with pytest.raises(UnexpectedError):
            await move_ops.submit_move(match.id, players['alice'].id, 2, 2, "loser")

    async def test_player_lookup_joins_the_submit_transaction(self, monkeypatch, database, move_ops, match, players):
        original = database.get_player
        sessions = []

        async def get_player(player_id, session=None):
            sessions.append(session)
            return await original(player_id, session=session)

        monkeypatch.setattr(database, 'get_player', get_player)

        await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "t1")
        assert len(sessions) == 1
        assert sessions[0] is not None

    async def test_unrecognised_constraint_is_unexpected(self, monkeypatch, database, move_ops, match, players):
        async def insert_move(session, move):
            error = IntegrityError("INSERT INTO moves", {}, Exception("CHECK constraint failed"))
            raise MoveConstraintViolation(MoveConstraint.UNKNOWN, error)

        monkeypatch.setattr(database, 'insert_move', insert_move)

        with pytest.raises(UnexpectedError) as exc_info:
            await move_ops.submit_move(match.id, players['alice'].id, 0, 0, "t1")
        assert exc_info.value.code == 500


@pytest.mark.parametrize("message, expected", [
    ("UNIQUE constraint failed: moves.match_id, moves.client_move_id", MoveConstraint.CLIENT_MOVE_ID),
    ("UNIQUE constraint failed: moves.match_id, moves.move_number", MoveConstraint.MOVE_NUMBER),
    ("UNIQUE constraint failed: moves.match_id, moves.x, moves.y", MoveConstraint.CELL),
    ('duplicate key value violates unique constraint "uq_moves_match_cell"', MoveConstraint.CELL),
    ("FOREIGN KEY constraint failed", MoveConstraint.UNKNOWN),
])
def test_classify_integrity_error(message, expected):
    error = IntegrityError("INSERT INTO moves", {}, Exception(message))
    assert classify_move_integrity_error(error) == expected
