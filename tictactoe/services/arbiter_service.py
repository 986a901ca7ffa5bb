"""
Service boundary for the arbiter.

Every operation returns a ServiceResult instead of raising: operation errors
become tagged failures, anything else becomes an Unexpected failure. Move
submissions carry the move fingerprint in ``metadata['ETag']``.
"""

from functools import wraps
from typing import List, Optional

from tictactoe.data_models.results import ServiceResult
from tictactoe.data_models.search import (
    MatchFilter, MoveFilter, PageRequest, PlayerFilter, SortSpec
)
from tictactoe.operations.match_operations import MatchOperations
from tictactoe.operations.move_operations import MoveOperations
from tictactoe.operations.player_operations import PlayerOperations
from tictactoe.utils.exceptions import ArbiterError, UnexpectedError
from tictactoe.utils.fingerprint import compute_etag
from tictactoe.utils.logger import setup_logger

logger = setup_logger(__name__)


def service_result(operation: str):
    """Decorator turning an async operation into one that returns a ServiceResult."""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                result = await func(*args, **kwargs)
            except ArbiterError as e:
                return ServiceResult.fail(e)
            except Exception as e:
                logger.exception(f"Unhandled error during {operation}")
                return ServiceResult.fail(UnexpectedError(operation, str(e)))

            if isinstance(result, ServiceResult):
                return result
            return ServiceResult.ok(result)
        return wrapper
    return decorator


class ArbiterService:
    """Match, move and player operations exposed as typed results."""

    def __init__(self, database, rng=None):
        self.db = database
        self.player_ops = PlayerOperations(database)
        self.match_ops = MatchOperations(database, self.player_ops)
        self.move_ops = MoveOperations(database, self.player_ops, rng=rng)

    async def close(self):
        await self.db.close()

    # Players
    @service_result("player registration")
    async def register_player(self, username: str):
        return await self.player_ops.register(username)

    @service_result("player lookup")
    async def get_player(self, player_id: str):
        return await self.player_ops.get_player(player_id)

    @service_result("player search")
    async def search_players(
        self,
        player_filter: Optional[PlayerFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ):
        return await self.player_ops.search_players(player_filter, sorts, page)

    # Matches
    @service_result("match creation")
    async def create_match(
        self,
        side_a_id: str,
        side_b_id: str,
        board_size: Optional[int] = None,
        win_length: Optional[int] = None
    ):
        return await self.match_ops.create_match(side_a_id, side_b_id, board_size, win_length)

    @service_result("match lookup")
    async def get_match(self, match_id: str):
        return await self.match_ops.get_match(match_id)

    @service_result("match search")
    async def search_matches(
        self,
        match_filter: Optional[MatchFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ):
        return await self.match_ops.search_matches(match_filter, sorts, page)

    # Moves
    @service_result("move submission")
    async def submit_move(self, match_id: str, player_id: str, x: int, y: int, client_move_id: str):
        submitted = await self.move_ops.submit_move(match_id, player_id, x, y, client_move_id)
        return ServiceResult.ok(
            submitted.move,
            {'ETag': submitted.etag, 'replayed': submitted.replayed}
        )

    @service_result("move lookup")
    async def get_move(self, move_id: str):
        move = await self.move_ops.get_move(move_id)
        return ServiceResult.ok(move, {'ETag': compute_etag(move)})

    @service_result("move search")
    async def search_moves(
        self,
        move_filter: Optional[MoveFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ):
        return await self.move_ops.search_moves(move_filter, sorts, page)
