"""
Match Operations Module

Lifecycle layer for matches: creation with participant eligibility checks
and initial turn order, plus pass-through reads and searches.

A match is created here once and afterwards only mutated by move
submission (see move_operations). Matches are never deleted.
"""

from typing import List, Optional

from tictactoe.config import Config
from tictactoe.constants import ErrorMessages
from tictactoe.data_models.search import MatchFilter, Page, PageRequest, SortSpec
from tictactoe.database.models import Match, MatchStatus, PlayerSymbol, new_id, utcnow
from tictactoe.operations.player_operations import PlayerOperations
from tictactoe.utils.exceptions import (
    ArbiterError, InvalidArgumentError, NotFoundError, UnexpectedError
)
from tictactoe.utils.logger import setup_logger

logger = setup_logger(__name__)


class MatchOperations:
    """
    Match lifecycle manager.

    Stateless between calls: every operation reads from and writes to the
    database, so several instances can serve the same matches.
    """

    def __init__(self, database, player_operations: Optional[PlayerOperations] = None):
        """Initialize with database instance and optional player directory"""
        self.db = database
        self.players = player_operations or PlayerOperations(database)
        self.logger = logger

    async def create_match(
        self,
        side_a_id: str,
        side_b_id: str,
        board_size: Optional[int] = None,
        win_length: Optional[int] = None
    ) -> Match:
        """
        Create a match between two players. Side A plays X and moves first.

        Args:
            side_a_id: Player ID for mark X
            side_b_id: Player ID for mark O
            board_size: Board dimension, defaults to Config.BOARD_SIZE
            win_length: Required run length, defaults to Config.WIN_CONDITION_LENGTH

        Returns:
            Match: The persisted match with an empty move list

        Raises:
            NotFoundError: If either player cannot be resolved
            InvalidArgumentError: On self-play or an impossible board configuration
            UnexpectedError: If the database operation fails
        """
        board_size = Config.BOARD_SIZE if board_size is None else board_size
        win_length = Config.WIN_CONDITION_LENGTH if win_length is None else win_length

        try:
            try:
                await self.players.resolve(side_a_id)
            except NotFoundError:
                raise NotFoundError(f"Player X {side_a_id} not found", ErrorMessages.PLAYER_X_NOT_FOUND)

            try:
                await self.players.resolve(side_b_id)
            except NotFoundError:
                raise NotFoundError(f"Player O {side_b_id} not found", ErrorMessages.PLAYER_O_NOT_FOUND)

            if side_a_id == side_b_id:
                raise InvalidArgumentError(
                    f"Player {side_a_id} cannot take both sides", ErrorMessages.SELF_PLAY
                )

            if board_size < 1 or not 1 <= win_length <= board_size:
                raise InvalidArgumentError(
                    f"Invalid board {board_size}x{board_size} with win length {win_length}",
                    ErrorMessages.INVALID_BOARD
                )

            match = Match(
                id=new_id(),
                player_x_id=side_a_id,
                player_o_id=side_b_id,
                size=board_size,
                win_length=win_length,
                status=MatchStatus.IN_PROGRESS,
                current_turn=PlayerSymbol.X,
                winner=None,
                created_at=utcnow(),
                ended_at=None
            )

            match = await self.db.add_match(match)

            self.logger.info(
                f"Created Match {match.id} ({board_size}x{board_size}, run of {win_length}): "
                f"X={side_a_id}, O={side_b_id}"
            )
            return match

        except ArbiterError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to create match for {side_a_id} vs {side_b_id}: {e}")
            raise UnexpectedError("match creation", str(e))

    async def get_match(self, match_id: str) -> Match:
        """
        Retrieve a match with its moves.

        Raises:
            NotFoundError: If the match does not exist
        """
        try:
            match = await self.db.get_match(match_id)
        except Exception as e:
            self.logger.error(f"Failed to load Match {match_id}: {e}")
            raise UnexpectedError("match lookup", str(e))

        if match is None:
            raise NotFoundError(f"Match {match_id} not found", ErrorMessages.MATCH_NOT_FOUND)
        return match

    async def search_matches(
        self,
        match_filter: Optional[MatchFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ) -> Page:
        """Filter by status and participant membership; sorting and paging are delegated to the database"""
        try:
            return await self.db.search_matches(match_filter, sorts, page)
        except ArbiterError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to search matches: {e}")
            raise UnexpectedError("match search", str(e))
