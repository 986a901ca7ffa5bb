"""
Move Operations Module

Adjudicates move submissions: idempotent replay, turn and board rules, the
chaos rule, win/draw detection and the move fingerprint.

Concurrency model:
- No in-process locking. The database is the only synchronization point.
- The move insert is flushed before the match row is touched, and both are
  committed in one transaction, so a rejected insert leaves nothing behind.
- Unique constraints on (match, cell), (match, client_move_id) and
  (match, move_number) decide races; a violation is interpreted, not retried.
"""

import random
from typing import List, NamedTuple, Optional

from tictactoe.config import Config
from tictactoe.constants import ErrorMessages, LimitConstants
from tictactoe.data_models.search import MoveFilter, Page, PageRequest, SortSpec
from tictactoe.database.database import MoveConstraint, MoveConstraintViolation
from tictactoe.database.models import Match, MatchStatus, Move, PlayerSymbol, new_id, utcnow
from tictactoe.operations.player_operations import PlayerOperations
from tictactoe.utils.exceptions import (
    ArbiterError, ConflictError, ForbiddenError, InvalidArgumentError,
    NotFoundError, UnexpectedError
)
from tictactoe.utils.fingerprint import compute_etag
from tictactoe.utils.logger import setup_logger
from tictactoe.utils.win_detector import WinDetector

logger = setup_logger(__name__)


class SubmittedMove(NamedTuple):
    """Accepted move with its fingerprint; replayed is True for idempotent resubmissions"""
    move: Move
    etag: str
    replayed: bool = False


class MoveOperations:
    """
    Move adjudicator.

    The chaos rule draws from ``rng``; pass a seeded ``random.Random`` (or any
    object with a ``random()`` method) for deterministic behaviour.
    """

    def __init__(self, database, player_operations: Optional[PlayerOperations] = None, rng=None):
        """Initialize with database instance, player directory and random source"""
        self.db = database
        self.players = player_operations or PlayerOperations(database)
        self.rng = rng or random.Random()
        self.logger = logger

    async def submit_move(
        self,
        match_id: str,
        player_id: str,
        x: int,
        y: int,
        client_move_id: str
    ) -> SubmittedMove:
        """
        Validate and record one move, advancing the match state.

        Resubmitting an accepted client_move_id returns the original move and
        fingerprint without touching the match, whatever its current state.

        Returns:
            SubmittedMove: (move, etag, replayed)

        Raises:
            NotFoundError: Unknown match or player
            ForbiddenError: Player is not part of the match
            ConflictError: Match finished, not the player's turn, cell occupied,
                or a concurrent submission won the race
            InvalidArgumentError: Missing client_move_id or coordinates off the board
            UnexpectedError: If the database operation fails
        """
        try:
            async with self.db.transaction() as session:
                match = await self.db.get_match(match_id, session=session)
                if match is None:
                    raise NotFoundError(f"Match {match_id} not found", ErrorMessages.MATCH_NOT_FOUND)

                self._validate_client_move_id(client_move_id)

                # Idempotency check comes before every other rule
                existing = await self.db.get_move_by_client_move_id(
                    match_id, client_move_id, session=session
                )
                if existing is not None:
                    self.logger.info(
                        f"Replaying Move {existing.id} for client move '{client_move_id}' in Match {match_id}"
                    )
                    return SubmittedMove(existing, compute_etag(existing), replayed=True)

                if match.status == MatchStatus.FINISHED:
                    raise ConflictError(f"Match {match_id} already finished", ErrorMessages.MATCH_FINISHED)

                await self.players.resolve(player_id, session=session)

                acting_symbol = match.symbol_for(player_id)
                if acting_symbol is None:
                    raise ForbiddenError(
                        f"Player {player_id} is not in Match {match_id}", ErrorMessages.NOT_A_PARTICIPANT
                    )

                if match.current_turn != acting_symbol:
                    raise ConflictError(
                        f"Player {player_id} ({acting_symbol.value}) moved on "
                        f"{match.current_turn.value}'s turn in Match {match_id}",
                        ErrorMessages.NOT_YOUR_TURN
                    )

                if not (0 <= x < match.size and 0 <= y < match.size):
                    raise InvalidArgumentError(
                        f"({x}, {y}) outside {match.size}x{match.size} board", ErrorMessages.OUT_OF_BOUNDS
                    )

                board = match.board()
                if (x, y) in board:
                    raise ConflictError(
                        f"Cell ({x}, {y}) in Match {match_id} is taken", ErrorMessages.CELL_OCCUPIED
                    )

                move = Move(
                    id=new_id(),
                    match_id=match.id,
                    move_number=len(match.moves) + 1,
                    player_id=player_id,
                    symbol=acting_symbol,
                    x=x,
                    y=y,
                    created_at=utcnow(),
                    client_move_id=client_move_id,
                    symbol_overridden=False
                )
                self._apply_chaos_rule(move)

                await self.db.insert_move(session, move)

                self._advance_match(match, move, acting_symbol, board)

            etag = compute_etag(move)
            self.logger.info(
                f"Accepted Move {move.id} #{move.move_number} {move.symbol.value} at ({x}, {y}) "
                f"in Match {match_id} (status: {match.status.value})"
            )
            return SubmittedMove(move, etag)

        except MoveConstraintViolation as violation:
            return await self._resolve_constraint_violation(violation, match_id, client_move_id, x, y)
        except ArbiterError as e:
            self.logger.debug(f"Rejected move '{client_move_id}' in Match {match_id}: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Failed to submit move '{client_move_id}' in Match {match_id}: {e}")
            raise UnexpectedError("move submission", str(e))

    def _validate_client_move_id(self, client_move_id: str) -> None:
        if not client_move_id:
            raise InvalidArgumentError("Missing client move ID", "Client move ID is required")
        if len(client_move_id) > LimitConstants.CLIENT_MOVE_ID_MAX_LENGTH:
            raise InvalidArgumentError(
                f"Client move ID longer than {LimitConstants.CLIENT_MOVE_ID_MAX_LENGTH} characters",
                f"Client move ID must be at most {LimitConstants.CLIENT_MOVE_ID_MAX_LENGTH} characters"
            )

    def _apply_chaos_rule(self, move: Move) -> None:
        """Every CHAOS_MOVE_INTERVAL-th move may record the opponent's mark instead"""
        if move.move_number % Config.CHAOS_MOVE_INTERVAL != 0:
            return
        if self.rng.random() >= Config.CHAOS_PROBABILITY:
            return

        move.symbol = move.symbol.opponent
        move.symbol_overridden = True
        self.logger.info(
            f"Chaos rule recorded {move.symbol.value} for move #{move.move_number} in Match {move.match_id}"
        )

    def _advance_match(self, match: Match, move: Move, acting_symbol: PlayerSymbol, board) -> None:
        """Flip the turn and settle win/draw. Turn order follows the acting player, not the recorded mark."""
        match.moves.append(move)
        match.current_turn = acting_symbol.opponent

        marked = [cell for cell, symbol in board.items() if symbol == move.symbol]
        if WinDetector.is_winning_move(marked, move.x, move.y, match.win_length):
            match.status = MatchStatus.FINISHED
            match.winner = move.symbol
            match.ended_at = utcnow()
            self.logger.info(f"Match {match.id} won by {move.symbol.value} on move #{move.move_number}")
        elif len(match.moves) == match.cell_count:
            match.status = MatchStatus.FINISHED
            match.ended_at = utcnow()
            self.logger.info(f"Match {match.id} ended in a draw")

    async def _resolve_constraint_violation(
        self,
        violation: MoveConstraintViolation,
        match_id: str,
        client_move_id: str,
        x: int,
        y: int
    ) -> SubmittedMove:
        """
        Interpret a unique-constraint failure on the move insert.

        A racing insert can violate several constraints while the backend
        reports only one, so the client token is always checked first.
        """
        try:
            winner = await self.db.get_move_by_client_move_id(match_id, client_move_id)
        except Exception as e:
            self.logger.error(f"Failed to re-fetch client move '{client_move_id}' in Match {match_id}: {e}")
            raise UnexpectedError("move submission", str(e))

        if winner is not None:
            self.logger.info(
                f"Concurrent duplicate of client move '{client_move_id}' resolved to Move {winner.id}"
            )
            return SubmittedMove(winner, compute_etag(winner), replayed=True)

        if violation.constraint == MoveConstraint.CELL:
            self.logger.warning(f"Lost race for cell ({x}, {y}) in Match {match_id}")
            raise ConflictError(f"Cell ({x}, {y}) in Match {match_id} is taken", ErrorMessages.CELL_OCCUPIED)

        if violation.constraint == MoveConstraint.MOVE_NUMBER:
            try:
                match = await self.db.get_match(match_id)
            except Exception as e:
                self.logger.error(f"Failed to re-fetch Match {match_id} after lost race: {e}")
                raise UnexpectedError("move submission", str(e))

            if match is not None and (x, y) in match.board():
                self.logger.warning(f"Lost race for cell ({x}, {y}) in Match {match_id}")
                raise ConflictError(
                    f"Cell ({x}, {y}) in Match {match_id} is taken", ErrorMessages.CELL_OCCUPIED
                )
            self.logger.warning(f"Lost race for the next move in Match {match_id}")
            raise ConflictError(
                f"Concurrent move accepted first in Match {match_id}", ErrorMessages.CONCURRENT_MOVE
            )

        self.logger.error(f"Unexpected constraint failure in Match {match_id}: {violation}")
        raise UnexpectedError("move submission", str(violation.original))

    async def get_move(self, move_id: str) -> Move:
        """
        Retrieve a move.

        Raises:
            NotFoundError: If the move does not exist
        """
        try:
            move = await self.db.get_move(move_id)
        except Exception as e:
            self.logger.error(f"Failed to load Move {move_id}: {e}")
            raise UnexpectedError("move lookup", str(e))

        if move is None:
            raise NotFoundError(f"Move {move_id} not found", ErrorMessages.MOVE_NOT_FOUND)
        return move

    async def search_moves(
        self,
        move_filter: Optional[MoveFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ) -> Page:
        try:
            return await self.db.search_moves(move_filter, sorts, page)
        except ArbiterError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to search moves: {e}")
            raise UnexpectedError("move search", str(e))
