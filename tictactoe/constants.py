"""
Arbiter-wide constants.

Holds the user-facing error texts and the sort-field allowlists used by the
search operations, so operations and tests refer to the same values.
"""

import re


class ErrorMessages:
    """User-facing messages for rejected operations."""

    MATCH_NOT_FOUND = "Match not found"
    MOVE_NOT_FOUND = "Move not found"
    PLAYER_NOT_FOUND = "Player not found"
    PLAYER_X_NOT_FOUND = "Player X not found"
    PLAYER_O_NOT_FOUND = "Player O not found"

    SELF_PLAY = "A player cannot play against themselves"
    INVALID_BOARD = "Win length must be between 1 and the board size"
    OUT_OF_BOUNDS = "Move coordinates are out of bounds"

    NOT_A_PARTICIPANT = "Player is not a participant of this match"

    MATCH_FINISHED = "Match already finished"
    NOT_YOUR_TURN = "Not your turn"
    CELL_OCCUPIED = "Cell is already occupied"
    CONCURRENT_MOVE = "Match state changed concurrently, reload and retry"
    USERNAME_TAKEN = "Username is already taken"
    INVALID_USERNAME = "Username must be 3-50 characters: letters, digits and underscores only"


class SortFields:
    """Allowed sort fields per searchable entity, in snake_case."""

    MATCH = ('created_at', 'id', 'player_x_id', 'player_o_id', 'status', 'ended_at')
    MOVE = ('id', 'match_id', 'move_number', 'player_id', 'client_move_id', 'created_at')
    PLAYER = ('username', 'id', 'created_at')


class LimitConstants:
    """Column size limits shared by models and validation."""

    USERNAME_MAX_LENGTH = 50
    USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]{3,50}$')
    CLIENT_MOVE_ID_MAX_LENGTH = 100
