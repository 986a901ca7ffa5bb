"""
Player Operations Module

Player directory for the arbiter: resolves participant identities for match
creation and move submission, and registers username-only player records.
Credentials are not handled here.
"""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tictactoe.constants import ErrorMessages, LimitConstants
from tictactoe.data_models.search import Page, PageRequest, PlayerFilter, SortSpec
from tictactoe.database.models import Player
from tictactoe.utils.exceptions import (
    ArbiterError, ConflictError, InvalidArgumentError, NotFoundError, UnexpectedError
)
from tictactoe.utils.logger import setup_logger

logger = setup_logger(__name__)


class PlayerOperations:
    """Identity lookup and registration for match participants."""

    def __init__(self, database):
        """Initialize with database instance"""
        self.db = database
        self.logger = logger

    async def resolve(self, player_id: str, session=None) -> Player:
        """
        Resolve a participant identity, optionally inside the caller's transaction.

        Raises:
            NotFoundError: If no player has this ID
            UnexpectedError: If the lookup fails
        """
        try:
            player = await self.db.get_player(player_id, session=session)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to resolve Player {player_id}: {e}")
            raise UnexpectedError("player lookup", str(e))

        if player is None:
            raise NotFoundError(f"Player {player_id} not found", ErrorMessages.PLAYER_NOT_FOUND)
        return player

    async def get_player(self, player_id: str) -> Player:
        return await self.resolve(player_id)

    async def register(self, username: str) -> Player:
        """
        Create a player with a unique username.

        Raises:
            InvalidArgumentError: Unless the username is 3-50 letters, digits or underscores
            ConflictError: If the username is taken (case-insensitive)
        """
        username = (username or '').strip()
        if not LimitConstants.USERNAME_PATTERN.match(username):
            raise InvalidArgumentError(f"Invalid username '{username}'", ErrorMessages.INVALID_USERNAME)

        try:
            existing = await self.db.get_player_by_username(username)
            if existing:
                raise ConflictError(f"Username '{username}' already exists", ErrorMessages.USERNAME_TAKEN)

            player = await self.db.create_player(username)
            self.logger.info(f"Registered Player {player.id} ({player.username})")
            return player

        except IntegrityError:
            # Lost a registration race for the same username
            raise ConflictError(f"Username '{username}' already exists", ErrorMessages.USERNAME_TAKEN)
        except ArbiterError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to register Player '{username}': {e}")
            raise UnexpectedError("player registration", str(e))

    async def search_players(
        self,
        player_filter: Optional[PlayerFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ) -> Page:
        try:
            return await self.db.search_players(player_filter, sorts, page)
        except ArbiterError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to search players: {e}")
            raise UnexpectedError("player search", str(e))
