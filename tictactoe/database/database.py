from enum import Enum
from typing import Optional, List, Sequence
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import Select, select, func, or_
from contextlib import asynccontextmanager

from tictactoe.config import Config
from tictactoe.constants import SortFields
from tictactoe.data_models.search import (
    Page, PageRequest, SortSpec, MatchFilter, MoveFilter, PlayerFilter
)
from tictactoe.database.models import Base, Player, Match, Move
from tictactoe.utils.logger import setup_logger
from tictactoe.utils.sorting import apply_sorting, validate_page_request


class MoveConstraint(Enum):
    CELL = "uq_moves_match_cell"
    CLIENT_MOVE_ID = "uq_moves_match_client_move_id"
    MOVE_NUMBER = "uq_moves_match_move_number"
    UNKNOWN = "unknown"


class MoveConstraintViolation(Exception):
    """Raised when inserting a move violates one of the per-match unique constraints"""

    def __init__(self, constraint: MoveConstraint, original: Exception):
        super().__init__(f"Move insert violated {constraint.value}: {original}")
        self.constraint = constraint
        self.original = original


def classify_move_integrity_error(error: IntegrityError) -> MoveConstraint:
    """
    Work out which move constraint an IntegrityError refers to.

    PostgreSQL reports the constraint name; SQLite reports the column list,
    e.g. "UNIQUE constraint failed: moves.match_id, moves.client_move_id".
    """
    message = str(error.orig if error.orig is not None else error)

    if MoveConstraint.CLIENT_MOVE_ID.value in message or 'client_move_id' in message:
        return MoveConstraint.CLIENT_MOVE_ID
    if MoveConstraint.MOVE_NUMBER.value in message or 'move_number' in message:
        return MoveConstraint.MOVE_NUMBER
    if MoveConstraint.CELL.value in message or 'moves.x, moves.y' in message:
        return MoveConstraint.CELL
    return MoveConstraint.UNKNOWN


class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.async_session = None

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")

        self.engine = create_async_engine(
            Config.get_async_database_url(self.database_url),
            echo=Config.DEBUG,
            future=True
        )

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Create all tables
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        All operations within the context are committed together on success,
        or rolled back together on failure. Exceptions must be allowed to
        propagate out of the context for rollback to occur.
        """
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")

    async def _fetch_page(
        self,
        session: AsyncSession,
        query: Select,
        model,
        sorts: Optional[Sequence[SortSpec]],
        allowed_fields: Sequence[str],
        default_sort: Sequence[SortSpec],
        page: Optional[PageRequest],
        options: Sequence = (),
    ) -> Page:
        """Count the filtered query, then load one sorted page of it"""
        page = validate_page_request(page)

        count_result = await session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total_count = count_result.scalar_one()

        ordered = apply_sorting(query.options(*options), model, sorts, allowed_fields, default_sort)
        result = await session.execute(
            ordered.offset(page.offset).limit(page.page_size)
        )

        return Page(
            items=list(result.scalars().all()),
            total_count=total_count,
            page_size=page.page_size,
            page_number=page.page_number
        )

    # Player operations
    async def create_player(self, username: str) -> Player:
        """Create a new player"""
        async with self.get_session() as session:
            player = Player(username=username)
            session.add(player)
            await session.commit()
            await session.refresh(player)
            return player

    async def get_player(self, player_id: str, session: Optional[AsyncSession] = None) -> Optional[Player]:
        """Get a player by ID, inside the caller's session when one is given"""
        if session is not None:
            return await session.get(Player, player_id)

        async with self.get_session() as new_session:
            return await new_session.get(Player, player_id)

    async def get_player_by_username(self, username: str) -> Optional[Player]:
        """Get a player by username, ignoring case"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Player).where(func.lower(Player.username) == username.lower())
            )
            return result.scalar_one_or_none()

    async def search_players(
        self,
        player_filter: Optional[PlayerFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ) -> Page:
        """Search players by username"""
        player_filter = player_filter or PlayerFilter()
        query = select(Player)

        if player_filter.usernames:
            lowered = [name.lower() for name in player_filter.usernames]
            query = query.where(func.lower(Player.username).in_(lowered))

        async with self.get_session() as session:
            return await self._fetch_page(
                session, query, Player, sorts,
                SortFields.PLAYER, [SortSpec('username')], page
            )

    # Match operations
    async def add_match(self, match: Match) -> Match:
        """Persist a new match"""
        async with self.get_session() as session:
            session.add(match)
            await session.commit()

        return await self.get_match(match.id)

    async def get_match(self, match_id: str, session: Optional[AsyncSession] = None) -> Optional[Match]:
        """Get a match with its moves loaded in move order"""
        query = (
            select(Match)
            .options(selectinload(Match.moves))
            .where(Match.id == match_id)
        )

        if session is not None:
            result = await session.execute(query)
            return result.scalar_one_or_none()

        async with self.get_session() as new_session:
            result = await new_session.execute(query)
            return result.scalar_one_or_none()

    async def search_matches(
        self,
        match_filter: Optional[MatchFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ) -> Page:
        """Search matches by status and participant membership"""
        match_filter = match_filter or MatchFilter()
        query = select(Match)

        if match_filter.status is not None:
            query = query.where(Match.status == match_filter.status)

        if match_filter.player_ids:
            player_ids = list(match_filter.player_ids)
            query = query.where(
                or_(Match.player_x_id.in_(player_ids), Match.player_o_id.in_(player_ids))
            )

        async with self.get_session() as session:
            return await self._fetch_page(
                session, query, Match, sorts,
                SortFields.MATCH, [SortSpec('created_at')], page,
                options=[selectinload(Match.moves)]
            )

    # Move operations
    async def insert_move(self, session: AsyncSession, move: Move) -> Move:
        """
        Add a move inside the caller's transaction and flush it immediately.

        Raises:
            MoveConstraintViolation: If a per-match unique constraint rejects the move
        """
        session.add(move)
        try:
            await session.flush()
        except IntegrityError as e:
            raise MoveConstraintViolation(classify_move_integrity_error(e), e) from e
        return move

    async def get_move(self, move_id: str) -> Optional[Move]:
        """Get a move by ID"""
        async with self.get_session() as session:
            return await session.get(Move, move_id)

    async def get_move_by_client_move_id(
        self,
        match_id: str,
        client_move_id: str,
        session: Optional[AsyncSession] = None
    ) -> Optional[Move]:
        """Get the move a client token was accepted as, if any"""
        query = select(Move).where(
            Move.match_id == match_id,
            Move.client_move_id == client_move_id
        )

        if session is not None:
            result = await session.execute(query)
            return result.scalar_one_or_none()

        async with self.get_session() as new_session:
            result = await new_session.execute(query)
            return result.scalar_one_or_none()

    async def search_moves(
        self,
        move_filter: Optional[MoveFilter] = None,
        sorts: Optional[List[SortSpec]] = None,
        page: Optional[PageRequest] = None
    ) -> Page:
        """Search moves by match and player"""
        move_filter = move_filter or MoveFilter()
        query = select(Move)

        if move_filter.match_id is not None:
            query = query.where(Move.match_id == move_filter.match_id)

        if move_filter.player_id is not None:
            query = query.where(Move.player_id == move_filter.player_id)

        async with self.get_session() as session:
            return await self._fetch_page(
                session, query, Move, sorts,
                SortFields.MOVE, [SortSpec('match_id'), SortSpec('move_number')], page
            )
