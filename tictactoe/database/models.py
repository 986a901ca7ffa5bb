from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean,
    ForeignKey, Enum as SQLEnum, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple
import uuid

from tictactoe.constants import LimitConstants

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so none is stored anywhere."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MatchStatus(Enum):
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class PlayerSymbol(Enum):
    X = "X"
    O = "O"

    @property
    def opponent(self) -> 'PlayerSymbol':
        return PlayerSymbol.O if self is PlayerSymbol.X else PlayerSymbol.X


class Player(Base):
    __tablename__ = 'players'

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(LimitConstants.USERNAME_MAX_LENGTH), nullable=False, unique=True, index=True)

    # Metadata
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Player(id={self.id}, username='{self.username}')>"


class Match(Base):
    """
    A single game between two players on a size x size board.

    Player X always moves first. The match is mutated only by move
    submission: turn flips, and status/winner/ended_at on the final move.
    """
    __tablename__ = 'matches'

    id = Column(String(36), primary_key=True, default=new_id)

    # Participants
    player_x_id = Column(String(36), ForeignKey('players.id'), nullable=False, index=True)
    player_o_id = Column(String(36), ForeignKey('players.id'), nullable=False, index=True)

    # Board configuration
    size = Column(Integer, nullable=False, default=3)
    win_length = Column(Integer, nullable=False, default=3)

    # Match state
    status = Column(SQLEnum(MatchStatus), nullable=False, default=MatchStatus.IN_PROGRESS, index=True)
    current_turn = Column(SQLEnum(PlayerSymbol), nullable=False, default=PlayerSymbol.X)
    winner = Column(SQLEnum(PlayerSymbol), nullable=True)  # None while playing or on a draw

    # Match timing
    created_at = Column(DateTime, default=utcnow, index=True)
    ended_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint('size > 0', name='positive_board_size_check'),
        CheckConstraint('win_length > 0 AND win_length <= size', name='win_length_within_board_check'),
    )

    # Relationships
    player_x = relationship("Player", foreign_keys=[player_x_id])
    player_o = relationship("Player", foreign_keys=[player_o_id])
    moves = relationship(
        "Move",
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="Move.move_number"
    )

    @property
    def is_finished(self) -> bool:
        return self.status == MatchStatus.FINISHED

    @property
    def is_draw(self) -> bool:
        return self.is_finished and self.winner is None

    @property
    def cell_count(self) -> int:
        return self.size * self.size

    def symbol_for(self, player_id: str) -> Optional[PlayerSymbol]:
        """Mark played by the given player, or None if they are not in this match"""
        if player_id == self.player_x_id:
            return PlayerSymbol.X
        if player_id == self.player_o_id:
            return PlayerSymbol.O
        return None

    def board(self) -> Dict[Tuple[int, int], PlayerSymbol]:
        """Coordinate -> recorded mark for every move played so far"""
        return {(move.x, move.y): move.symbol for move in self.moves}

    def __repr__(self):
        return (
            f"<Match(id={self.id}, status={self.status.value}, "
            f"turn={self.current_turn.value}, moves={len(self.moves)})>"
        )


class Move(Base):
    """
    One mark placed on a match board. Moves are append-only and never updated.

    The unique constraints are what make concurrent submissions safe: one
    move per cell, one move per client token, one move per sequence number.
    """
    __tablename__ = 'moves'

    id = Column(String(36), primary_key=True, default=new_id)
    match_id = Column(String(36), ForeignKey('matches.id', ondelete='CASCADE'), nullable=False, index=True)
    move_number = Column(Integer, nullable=False)

    player_id = Column(String(36), ForeignKey('players.id'), nullable=False, index=True)
    symbol = Column(SQLEnum(PlayerSymbol), nullable=False)

    x = Column(Integer, nullable=False)
    y = Column(Integer, nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    client_move_id = Column(String(LimitConstants.CLIENT_MOVE_ID_MAX_LENGTH), nullable=False)
    symbol_overridden = Column(Boolean, nullable=False, default=False)  # Chaos rule swapped the mark

    __table_args__ = (
        CheckConstraint('move_number > 0', name='positive_move_number_check'),
        UniqueConstraint('match_id', 'x', 'y', name='uq_moves_match_cell'),
        UniqueConstraint('match_id', 'client_move_id', name='uq_moves_match_client_move_id'),
        UniqueConstraint('match_id', 'move_number', name='uq_moves_match_move_number'),
    )

    # Relationships
    match = relationship("Match", back_populates="moves")
    player = relationship("Player")

    def __repr__(self):
        return (
            f"<Move(match_id={self.match_id}, number={self.move_number}, "
            f"symbol={self.symbol.value}, x={self.x}, y={self.y})>"
        )
