"""Tests for move fingerprints (ETags)."""

import hashlib
from dataclasses import dataclass, replace
from datetime import datetime

from tictactoe.database.models import PlayerSymbol
from tictactoe.utils.fingerprint import compute_etag, fingerprint_payload

from helpers import play


@dataclass(frozen=True)
class MoveRecord:
    id: str = "move-1"
    match_id: str = "match-1"
    player_id: str = "player-1"
    symbol: PlayerSymbol = PlayerSymbol.X
    x: int = 1
    y: int = 2
    move_number: int = 3
    created_at: datetime = datetime(2025, 7, 16, 9, 28, 7, 123456)
    symbol_overridden: bool = False


def test_payload_layout():
    assert fingerprint_payload(MoveRecord()) == (
        "move-1:match-1:player-1:X:1:2:3:2025-07-16T09:28:07.123456:False"
    )


def test_etag_is_uppercase_sha256_of_payload():
    record = MoveRecord()
    expected = hashlib.sha256(fingerprint_payload(record).encode('utf-8')).hexdigest().upper()
    assert compute_etag(record) == expected
    assert len(compute_etag(record)) == 64


def test_timestamp_keeps_microseconds_even_when_zero():
    record = MoveRecord(created_at=datetime(2025, 1, 1, 12, 0, 0))
    assert "2025-01-01T12:00:00.000000" in fingerprint_payload(record)


def test_every_field_changes_the_etag():
    base = MoveRecord()
    variants = [
        replace(base, id="move-2"),
        replace(base, match_id="match-2"),
        replace(base, player_id="player-2"),
        replace(base, symbol=PlayerSymbol.O),
        replace(base, x=2),
        replace(base, y=1),
        replace(base, move_number=4),
        replace(base, created_at=datetime(2025, 7, 16, 9, 28, 7, 123457)),
        replace(base, symbol_overridden=True),
    ]
    etags = {compute_etag(variant) for variant in variants}
    assert compute_etag(base) not in etags
    assert len(etags) == len(variants)


async def test_etag_recomputes_from_persisted_move(database, move_ops, match, players):
    [submitted] = await play(move_ops, match, players, [(1, 1)])

    stored = await database.get_move(submitted.move.id)

    assert compute_etag(stored) == submitted.etag
    assert stored.created_at == submitted.move.created_at
