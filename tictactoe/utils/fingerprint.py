"""
Move fingerprints (ETags).

A fingerprint is a SHA-256 digest over the immutable fields of a persisted
move, so it can be recomputed from the stored record at any time.
"""

import hashlib
from datetime import datetime


def format_timestamp(value: datetime) -> str:
    """ISO-8601 timestamp at microsecond precision."""
    return value.isoformat(timespec='microseconds')


def fingerprint_payload(move) -> str:
    """Build the colon-separated payload hashed into the fingerprint."""
    return ":".join([
        str(move.id),
        str(move.match_id),
        str(move.player_id),
        move.symbol.value,
        str(move.x),
        str(move.y),
        str(move.move_number),
        format_timestamp(move.created_at),
        str(bool(move.symbol_overridden)),
    ])


def compute_etag(move) -> str:
    """Upper-case hex SHA-256 of the move payload."""
    payload = fingerprint_payload(move)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest().upper()
