"""
Operations Layer

Business rules composed over the database layer. Each module focuses on one
domain:
- PlayerOperations: player directory (lookup and registration)
- MatchOperations: match lifecycle (creation, reads, searches)
- MoveOperations: move adjudication (validation, idempotency, win/draw)
"""
