"""Test helpers shared across modules."""

NEVER_CHAOS = 0.99
ALWAYS_CHAOS = 0.0


class StubRandom:
    """Random source returning scripted values; the last value repeats."""

    def __init__(self, *values):
        self.values = list(values) or [NEVER_CHAOS]
        self.calls = 0

    def random(self):
        value = self.values[min(self.calls, len(self.values) - 1)]
        self.calls += 1
        return value


async def play(move_ops, match, players, cells, prefix='m'):
    """
    Play alternating moves starting with X.

    cells: list of (x, y); even indexes are alice's, odd are bob's.
    """
    results = []
    for index, (x, y) in enumerate(cells):
        player = players['alice'] if index % 2 == 0 else players['bob']
        results.append(
            await move_ops.submit_move(match.id, player.id, x, y, f"{prefix}{index + 1}")
        )
    return results
