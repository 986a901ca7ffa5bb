from typing import Iterable, Set, Tuple

Coordinate = Tuple[int, int]

class WinDetector:
    """Detects a completed run of marks around the most recently placed cell"""

    # Horizontal, vertical, main diagonal, anti-diagonal
    DIRECTIONS = ((1, 0), (0, 1), (1, 1), (1, -1))

    @staticmethod
    def count_direction(cells: Set[Coordinate], x: int, y: int,
                        dx: int, dy: int, win_length: int) -> int:
        """
        Count consecutive marked cells starting next to (x, y) along (dx, dy)

        Args:
            cells: Coordinates holding the mark being checked
            x, y: Coordinate the scan starts from (not counted)
            dx, dy: Step direction
            win_length: Required run length; at most win_length - 1 steps are scanned

        Returns:
            Number of consecutive marked cells before the first gap
        """
        count = 0
        for step in range(1, win_length):
            if (x + dx * step, y + dy * step) not in cells:
                break
            count += 1
        return count

    @staticmethod
    def run_length(cells: Set[Coordinate], x: int, y: int,
                   dx: int, dy: int, win_length: int) -> int:
        """Length of the run through (x, y) along one line, including (x, y)"""
        forward = WinDetector.count_direction(cells, x, y, dx, dy, win_length)
        backward = WinDetector.count_direction(cells, x, y, -dx, -dy, win_length)
        return 1 + forward + backward

    @staticmethod
    def is_winning_move(marked: Iterable[Coordinate], x: int, y: int, win_length: int) -> bool:
        """
        Check whether placing a mark at (x, y) completes a run of win_length

        Args:
            marked: Coordinates already holding the same mark (may include (x, y))
            x, y: Coordinate of the newly placed mark
            win_length: Required run length

        Returns:
            True as soon as any line through (x, y) reaches win_length
        """
        cells = set(marked)
        cells.add((x, y))

        for dx, dy in WinDetector.DIRECTIONS:
            if WinDetector.run_length(cells, x, y, dx, dy, win_length) >= win_length:
                return True
        return False
