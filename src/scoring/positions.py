"""
Position Scoring Rules

Scores a single predicted-vs-actual league position. Rules are evaluated in
order and the first match wins:

1. Exact position                       -> 10
2. Within 3 places                      -> 5
3. Within 5 places                      -> 2
4. Both in the top half or both bottom  -> 1
5. Anything else                        -> 0

The top half is positions 1..table_size // 2, so in a 21-team league the
11th-placed team is in the bottom half.
"""

from src.config import (
    TABLE_SIZE,
    EXACT_POINTS,
    NEAR_POINTS,
    NEAR_DISTANCE,
    CLOSE_POINTS,
    CLOSE_DISTANCE,
    SAME_HALF_POINTS,
    MISS_POINTS,
)


def _check_position(position, table_size: int, label: str) -> None:
    # bool is an int subclass, reject it explicitly
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValueError(f"{label} position must be an integer, got {position!r}")
    if not 1 <= position <= table_size:
        raise ValueError(
            f"{label} position {position} outside table range 1..{table_size}"
        )


def is_top_half(position: int, table_size: int = TABLE_SIZE) -> bool:
    """Return True if the position is in the top half of the table."""
    return position <= table_size // 2


def score_position(predicted: int, actual: int, table_size: int = TABLE_SIZE) -> int:
    """
    Score one predicted position against the actual position.

    Args:
        predicted: Position the participant predicted (1-based)
        actual: Position the team actually holds (1-based)
        table_size: Number of teams in the league

    Returns:
        Points earned: one of 10, 5, 2, 1, 0

    Raises:
        ValueError: If either position is not an integer within 1..table_size
    """
    if isinstance(table_size, bool) or not isinstance(table_size, int) or table_size < 1:
        raise ValueError(f"table_size must be a positive integer, got {table_size!r}")
    _check_position(predicted, table_size, "Predicted")
    _check_position(actual, table_size, "Actual")

    distance = abs(predicted - actual)

    if distance == 0:
        return EXACT_POINTS
    if distance <= NEAR_DISTANCE:
        return NEAR_POINTS
    if distance <= CLOSE_DISTANCE:
        return CLOSE_POINTS
    if is_top_half(predicted, table_size) == is_top_half(actual, table_size):
        return SAME_HALF_POINTS
    return MISS_POINTS
