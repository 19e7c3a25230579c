"""
Prediction Scoring

Scores one participant's full pre-season table against a standings snapshot,
producing a score line per predicted team and the participant's total.

Usage:
    from src.scoring.predictions import score_prediction
    result = score_prediction(prediction, snapshot, participant="alice")
    result['total'], result['lines'], result['warnings']
"""

import pandas as pd

from src.config import EXACT_POINTS
from src.errors import InputInvariantViolation, UnresolvedTeam
from src.scoring.positions import score_position

LINE_COLUMNS = [
    'participant', 'team', 'predicted_position', 'actual_position', 'points', 'status'
]
STATUS_SCORED = "scored"
STATUS_UNSCORED = "unscored"


def validate_prediction(prediction: dict, participant: str = "", team_count: int | None = None) -> None:
    """
    Check that a prediction assigns every position 1..N exactly once.

    Args:
        prediction: Mapping of team name -> predicted position
        participant: Owner of the prediction, used in error messages
        team_count: Number of teams in the league. When given, the prediction
            must rank exactly that many teams.

    Raises:
        InputInvariantViolation: If the positions are not a permutation of 1..N
    """
    label = participant or "prediction"
    if not prediction:
        raise InputInvariantViolation(f"{label}: prediction is empty")
    if team_count is not None and len(prediction) != team_count:
        raise InputInvariantViolation(
            f"{label}: prediction ranks {len(prediction)} teams, the league has {team_count}"
        )

    positions = list(prediction.values())
    bad = [p for p in positions if isinstance(p, bool) or not isinstance(p, int)]
    if bad:
        raise InputInvariantViolation(f"{label}: non-integer positions {bad}")

    expected = set(range(1, len(prediction) + 1))
    seen = set()
    duplicates = set()
    for position in positions:
        if position in seen:
            duplicates.add(position)
        seen.add(position)

    if duplicates or seen != expected:
        msg = f"{label}: positions are not a permutation of 1..{len(prediction)}."
        if duplicates:
            msg += f" Duplicate positions: {sorted(duplicates)}"
        missing = expected - seen
        if missing:
            msg += f" Missing positions: {sorted(missing)}"
        extra = seen - expected
        if extra:
            msg += f" Unexpected positions: {sorted(extra)}"
        raise InputInvariantViolation(msg)


def max_total(team_count: int) -> int:
    """Highest total a prediction of team_count teams can reach."""
    return EXACT_POINTS * team_count


def score_prediction(prediction: dict, snapshot, participant: str = "") -> dict:
    """
    Score a participant's prediction against a standings snapshot.

    Teams missing from the snapshot are reported as unscored lines, excluded
    from the total, and returned as UnresolvedTeam warnings.

    Args:
        prediction: Mapping of team name -> predicted position (validated)
        snapshot: StandingsSnapshot to score against
        participant: Owner of the prediction

    Returns:
        Dictionary with:
            - lines: DataFrame with one row per predicted team
            - total: sum of points over scored lines
            - warnings: list of UnresolvedTeam
            - scored: number of scored lines
            - unscored: number of unscored lines
    """
    actual_positions = snapshot.positions()
    table_size = max(len(prediction), len(actual_positions))

    rows = []
    warnings = []
    for team, predicted in sorted(prediction.items(), key=lambda item: item[1]):
        actual = actual_positions.get(team)
        if actual is None:
            warnings.append(UnresolvedTeam(participant, team, predicted))
            rows.append({
                'participant': participant,
                'team': team,
                'predicted_position': predicted,
                'actual_position': None,
                'points': None,
                'status': STATUS_UNSCORED,
            })
            continue

        rows.append({
            'participant': participant,
            'team': team,
            'predicted_position': predicted,
            'actual_position': actual,
            'points': score_position(predicted, actual, table_size),
            'status': STATUS_SCORED,
        })

    lines = pd.DataFrame(rows, columns=LINE_COLUMNS)
    lines['predicted_position'] = lines['predicted_position'].astype('Int64')
    lines['actual_position'] = lines['actual_position'].astype('Int64')
    lines['points'] = lines['points'].astype('Int64')

    scored = int((lines['status'] == STATUS_SCORED).sum())
    total = int(lines['points'].sum()) if scored else 0

    return {
        'lines': lines,
        'total': total,
        'warnings': warnings,
        'scored': scored,
        'unscored': len(lines) - scored,
    }
