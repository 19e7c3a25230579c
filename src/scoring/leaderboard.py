"""
Leaderboard Aggregation

Turns per-participant totals into a ranked leaderboard.

Ranking uses standard competition ranking: equal totals share a rank and
the next rank skips (50, 50, 40 -> 1, 1, 3). Rows that share a rank are
listed by participant name, case-insensitively, so the output never depends
on input order.
"""

import pandas as pd

LEADERBOARD_COLUMNS = ['rank', 'participant', 'total']


def _sort_key(participant: str) -> tuple[str, str]:
    return (participant.casefold(), participant)


def rank_totals(totals: dict) -> dict:
    """Return participant -> competition rank for a mapping of totals."""
    if not totals:
        return {}
    series = pd.Series(totals, dtype='int64')
    ranks = series.rank(method='min', ascending=False).astype(int)
    return ranks.to_dict()


def build_leaderboard(totals: dict, previous_totals: dict | None = None) -> pd.DataFrame:
    """
    Build a ranked leaderboard from participant totals.

    Args:
        totals: Mapping of participant -> current total
        previous_totals: Optional mapping of participant -> last recorded total.
            When given, adds 'previous_total', 'change', 'previous_rank' and
            'rank_change' columns (positive rank_change = climbed).

    Returns:
        DataFrame ordered by rank, then participant name
    """
    columns = list(LEADERBOARD_COLUMNS)
    if previous_totals is not None:
        columns += ['previous_total', 'change', 'previous_rank', 'rank_change']

    if not totals:
        return pd.DataFrame(columns=columns)

    ordered = sorted(totals, key=lambda p: (-totals[p], _sort_key(p)))
    ranks = rank_totals(totals)

    df = pd.DataFrame({
        'rank': [ranks[p] for p in ordered],
        'participant': ordered,
        'total': [int(totals[p]) for p in ordered],
    })

    if previous_totals is not None:
        known = {p: t for p, t in previous_totals.items() if p in totals}
        previous_ranks = rank_totals(known)
        df['previous_total'] = pd.array([known.get(p) for p in ordered], dtype='Int64')
        df['change'] = df['total'] - df['previous_total']
        df['previous_rank'] = pd.array([previous_ranks.get(p) for p in ordered], dtype='Int64')
        df['rank_change'] = rank_changes(ranks, previous_ranks, ordered)

    return df[columns].reset_index(drop=True)


def rank_changes(current_ranks: dict, previous_ranks: dict, participants: list):
    """Places gained since the previous ranking (<NA> for newcomers)."""
    return pd.array(
        [
            previous_ranks[p] - current_ranks[p] if p in previous_ranks else None
            for p in participants
        ],
        dtype='Int64',
    )
