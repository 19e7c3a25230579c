"""
Tests for leaderboard aggregation and tie handling.
"""

import pandas as pd

from src.scoring.leaderboard import build_leaderboard, rank_totals


class TestRankTotals:
    """Tests for competition ranking."""

    def test_tied_totals_share_rank(self):
        ranks = rank_totals({"alice": 50, "bob": 50, "carol": 40})
        assert ranks == {"alice": 1, "bob": 1, "carol": 3}

    def test_one_two_two_four(self):
        ranks = rank_totals({"a": 90, "b": 80, "c": 80, "d": 70})
        assert [ranks[p] for p in "abcd"] == [1, 2, 2, 4]

    def test_empty(self):
        assert rank_totals({}) == {}


class TestBuildLeaderboard:
    """Tests for build_leaderboard."""

    def test_ranks_for_fifty_fifty_forty(self):
        board = build_leaderboard({"carol": 40, "bob": 50, "alice": 50})

        assert board['rank'].tolist() == [1, 1, 3]
        assert board['total'].tolist() == [50, 50, 40]
        assert list(board.columns) == ['rank', 'participant', 'total']

    def test_ties_listed_alphabetically(self):
        board = build_leaderboard({"zoe": 50, "Adam": 50, "mia": 50, "bea": 60})
        assert board['participant'].tolist() == ["bea", "Adam", "mia", "zoe"]

    def test_input_order_does_not_matter(self):
        totals = {"dan": 30, "cat": 30, "ben": 45, "amy": 12}
        reordered = dict(reversed(list(totals.items())))

        pd.testing.assert_frame_equal(build_leaderboard(totals), build_leaderboard(reordered))

    def test_empty_totals(self):
        board = build_leaderboard({})
        assert board.empty
        assert list(board.columns) == ['rank', 'participant', 'total']

    def test_change_against_previous_totals(self):
        board = build_leaderboard(
            {"alice": 60, "bob": 55, "carol": 20},
            previous_totals={"alice": 40, "bob": 55},
        )
        rows = board.set_index('participant')

        assert rows.loc['alice', 'change'] == 20
        assert rows.loc['alice', 'previous_rank'] == 2
        assert rows.loc['alice', 'rank_change'] == 1
        assert rows.loc['bob', 'change'] == 0
        assert rows.loc['bob', 'rank_change'] == -1
        assert pd.isna(rows.loc['carol', 'previous_total'])
        assert pd.isna(rows.loc['carol', 'rank_change'])

    def test_previous_totals_for_unknown_participants_ignored(self):
        board = build_leaderboard({"alice": 10}, previous_totals={"alice": 5, "ghost": 99})
        assert board.iloc[0]['previous_rank'] == 1
        assert board.iloc[0]['change'] == 5
