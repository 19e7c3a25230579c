"""
Shared fixtures: a 20-team league and standings payload factories.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.ingestion.standings import build_snapshot

TEAMS = [
    "Arsenal", "Manchester City", "Liverpool", "Aston Villa", "Tottenham",
    "Chelsea", "Newcastle", "Manchester United", "West Ham", "Crystal Palace",
    "Brighton", "Bournemouth", "Fulham", "Wolves", "Everton",
    "Brentford", "Nottingham Forest", "Luton Town", "Burnley", "Sheffield United",
]

SEASON_START = datetime(2025, 8, 16, 12, 0, tzinfo=timezone.utc)


def standings_payload(teams):
    """football-data.org style payload with the teams in table order."""
    n = len(teams)
    table = []
    for position, team in enumerate(teams, start=1):
        won = n - position
        lost = position - 1
        table.append({
            "position": position,
            "team": {"id": position, "name": f"{team} FC", "shortName": team},
            "playedGames": won + lost,
            "won": won,
            "draw": 0,
            "lost": lost,
            "points": 3 * won,
            "goalsFor": 2 * won,
            "goalsAgainst": lost,
            "goalDifference": 2 * won - lost,
        })
    return {"competition": {"code": "PL"}, "standings": [{"type": "TOTAL", "table": table}]}


class FakeClock:
    """Advances one hour per call."""

    def __init__(self, start=SEASON_START):
        self.now = start

    def __call__(self):
        self.now += timedelta(hours=1)
        return self.now


@pytest.fixture
def teams():
    return list(TEAMS)


@pytest.fixture
def make_payload():
    return standings_payload


@pytest.fixture
def make_snapshot():
    def _make(teams=TEAMS):
        return build_snapshot(standings_payload(teams), captured_at=SEASON_START)
    return _make


@pytest.fixture
def clock():
    return FakeClock()
