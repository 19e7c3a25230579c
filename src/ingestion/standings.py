"""
League Standings Ingestion

Fetches the live league table from the standings provider and normalizes it
into an immutable StandingsSnapshot: one row per team with its position and
aggregate stats, ordered by position.

Accepted payload shapes:
- football-data.org v4: {"standings": [{"type": "TOTAL", "table": [...]}]}
- a list of team records (list order is the table order unless records
  carry a "position")
- a mapping of team name -> stats (no order: ranked by points, then goal
  difference, then goals scored, then team name)

Usage:
    from src.ingestion.standings import fetch_standings, build_snapshot
    snapshot = build_snapshot(fetch_standings())
"""

import hashlib
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from src.config import (
    COMPETITION_CODE,
    FOOTBALL_DATA_API_TOKEN,
    MAX_INPUT_SIZE,
    REQUEST_TIMEOUT,
    STANDINGS_API_URL,
)
from src.errors import InputInvariantViolation, UpstreamUnavailable
from src.utils import normalize_team_name, setup_logging, validate_input_size

# --- Module Logger ---
logger = setup_logging(__name__)

SNAPSHOT_COLUMNS = [
    'position', 'team', 'played', 'won', 'drawn', 'lost',
    'goals_for', 'goals_against', 'goal_difference', 'points',
]

# Canonical stat name -> accepted provider field names
FIELD_ALIASES = {
    'played': ('playedGames', 'played', 'played_games'),
    'won': ('won', 'wins'),
    'drawn': ('draw', 'drawn', 'draws'),
    'lost': ('lost', 'losses'),
    'goals_for': ('goalsFor', 'goals_for'),
    'goals_against': ('goalsAgainst', 'goals_against'),
    'goal_difference': ('goalDifference', 'goal_difference'),
    'points': ('points', 'pts'),
}

# Stats are stored as int64
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

FetchJson = Callable[[str, Mapping[str, str], float], Any]


@dataclass(frozen=True, eq=False)
class StandingsSnapshot:
    """Point-in-time league table. Never mutated after it is built."""

    table: pd.DataFrame
    captured_at: datetime
    snapshot_id: str

    def __len__(self) -> int:
        return len(self.table)

    def positions(self) -> dict[str, int]:
        """Team -> actual position."""
        return {
            team: int(position)
            for team, position in zip(self.table['team'], self.table['position'])
        }

    def teams(self) -> list[str]:
        return list(self.table['team'])


# --- Provider ---
def requests_fetch_json(url: str, headers: Mapping[str, str], timeout: float) -> Any:
    """Default standings fetch using requests."""
    response = requests.get(url, headers=dict(headers), timeout=timeout)
    response.raise_for_status()
    return response.json()


def fetch_standings(
    competition: str = COMPETITION_CODE,
    api_token: str = FOOTBALL_DATA_API_TOKEN,
    *,
    base_url: str = STANDINGS_API_URL,
    fetch_json: FetchJson = requests_fetch_json,
    timeout: float = REQUEST_TIMEOUT,
) -> Any:
    """
    Fetch the raw standings payload for a competition.

    Args:
        competition: Provider competition code (e.g. "PL")
        api_token: Provider API token, sent as X-Auth-Token when set
        base_url: Provider base URL
        fetch_json: Callable performing the HTTP request and JSON decode
        timeout: Request timeout in seconds

    Returns:
        Decoded JSON payload

    Raises:
        UpstreamUnavailable: If the request fails or the body is not JSON
    """
    url = f"{base_url.rstrip('/')}/competitions/{competition}/standings"
    headers = {"X-Auth-Token": api_token} if api_token else {}

    logger.info(f"Fetching standings for {competition} from {url}")
    try:
        return fetch_json(url, headers, timeout)
    except requests.RequestException as e:
        raise UpstreamUnavailable(f"Standings request to {url} failed: {e}") from e
    except ValueError as e:
        raise UpstreamUnavailable(f"Standings response from {url} is not valid JSON: {e}") from e


def load_standings_file(path: Path) -> Any:
    """
    Load a saved standings payload from a JSON file (manual import).

    Raises:
        UpstreamUnavailable: If the file is missing, too large, or not JSON
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        validate_input_size(text, MAX_INPUT_SIZE)
        payload = json.loads(text)
    except (OSError, ValueError) as e:
        raise UpstreamUnavailable(f"Could not load standings file {path}: {e}") from e

    logger.info(f"Loaded standings payload from {path}")
    return payload


# --- Normalization ---
def _extract_records(raw: Any) -> tuple[list[dict], bool]:
    """Return (team records, whether the records carry table order)."""
    if isinstance(raw, list):
        return raw, True

    if not isinstance(raw, dict):
        raise UpstreamUnavailable(f"Unrecognized standings payload type: {type(raw).__name__}")

    if 'standings' in raw:
        groups = raw['standings']
        if not isinstance(groups, list) or not groups:
            raise UpstreamUnavailable("Standings payload has no standings groups")
        total = next((g for g in groups if isinstance(g, dict) and g.get('type') == 'TOTAL'), groups[0])
        if not isinstance(total, dict) or not isinstance(total.get('table'), list):
            raise UpstreamUnavailable("Standings group has no table")
        return total['table'], True

    if isinstance(raw.get('table'), list):
        return raw['table'], True

    if raw and all(isinstance(stats, dict) for stats in raw.values()):
        return [{**stats, 'team': team} for team, stats in raw.items()], False

    raise UpstreamUnavailable("Unrecognized standings payload shape")


def _team_name(record: dict) -> str:
    team = record.get('team', record.get('name'))
    if isinstance(team, dict):
        team = team.get('shortName') or team.get('name')
    if not isinstance(team, str) or not team.strip():
        raise UpstreamUnavailable(f"Standings record without a team name: {record!r}")
    return normalize_team_name(team)


def _to_int(value: Any, field: str, team: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise UpstreamUnavailable(f"{team}: field '{field}' is not an integer: {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise UpstreamUnavailable(f"{team}: field '{field}' is not an integer: {value!r}") from e
    if not INT64_MIN <= number <= INT64_MAX:
        raise UpstreamUnavailable(f"{team}: field '{field}' is out of range: {value!r}")
    return number


def _stat(record: dict, stat: str, team: str) -> int | None:
    for field in FIELD_ALIASES[stat]:
        if field in record:
            return _to_int(record[field], field, team)
    return None


def _normalize_record(record: Any) -> dict:
    if not isinstance(record, dict):
        raise UpstreamUnavailable(f"Standings record is not an object: {record!r}")

    team = _team_name(record)
    row = {'team': team}
    for stat in FIELD_ALIASES:
        value = _stat(record, stat, team)
        if value is None and stat != 'goal_difference':
            raise UpstreamUnavailable(f"{team}: missing required field '{stat}'")
        row[stat] = value

    if row['goal_difference'] is None:
        row['goal_difference'] = _to_int(row['goals_for'] - row['goals_against'], 'goal_difference', team)

    if 'position' in record:
        row['position'] = _to_int(record['position'], 'position', team)
    return row


def _assign_positions(rows: list[dict], ordered: bool) -> list[dict]:
    with_position = sum('position' in row for row in rows)

    if ordered and with_position == len(rows):
        return rows
    if with_position:
        raise UpstreamUnavailable(
            f"Only {with_position} of {len(rows)} standings records carry a position"
        )

    if not ordered:
        rows = sorted(
            rows,
            key=lambda r: (-r['points'], -r['goal_difference'], -r['goals_for'], r['team'].casefold()),
        )
    for position, row in enumerate(rows, start=1):
        row['position'] = position
    return rows


def snapshot_fingerprint(table: pd.DataFrame) -> str:
    """SHA-1 of the table content; identical standings give identical ids."""
    canonical = table[SNAPSHOT_COLUMNS].to_csv(index=False)
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def build_snapshot(raw: Any, captured_at: datetime | None = None) -> StandingsSnapshot:
    """
    Normalize a raw provider payload into a StandingsSnapshot.

    Positions are taken as given. Use validate_snapshot() to check that they
    form a permutation of 1..N before scoring.

    Args:
        raw: Decoded provider payload
        captured_at: Capture time (default: now, UTC)

    Returns:
        StandingsSnapshot ordered by position

    Raises:
        UpstreamUnavailable: If the payload is malformed or empty
    """
    records, ordered = _extract_records(raw)
    if not records:
        raise UpstreamUnavailable("Standings table is empty")

    rows = _assign_positions([_normalize_record(r) for r in records], ordered)

    table = pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)
    table = table.sort_values(['position', 'team'], kind='stable').reset_index(drop=True)
    try:
        table = table.astype({c: 'int64' for c in SNAPSHOT_COLUMNS if c != 'team'})
    except (OverflowError, TypeError, ValueError) as e:
        raise UpstreamUnavailable(f"Standings stats do not fit the table: {e}") from e

    snapshot = StandingsSnapshot(
        table=table,
        captured_at=captured_at or datetime.now(timezone.utc),
        snapshot_id=snapshot_fingerprint(table),
    )
    logger.info(f"Built standings snapshot {snapshot.snapshot_id[:10]} with {len(table)} teams")
    return snapshot


def validate_snapshot(snapshot: StandingsSnapshot) -> None:
    """
    Check that snapshot positions form a permutation of 1..N with unique teams.

    Raises:
        InputInvariantViolation: If positions or teams are duplicated or have gaps
    """
    table = snapshot.table
    n = len(table)

    dup_teams = table.loc[table['team'].duplicated(), 'team'].unique()
    if len(dup_teams) > 0:
        raise InputInvariantViolation(f"Snapshot lists teams more than once: {list(dup_teams)}")

    positions = set(table['position'].tolist())
    expected = set(range(1, n + 1))
    if len(positions) != n or positions != expected:
        dup_positions = table.loc[table['position'].duplicated(), 'position'].unique()
        msg = f"Snapshot positions are not a permutation of 1..{n}."
        if len(dup_positions) > 0:
            msg += f" Duplicate positions: {sorted(int(p) for p in dup_positions)}"
        missing = expected - positions
        if missing:
            msg += f" Missing positions: {sorted(missing)}"
        raise InputInvariantViolation(msg)
