"""
CSV-backed stores for predictions and score history.

- PredictionStore: read-only pre-season predictions, one row per
  (participant, team, position).
- HistoryStore: append-only score history, one row per
  (timestamp, participant, total, snapshot_id). Appends rewrite the file
  atomically, so a batch is either fully committed or not at all.
"""

from pathlib import Path

import pandas as pd
from filelock import FileLock

from src.config import HISTORY_COLUMNS, HISTORY_FILE, PREDICTION_COLUMNS, PREDICTIONS_FILE
from src.errors import InputInvariantViolation, PersistenceFailure
from src.utils import atomic_write_csv, normalize_team_name, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


def _read_csv(path: Path, columns: list[str], dtype: dict | None = None) -> pd.DataFrame:
    try:
        df = pd.read_csv(path, dtype=dtype)
    except (OSError, ValueError) as e:
        raise PersistenceFailure(f"Could not read {path}: {e}") from e

    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise PersistenceFailure(f"{path} is missing columns: {missing}")
    return df


def _as_position(value):
    # read_csv yields floats when a column has gaps; keep anything else as-is
    # so prediction validation can report it
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if hasattr(value, 'item') and not isinstance(value, float):
        return value.item()
    return value


class PredictionStore:
    """Read-only access to the participants' pre-season predictions."""

    def __init__(self, path: Path = PREDICTIONS_FILE):
        self.path = Path(path)

    def load(self) -> dict[str, dict[str, int]]:
        """
        Load every participant's prediction.

        Returns:
            Mapping of participant -> {team: predicted position}

        Raises:
            PersistenceFailure: If the file is missing or unreadable
            InputInvariantViolation: If a participant lists a team twice
        """
        if not self.path.exists():
            raise PersistenceFailure(f"Predictions file not found: {self.path}")

        df = _read_csv(self.path, PREDICTION_COLUMNS, dtype={'participant': str, 'team': str})
        predictions = {}

        for participant, group in df.groupby('participant', sort=True):
            participant = str(participant)
            prediction = {}
            for team, position in zip(group['team'], group['position']):
                team = normalize_team_name(team)
                if team in prediction:
                    raise InputInvariantViolation(f"{participant}: team '{team}' predicted twice")
                prediction[team] = _as_position(position)
            predictions[participant] = prediction

        logger.info(f"Loaded predictions for {len(predictions)} participants from {self.path}")
        return predictions


class HistoryStore:
    """Append-only score history. Existing rows are never edited or removed."""

    def __init__(self, path: Path = HISTORY_FILE):
        self.path = Path(path)

    def lock(self) -> FileLock:
        """
        Inter-process lock guarding the history file.

        Hold it across read-decide-append so runs in different processes
        (cron and dashboard) never append against a stale view. Each call
        returns a fresh lock object.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(self.path.with_name(self.path.name + ".lock"))

    def load(self) -> pd.DataFrame:
        """Load the full history ordered by timestamp (empty frame if none yet)."""
        if not self.path.exists():
            df = pd.DataFrame(columns=HISTORY_COLUMNS)
            df['timestamp'] = pd.to_datetime(df['timestamp'], utc=True)
            return df

        df = _read_csv(
            self.path, HISTORY_COLUMNS, dtype={'participant': str, 'snapshot_id': str}
        )[HISTORY_COLUMNS].copy()
        try:
            df['timestamp'] = pd.to_datetime(df['timestamp'], utc=True, format='ISO8601')
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(f"{self.path} has unparseable timestamps: {e}") from e
        df['participant'] = df['participant'].astype(str)
        df['total'] = df['total'].astype('int64')
        return df.sort_values(['timestamp', 'participant'], kind='stable').reset_index(drop=True)

    def latest_points(self) -> dict[str, dict]:
        """
        Most recent history point per participant.

        Returns:
            Mapping of participant -> {'total', 'timestamp', 'snapshot_id'}
        """
        df = self.load()
        if df.empty:
            return {}

        latest = df.loc[df.groupby('participant')['timestamp'].idxmax()]
        return {
            row.participant: {
                'total': int(row.total),
                'timestamp': row.timestamp,
                'snapshot_id': row.snapshot_id,
            }
            for row in latest.itertuples(index=False)
        }

    def append_points(self, points: pd.DataFrame) -> int:
        """
        Append a batch of history points.

        The batch must hold at most one row per participant, and each row's
        timestamp must be later than that participant's latest point.
        Callers that decide on a batch from latest_points() should hold
        lock() until the append returns.

        Args:
            points: DataFrame with columns timestamp, participant, total, snapshot_id

        Returns:
            Number of rows appended

        Raises:
            PersistenceFailure: If the batch is rejected or the write fails.
                The history file is left untouched.
        """
        missing = [c for c in HISTORY_COLUMNS if c not in points.columns]
        if missing:
            raise PersistenceFailure(f"History batch is missing columns: {missing}")
        if points.empty:
            logger.debug("Empty history batch, nothing to append")
            return 0

        new = points[HISTORY_COLUMNS].copy()
        new['timestamp'] = pd.to_datetime(new['timestamp'], utc=True)
        new['participant'] = new['participant'].astype(str)

        dup = new.loc[new['participant'].duplicated(), 'participant'].unique()
        if len(dup) > 0:
            raise PersistenceFailure(f"History batch has several points for: {list(dup)}")

        existing = self.load()
        latest = existing.groupby('participant')['timestamp'].max().to_dict()
        for row in new.itertuples(index=False):
            previous = latest.get(row.participant)
            if previous is not None and row.timestamp <= previous:
                raise PersistenceFailure(
                    f"History point for {row.participant} at {row.timestamp} "
                    f"is not after the latest point at {previous}"
                )

        combined = new if existing.empty else pd.concat([existing, new], ignore_index=True)
        out = combined.copy()
        out['timestamp'] = out['timestamp'].map(lambda ts: ts.isoformat())

        try:
            atomic_write_csv(out, self.path, index=False)
        except OSError as e:
            raise PersistenceFailure(f"Could not write history to {self.path}: {e}") from e

        logger.info(f"Appended {len(new)} history points to {self.path}")
        return len(new)
