"""
Score Reconciliation

Compares every participant's prediction against a fresh standings snapshot
and appends a new point to the score history when totals have moved.

One run walks IDLE -> FETCHING -> SCORING -> DECIDING -> PERSISTING -> IDLE,
dropping to FAILED on any fatal error. Nothing is written before PERSISTING,
so a failed run leaves history as it was. When any total changed, every
tracked participant gets a point with the same timestamp, keeping the series
aligned. Runs never overlap: a trigger that arrives mid-run is rejected with
status "busy", whether it comes from the same service or from another
process holding the history file lock. Retrying is left to whoever calls
reconcile().

Usage:
    python -m src.scoring.reconcile                  # fetch live standings
    python -m src.scoring.reconcile standings.json   # use a saved payload
    OR
    from src.scoring.reconcile import ReconciliationService
    result = ReconciliationService().reconcile()
"""

import sys
from pathlib import Path

# Enable both `python src/scoring/reconcile.py` and `python -m src.scoring.reconcile` execution.
# Required for src.config/src.utils imports to resolve correctly.
_project_root = str(Path(__file__).parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import threading
from datetime import datetime, timezone
from enum import Enum
from functools import partial

import pandas as pd
from filelock import Timeout

from src.config import TABLE_SIZE
from src.errors import (
    InputInvariantViolation,
    PersistenceFailure,
    ReconciliationError,
    UpstreamUnavailable,
)
from src.ingestion.standings import (
    build_snapshot,
    fetch_standings,
    load_standings_file,
    validate_snapshot,
)
from src.scoring.leaderboard import build_leaderboard
from src.scoring.predictions import score_prediction, validate_prediction
from src.storage import HistoryStore, PredictionStore
from src.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

STATUS_UPDATED = "updated"
STATUS_UNCHANGED = "unchanged"
STATUS_FAILED = "failed"
STATUS_BUSY = "busy"


class ReconciliationState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SCORING = "scoring"
    DECIDING = "deciding"
    PERSISTING = "persisting"
    FAILED = "failed"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def totals_changed(totals: dict, latest_points: dict) -> bool:
    """
    True when the new totals differ from the latest recorded history.

    A participant joining or leaving the tracked set counts as a change.
    """
    if set(totals) != set(latest_points):
        return True
    return any(totals[p] != latest_points[p]['total'] for p in totals)


class ReconciliationService:
    """
    Single entry point that brings the score history up to date.

    Args:
        fetch_standings: Callable returning a raw standings payload
        prediction_store: Source of participant predictions (read-only)
        history_store: Append-only score history
        clock: Callable returning the current time (timezone-aware)
        table_size: Number of teams in the league; every prediction must rank them all
    """

    def __init__(self, fetch_standings=fetch_standings, prediction_store=None,
                 history_store=None, clock=utc_now, table_size=TABLE_SIZE):
        self.fetch_standings = fetch_standings
        self.prediction_store = prediction_store or PredictionStore()
        self.history_store = history_store or HistoryStore()
        self.clock = clock
        self.table_size = table_size
        self.state = ReconciliationState.IDLE
        self._in_flight = threading.Lock()

    def _enter(self, state: ReconciliationState) -> None:
        logger.debug(f"Reconciliation {self.state.value} -> {state.value}")
        self.state = state

    def _fetch(self):
        try:
            return self.fetch_standings()
        except (OSError, ValueError) as e:
            raise UpstreamUnavailable(f"Standings provider failed: {e}") from e

    def reconcile(self) -> dict:
        """
        Run one reconciliation.

        Returns:
            Dictionary with:
                - status: "updated", "unchanged", "failed" or "busy"
                - reason: human-readable explanation
                - error: exception class name for failed runs, else None
                - warnings: list of UnresolvedTeam
                - leaderboard: ranked DataFrame (None if scoring didn't finish)
                - scores: participant -> score_prediction() result
                - snapshot_id: fingerprint of the standings used
                - timestamp: timestamp of the appended points, if any
                - points_written: number of history points appended
        """
        if not self._in_flight.acquire(blocking=False):
            logger.warning("Reconciliation already in progress, trigger rejected")
            return self._result(STATUS_BUSY, "Reconciliation already in progress")

        try:
            # Other processes (cron, dashboard) share the history file
            try:
                history_lock = self.history_store.lock()
                history_lock.acquire(timeout=0)
            except Timeout:
                logger.warning(f"History {self.history_store.path} is locked by another run, trigger rejected")
                return self._result(STATUS_BUSY, "Reconciliation already in progress in another process")
            except OSError as e:
                self._enter(ReconciliationState.FAILED)
                logger.error(f"Could not lock history {self.history_store.path}: {e}")
                return self._result(
                    STATUS_FAILED, f"Could not lock history: {e}", error=PersistenceFailure.__name__
                )

            try:
                return self._run()
            finally:
                history_lock.release()
        finally:
            self._in_flight.release()

    def _result(self, status: str, reason: str, **fields) -> dict:
        result = {
            'status': status,
            'reason': reason,
            'error': None,
            'warnings': [],
            'leaderboard': None,
            'scores': {},
            'snapshot_id': None,
            'timestamp': None,
            'points_written': 0,
        }
        result.update(fields)
        return result

    def _run(self) -> dict:
        warnings = []
        scores = {}
        leaderboard = None
        snapshot_id = None

        try:
            # Step 1: Fetch standings
            self._enter(ReconciliationState.FETCHING)
            snapshot = build_snapshot(self._fetch(), captured_at=self.clock())
            snapshot_id = snapshot.snapshot_id

            # Step 2: Validate everything, then score every participant
            self._enter(ReconciliationState.SCORING)
            validate_snapshot(snapshot)
            predictions = self.prediction_store.load()
            if not predictions:
                raise InputInvariantViolation("No predictions to score")
            for participant, prediction in predictions.items():
                validate_prediction(prediction, participant, team_count=self.table_size)

            for participant in sorted(predictions):
                scores[participant] = score_prediction(predictions[participant], snapshot, participant)
                warnings.extend(scores[participant]['warnings'])

            for warning in warnings:
                logger.warning(f"  Warning: {warning}")

            # Step 3: Compare against the latest history
            self._enter(ReconciliationState.DECIDING)
            totals = {p: s['total'] for p, s in scores.items()}
            latest = self.history_store.latest_points()
            leaderboard = build_leaderboard(
                totals, previous_totals={p: point['total'] for p, point in latest.items()}
            )

            if not totals_changed(totals, latest):
                logger.info(f"Totals unchanged for snapshot {snapshot_id[:10]}, history not updated")
                self._enter(ReconciliationState.IDLE)
                return self._result(
                    STATUS_UNCHANGED, "Totals unchanged since the last history point",
                    warnings=warnings, leaderboard=leaderboard, scores=scores,
                    snapshot_id=snapshot_id,
                )

            # Step 4: Append one aligned point per participant
            self._enter(ReconciliationState.PERSISTING)
            timestamp = snapshot.captured_at
            points = pd.DataFrame({
                'timestamp': [timestamp] * len(totals),
                'participant': list(totals),
                'total': list(totals.values()),
                'snapshot_id': [snapshot_id] * len(totals),
            })
            written = self.history_store.append_points(points)

        except ReconciliationError as e:
            failed_in = self.state
            self._enter(ReconciliationState.FAILED)
            logger.error(f"Reconciliation failed while {failed_in.value}: {e}")
            return self._result(
                STATUS_FAILED, str(e), error=type(e).__name__,
                warnings=warnings, snapshot_id=snapshot_id,
            )
        except Exception:
            self._enter(ReconciliationState.FAILED)
            raise

        logger.info(f"Recorded {written} history points at {timestamp.isoformat()}")
        self._enter(ReconciliationState.IDLE)
        return self._result(
            STATUS_UPDATED, f"Appended {written} history points",
            warnings=warnings, leaderboard=leaderboard, scores=scores,
            snapshot_id=snapshot_id, timestamp=timestamp, points_written=written,
        )


def main(argv: list[str] | None = None) -> dict:
    """Run a single reconciliation from the command line (cron entry point)."""
    argv = sys.argv[1:] if argv is None else argv

    fetch = partial(load_standings_file, Path(argv[0])) if argv else fetch_standings
    service = ReconciliationService(fetch_standings=fetch)

    logger.info("=" * 60)
    logger.info("Reconciling predictions against current standings")
    logger.info("=" * 60)
    result = service.reconcile()

    if result['leaderboard'] is not None and not result['leaderboard'].empty:
        logger.info("Leaderboard:")
        logger.info("\n" + result['leaderboard'].to_string(index=False))
    logger.info(f"Result: {result['status']} ({result['reason']})")

    return result


if __name__ == "__main__":
    outcome = main()
    sys.exit(1 if outcome['status'] == STATUS_FAILED else 0)
