"""
Tests for the prediction and history stores.
"""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest
from filelock import Timeout

from src.errors import InputInvariantViolation, PersistenceFailure
from src.storage import HistoryStore, PredictionStore

T0 = datetime(2025, 9, 1, 18, 0, tzinfo=timezone.utc)


def points_frame(timestamp, totals, snapshot_id="abc123"):
    return pd.DataFrame({
        'timestamp': [timestamp] * len(totals),
        'participant': list(totals),
        'total': list(totals.values()),
        'snapshot_id': [snapshot_id] * len(totals),
    })


class TestPredictionStore:
    """Tests for PredictionStore.load."""

    def test_loads_predictions_by_participant(self, tmp_path):
        path = tmp_path / "predictions.csv"
        path.write_text(
            "participant,team,position\n"
            "bob,Arsenal,2\n"
            "bob,Chelsea,1\n"
            "alice,Arsenal,1\n"
            "alice,Man City,2\n"
        )

        predictions = PredictionStore(path).load()

        assert list(predictions) == ["alice", "bob"]
        assert predictions["alice"] == {"Arsenal": 1, "Manchester City": 2}
        assert predictions["bob"] == {"Chelsea": 1, "Arsenal": 2}
        assert all(type(p) is int for p in predictions["alice"].values())

    def test_missing_file(self, tmp_path):
        with pytest.raises(PersistenceFailure, match="not found"):
            PredictionStore(tmp_path / "predictions.csv").load()

    def test_missing_column(self, tmp_path):
        path = tmp_path / "predictions.csv"
        path.write_text("participant,team\nalice,Arsenal\n")
        with pytest.raises(PersistenceFailure, match="position"):
            PredictionStore(path).load()

    def test_team_predicted_twice(self, tmp_path):
        path = tmp_path / "predictions.csv"
        path.write_text("participant,team,position\nalice,Arsenal,1\nalice,Arsenal,2\n")
        with pytest.raises(InputInvariantViolation, match="predicted twice"):
            PredictionStore(path).load()


class TestHistoryStore:
    """Tests for the append-only HistoryStore."""

    def test_empty_when_no_file(self, tmp_path):
        store = HistoryStore(tmp_path / "history.csv")

        assert store.load().empty
        assert store.latest_points() == {}

    def test_append_and_read_latest(self, tmp_path):
        store = HistoryStore(tmp_path / "history.csv")

        assert store.append_points(points_frame(T0, {"alice": 40, "bob": 35}, "s1")) == 2
        assert store.append_points(points_frame(T0 + timedelta(days=1), {"alice": 52, "bob": 35}, "s2")) == 2

        latest = store.latest_points()
        assert latest["alice"]["total"] == 52
        assert latest["alice"]["snapshot_id"] == "s2"
        assert latest["bob"]["timestamp"] == pd.Timestamp(T0 + timedelta(days=1))

    def test_existing_rows_preserved(self, tmp_path):
        store = HistoryStore(tmp_path / "history.csv")
        store.append_points(points_frame(T0, {"alice": 40}, "s1"))
        store.append_points(points_frame(T0 + timedelta(hours=2), {"alice": 44}, "s2"))

        history = store.load()
        assert history['total'].tolist() == [40, 44]
        assert history['snapshot_id'].tolist() == ["s1", "s2"]
        assert history['timestamp'].is_monotonic_increasing

    def test_rejects_timestamp_not_after_latest(self, tmp_path):
        path = tmp_path / "history.csv"
        store = HistoryStore(path)
        store.append_points(points_frame(T0, {"alice": 40, "bob": 30}))
        before = path.read_text()

        with pytest.raises(PersistenceFailure, match="not after"):
            store.append_points(points_frame(T0, {"alice": 41, "bob": 30}))

        assert path.read_text() == before

    def test_rejects_two_points_for_one_participant(self, tmp_path):
        store = HistoryStore(tmp_path / "history.csv")
        batch = pd.concat([points_frame(T0, {"alice": 1}), points_frame(T0, {"alice": 2})])

        with pytest.raises(PersistenceFailure, match="several points"):
            store.append_points(batch)
        assert not (tmp_path / "history.csv").exists()

    def test_rejects_batch_without_required_columns(self, tmp_path):
        store = HistoryStore(tmp_path / "history.csv")
        with pytest.raises(PersistenceFailure, match="missing columns"):
            store.append_points(pd.DataFrame({'participant': ["alice"], 'total': [1]}))

    def test_empty_batch_writes_nothing(self, tmp_path):
        store = HistoryStore(tmp_path / "history.csv")
        assert store.append_points(points_frame(T0, {})) == 0
        assert not (tmp_path / "history.csv").exists()

    def test_lock_excludes_second_holder(self, tmp_path):
        store = HistoryStore(tmp_path / "history.csv")

        with store.lock():
            with pytest.raises(Timeout):
                HistoryStore(store.path).lock().acquire(timeout=0)

        second = store.lock()
        second.acquire(timeout=0)
        assert second.is_locked
        second.release()

    def test_lock_creates_missing_folder(self, tmp_path):
        store = HistoryStore(tmp_path / "data" / "history.csv")

        with store.lock():
            assert store.path.parent.is_dir()
        assert not store.path.exists()
