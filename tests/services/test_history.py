"""
Unit tests for HistoryStore.
"""

import json

from plantdoc.models.diagnosis import (
    DiagnosisResult,
    HealthStatus,
    Prediction,
    SeverityLevel,
    SourceMode,
)
from plantdoc.services.history import HistoryStore, get_history_store


def _result(confidence=0.85):
    return DiagnosisResult(
        prediction=Prediction(
            class_index=1,
            class_identity="Apple___Black_rot",
            label="Apple Black Rot",
            confidence=confidence,
        ),
        severity=SeverityLevel.HIGH,
        source_mode=SourceMode.CAPTURED,
        health_status=HealthStatus.DISEASED,
    )


def test_empty_history(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"))
    assert store.entries() == []


def test_save_keeps_newest_first(tmp_path):
    store = HistoryStore(str(tmp_path / "data" / "history.json"))

    assert store.save(_result(0.75))
    assert store.save(_result(0.95))

    entries = store.entries()
    assert [entry.prediction.confidence for entry in entries] == [0.95, 0.75]
    assert entries[0].severity is SeverityLevel.HIGH


def test_history_is_trimmed_to_limit(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"), limit=3)
    for i in range(5):
        store.save(_result(0.5 + i / 10))

    entries = store.entries()
    assert len(entries) == 3
    assert entries[0].prediction.confidence == 0.9


def test_corrupt_history_reads_as_empty(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    store = HistoryStore(str(path))

    assert store.entries() == []
    assert store.save(_result())
    assert len(store.entries()) == 1


def test_malformed_entries_are_skipped(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps([{"prediction": "bogus"}, _result().model_dump(mode="json")]))

    assert len(HistoryStore(str(path)).entries()) == 1


def test_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")

    store = HistoryStore(str(blocker / "history.json"))

    assert store.save(_result()) is False


def test_clear(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"))
    store.save(_result())
    store.clear()
    store.clear()
    assert store.entries() == []


def test_get_history_store_uses_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("HISTORY_PATH", str(tmp_path / "h.json"))
    monkeypatch.setenv("HISTORY_LIMIT", "7")

    store = get_history_store()

    assert store.path == tmp_path / "h.json"
    assert get_history_store() is store
