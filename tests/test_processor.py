import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

import pytest

from app.schemas import ProcessingStatus
from datastore.result_store import LocalResultStore
from services.exceptions import LogFileNotFound, LogSourceError
from services.processor import ProcessorService
from storage.log_directory import LocalLogDirectory

GOOD_LOG = """reference 70.0 45.0
thermometer temp-1
2007-04-05T22:01 69.5
2007-04-05T22:02 70.1
2007-04-05T22:03 71.3
humidity hum-1
2007-04-05T22:04 45.2
2007-04-05T22:05 45.3
"""


def _write_log(directory: LocalLogDirectory, name: str, content: str) -> Path:
    directory.root_path.mkdir(parents=True, exist_ok=True)
    path = directory.root_path / name
    path.write_text(content, encoding="utf-8")
    return path


def _write_logs(directory: LocalLogDirectory, contents: dict) -> None:
    """Write files oldest first so modification times follow insertion order."""
    for index, (name, text) in enumerate(contents.items()):
        path = _write_log(directory, name, text)
        stamp = 1_700_000_000 + index
        os.utime(path, (stamp, stamp))


@pytest.fixture()
def directory(tmp_path: Path) -> LocalLogDirectory:
    return LocalLogDirectory(root_path=tmp_path / "logs")


@pytest.fixture()
def store(tmp_path: Path) -> LocalResultStore:
    return LocalResultStore(name="test", persistence_path=tmp_path / "results.json")


def test_run_once_grades_oldest_pending_file(directory, store) -> None:
    _write_logs(
        directory,
        {"log-1.txt": GOOD_LOG, "log-2.txt": GOOD_LOG, "log-3.txt": "reference 1\n"},
    )
    store.set("log-1.txt", "{}")
    processor = ProcessorService(source=directory, store=store)

    result = processor.run_once()

    assert result.status is ProcessingStatus.processed
    assert result.file_name == "log-2.txt"
    assert result.pending_count == 2
    assert json.loads(store.get("log-2.txt")) == {"hum-1": "keep", "temp-1": "ultra precise"}
    assert store.get("log-3.txt") is None


def test_run_once_stores_error_text_for_malformed_file(directory, store) -> None:
    _write_logs(directory, {"log-1.txt": "reference 1\nthermometer t\n1 70\n"})
    processor = ProcessorService(source=directory, store=store)

    result = processor.run_once()

    assert result.status is ProcessingStatus.failed
    assert result.payload == "reference line has incorrect number of fields"
    assert store.get("log-1.txt") == "reference line has incorrect number of fields"


def test_failed_file_is_not_picked_up_again(directory, store) -> None:
    _write_logs(directory, {"log-1.txt": "reference warm 45\n"})
    processor = ProcessorService(source=directory, store=store)

    first = processor.run_once()
    second = processor.run_once()

    assert first.status is ProcessingStatus.failed
    assert second.status is ProcessingStatus.idle
    assert processor.pending_files() == []


def test_successive_cycles_walk_from_oldest_to_newest(directory, store) -> None:
    _write_logs(directory, {"log-1.txt": GOOD_LOG, "log-2.txt": GOOD_LOG, "log-3.txt": GOOD_LOG})
    processor = ProcessorService(source=directory, store=store)

    names = [processor.run_once().file_name for _ in range(4)]

    assert names == ["log-1.txt", "log-2.txt", "log-3.txt", None]


def test_run_once_without_files_is_idle(directory, store) -> None:
    directory.root_path.mkdir(parents=True)
    processor = ProcessorService(source=directory, store=store)

    result = processor.run_once()

    assert result.status is ProcessingStatus.idle
    assert result.file_name is None
    assert store.keys() == []


def test_empty_log_stores_empty_object(directory, store) -> None:
    _write_logs(directory, {"log-1.txt": "reference 70 45\n"})
    processor = ProcessorService(source=directory, store=store)

    result = processor.run_once()

    assert result.status is ProcessingStatus.processed
    assert store.get("log-1.txt") == "{}"


class VanishingSource:
    """Lists a file but fails to deliver it."""

    prefix = "log-"

    def list_log_files(self) -> Iterator[str]:
        return iter(["log-2.txt", "log-1.txt"])

    @contextmanager
    def open_text(self, name: str):
        raise LogFileNotFound(f"{name} not found")
        yield  # pragma: no cover


def test_fetch_failure_is_not_stored(store) -> None:
    processor = ProcessorService(source=VanishingSource(), store=store)  # type: ignore[arg-type]

    with pytest.raises(LogFileNotFound):
        processor.run_once()

    assert store.keys() == []


def test_listing_failure_propagates(tmp_path, store) -> None:
    processor = ProcessorService(
        source=LocalLogDirectory(root_path=tmp_path / "missing"), store=store
    )

    with pytest.raises(LogSourceError):
        processor.run_once()


class RacingStore(LocalResultStore):
    """Marks a file processed between discovery and selection."""

    def __init__(self, name: str, racing_key: str) -> None:
        super().__init__(name=name)
        self.racing_key = racing_key
        self.lookups: List[str] = []

    def contains(self, key: str) -> bool:
        self.lookups.append(key)
        if key == self.racing_key and self.lookups.count(key) == 2:
            self.set(key, "{}")
        return super().contains(key)


def test_file_finished_elsewhere_is_skipped(directory) -> None:
    _write_logs(directory, {"log-1.txt": GOOD_LOG, "log-2.txt": GOOD_LOG})
    store = RacingStore(name="race", racing_key="log-1.txt")
    processor = ProcessorService(source=directory, store=store)

    result = processor.run_once()

    assert result.file_name == "log-2.txt"
    assert store.get("log-1.txt") == "{}"


def test_fetch_result_distinguishes_payload_shape(store) -> None:
    store.set("log-1.txt", '{\n  "t": "precise"\n}')
    store.set("log-2.txt", "failed converting current reading to float: oops")
    processor = ProcessorService(source=VanishingSource(), store=store)  # type: ignore[arg-type]

    ok = processor.fetch_result("log-1.txt")
    failed = processor.fetch_result("log-2.txt")

    assert ok.status is ProcessingStatus.processed
    assert ok.brandings == {"t": "precise"}
    assert failed.status is ProcessingStatus.failed
    assert failed.error == "failed converting current reading to float: oops"
    with pytest.raises(KeyError):
        processor.fetch_result("log-3.txt")


def test_grade_lines_does_not_touch_store(store) -> None:
    processor = ProcessorService(source=VanishingSource(), store=store)  # type: ignore[arg-type]

    output = processor.grade_lines(GOOD_LOG.splitlines())

    assert json.loads(output) == {"hum-1": "keep", "temp-1": "ultra precise"}
    assert store.keys() == []


def test_processor_logs_outcome_with_context(directory, store, caplog) -> None:
    _write_logs(directory, {"log-1.txt": "reference 1\n"})
    processor = ProcessorService(source=directory, store=store)

    with caplog.at_level(logging.INFO):
        processor.run_once()

    records = [record for record in caplog.records if record.name == "services.processor"]
    assert any(getattr(record, "file_name", None) == "log-1.txt" for record in records)
    assert any(getattr(record, "status", None) == "failed" for record in records)
    assert any(
        "incorrect number of fields" in (getattr(record, "reason", "") or "")
        for record in records
    )


def test_processor_logs_sensor_count_on_success(directory, store, caplog) -> None:
    _write_logs(directory, {"log-1.txt": GOOD_LOG})
    processor = ProcessorService(source=directory, store=store)

    with caplog.at_level(logging.INFO):
        processor.run_once()

    stored = [
        record
        for record in caplog.records
        if record.name == "services.processor" and record.getMessage() == "Stored log file outcome"
    ]
    assert len(stored) == 1
    assert stored[0].sensor_count == 2
    assert stored[0].status == "processed"
