from __future__ import annotations

import json
from typing import Any, Dict

import pytest
from typer.testing import CliRunner

from app.schemas import CycleResult, ProcessingStatus
from cli.app import app
from services.exceptions import LogSourceError, ResultStoreError


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.requested: list[str] = []
        self.result_payload: Dict[str, Any] = {
            "file_name": "log-1.txt",
            "status": "processed",
            "brandings": {"temp-1": "precise", "hum-1": "keep"},
            "error": None,
        }
        self.closed = False

    def get_result(self, file_name: str) -> Dict[str, Any]:
        self.requested.append(file_name)
        payload = self.result_payload.copy()
        payload["file_name"] = file_name
        return payload

    def get_pending(self) -> Dict[str, Any]:
        return {"files": ["log-3.txt", "log-2.txt"], "oldest": "log-2.txt"}

    def process_next(self) -> Dict[str, Any]:
        return {
            "status": "processed",
            "file_name": "log-2.txt",
            "payload": "{}",
            "pending_count": 2,
            "processing_ms": 3,
        }

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_grade_prints_sorted_json(runner: CliRunner, stub: StubClient, tmp_path) -> None:
    log_path = tmp_path / "log-1.txt"
    log_path.write_text(
        "reference 100 45\n"
        "thermometer t-2\n1 100\n2 100.1\n3 99.9\n"
        "humidity h-1\n1 45.5\n"
    )

    result = runner.invoke(app, ["grade", str(log_path)])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"h-1": "discard", "t-2": "ultra precise"}
    assert result.stdout.index('"h-1"') < result.stdout.index('"t-2"')
    assert stub.closed is True


def test_grade_without_sensors_prints_empty_object(runner: CliRunner, stub: StubClient, tmp_path) -> None:
    log_path = tmp_path / "log-1.txt"
    log_path.write_text("reference 100 45\n")

    result = runner.invoke(app, ["grade", str(log_path)])

    assert result.exit_code == 0
    assert result.stdout.strip() == "{}"


def test_grade_reports_parse_errors(runner: CliRunner, stub: StubClient, tmp_path) -> None:
    log_path = tmp_path / "log-1.txt"
    log_path.write_text("reference 1\n")

    result = runner.invoke(app, ["grade", str(log_path)])

    assert result.exit_code == 1
    assert "reference line has incorrect number of fields" in result.output


def test_result_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["--base-url", "http://grader:9000/", "result", "log-7.txt"])

    assert result.exit_code == 0
    assert "file_name: log-7.txt" in result.stdout
    assert "  - hum-1: keep" in result.stdout
    assert stub.requested == ["log-7.txt"]
    assert stub.config.base_url == "http://grader:9000"


def test_result_command_renders_error(runner: CliRunner, stub: StubClient) -> None:
    stub.result_payload = {
        "file_name": "log-1.txt",
        "status": "failed",
        "brandings": {},
        "error": "failed converting reference humidity to float",
    }

    result = runner.invoke(app, ["result", "log-1.txt"])

    assert result.exit_code == 0
    assert "status: failed" in result.stdout
    assert "failed converting reference humidity to float" in result.stdout


def test_pending_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["pending"])

    assert result.exit_code == 0
    assert "  - log-3.txt" in result.stdout
    assert "next: log-2.txt" in result.stdout


def test_process_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["process"])

    assert result.exit_code == 0
    assert "file_name: log-2.txt" in result.stdout


class StubStore:
    def __init__(self, reachable: bool = True) -> None:
        self.reachable = reachable
        self.pinged = False

    def ping(self) -> bool:
        self.pinged = True
        if not self.reachable:
            raise ResultStoreError("Error connecting to redis: Connection refused")
        return True


class StubProcessor:
    def __init__(self, store: StubStore | None = None) -> None:
        self.store = store or StubStore()


class StubPoller:
    instances: list["StubPoller"] = []

    def __init__(self, processor, interval: float) -> None:
        self.processor = processor
        self.interval = interval
        self.ran = False
        StubPoller.instances.append(self)

    def run_cycle(self):
        return CycleResult(status=ProcessingStatus.idle)

    def run(self) -> None:
        self.ran = True


def test_run_once(monkeypatch, runner: CliRunner, stub: StubClient) -> None:
    StubPoller.instances.clear()
    monkeypatch.setattr("cli.app.build_default_processor", StubProcessor)
    monkeypatch.setattr("cli.app.Poller", StubPoller)
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)

    result = runner.invoke(app, ["run", "--once", "--interval", "2"])

    assert result.exit_code == 0
    assert "status: idle" in result.stdout
    assert StubPoller.instances[0].interval == 2.0
    assert StubPoller.instances[0].ran is False


def test_run_loops_until_stopped(monkeypatch, runner: CliRunner, stub: StubClient) -> None:
    StubPoller.instances.clear()
    monkeypatch.setattr("cli.app.build_default_processor", StubProcessor)
    monkeypatch.setattr("cli.app.Poller", StubPoller)
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)

    result = runner.invoke(app, ["run", "--interval", "5"])

    assert result.exit_code == 0
    assert StubPoller.instances[0].ran is True


def test_run_without_log_directory(monkeypatch, runner: CliRunner, stub: StubClient) -> None:
    def unconfigured():
        raise LogSourceError("Remote directory with log files not provided.")

    monkeypatch.setattr("cli.app.build_default_processor", unconfigured)
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)

    result = runner.invoke(app, ["run", "--once"])

    assert result.exit_code == 1
    assert "not provided" in result.output


def test_run_checks_store_before_polling(monkeypatch, runner: CliRunner, stub: StubClient) -> None:
    StubPoller.instances.clear()
    processor = StubProcessor(StubStore(reachable=False))
    monkeypatch.setattr("cli.app.build_default_processor", lambda: processor)
    monkeypatch.setattr("cli.app.Poller", StubPoller)
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)

    result = runner.invoke(app, ["run", "--once"])

    assert result.exit_code == 1
    assert processor.store.pinged is True
    assert "Connection refused" in result.output
    assert StubPoller.instances == []
