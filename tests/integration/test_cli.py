"""Integration tests for the command line interface."""

import json
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from cli.commands.main import app

runner = CliRunner()

PRIMARY = "https://a.example.com/translate"
BACKUP = "https://b.example.com/translate"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("VOCABTRANS_MODEL", "VOCABTRANS_PRIMARY_ENDPOINT",
                "VOCABTRANS_BACKUP_ENDPOINTS", "VOCABTRANS_RPM"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "vocabtrans.yaml"
    path.write_text(yaml.safe_dump({
        "model": "llama-x",
        "primary_endpoint": PRIMARY,
        "backup_endpoints": [BACKUP, "http://insecure.example.com"],
        "requests_per_minute": 15,
        "smart_auto_mode": False,
    }))
    return path


@pytest.fixture
def words_file(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("House\n# skipped\n\ntree\n", encoding="utf-8")
    return path


def test_endpoints(config_file):
    result = runner.invoke(app, ["endpoints", "-c", str(config_file)])

    assert result.exit_code == 0
    assert PRIMARY in result.output
    assert BACKUP in result.output
    assert "insecure" not in result.output
    assert "RPM: 15" in result.output


def test_endpoints_without_valid_url(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("primary_endpoint: http://insecure.example.com\n")

    result = runner.invoke(app, ["endpoints", "-c", str(path)])
    assert result.exit_code == 1


def test_translate_writes_results(tmp_path, config_file, words_file, response, worker_ok):
    output = tmp_path / "out.json"
    state_dir = tmp_path / "state"

    with patch("vocabtrans.translation.backends.worker_backend.requests.Session") as session_cls:
        session_cls.return_value.post.side_effect = (
            lambda url, json=None, **kwargs: response(200, worker_ok(json["words"]))
        )
        result = runner.invoke(app, [
            "translate", str(words_file), "-s", "en", "-t", "de",
            "-c", str(config_file), "-o", str(output), "--state-dir", str(state_dir),
            "--batch-size", "5",
        ])

    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text(encoding="utf-8"))
    assert set(data) == {"house", "tree"}
    assert data["house"]["translation"] == "House-tr"
    assert "Operation Summary" in result.output

    stats = runner.invoke(app, ["stats", "--state-dir", str(state_dir)])
    assert stats.exit_code == 0
    assert "Words processed" in stats.output

    cache_stats = runner.invoke(app, ["cache", "stats", "--state-dir", str(state_dir)])
    assert "entries: 2" in cache_stats.output


def test_promotion_keeps_one_off_overrides_out_of_config(tmp_path, config_file, words_file,
                                                         response, worker_ok):
    def answer(url, json=None, **kwargs):
        if url == PRIMARY:
            return response(503, "Service Unavailable")
        return response(200, worker_ok(json["words"]))

    with patch("vocabtrans.translation.backends.worker_backend.requests.Session") as session_cls:
        session_cls.return_value.post.side_effect = answer
        result = runner.invoke(app, [
            "translate", str(words_file), "-c", str(config_file),
            "-o", str(tmp_path / "out.json"), "--state-dir", str(tmp_path / "state"),
            "--batch-size", "3", "--no-rate-limit", "--model", "other-model",
        ])

    assert result.exit_code == 0, result.output
    saved = yaml.safe_load(config_file.read_text())
    assert saved["primary_endpoint"] == BACKUP
    assert saved["backup_endpoints"] == [PRIMARY]
    assert saved["requests_per_minute"] == 15
    assert saved["model"] == "llama-x"
    assert saved["smart_auto_mode"] is False
    assert "batch_size" not in saved
    assert "enable_rate_limiting" not in saved
    assert "enable_adaptive_batching" not in saved


def test_translate_model_error_exits_1(tmp_path, config_file, words_file, response):
    output = tmp_path / "out.json"

    with patch("vocabtrans.translation.backends.worker_backend.requests.Session") as session_cls:
        session_cls.return_value.post.return_value = response(
            400, {"error": "Model llama-x is not available", "errorCategory": "model"}
        )
        result = runner.invoke(app, [
            "translate", str(words_file), "-c", str(config_file), "-o", str(output),
            "--state-dir", str(tmp_path / "state"), "--no-rate-limit",
        ])

    assert result.exit_code == 1
    assert "Translation aborted: Model error" in result.output
    assert json.loads(output.read_text(encoding="utf-8")) == {}


def test_translate_missing_file(tmp_path):
    result = runner.invoke(app, ["translate", str(tmp_path / "missing.txt")])
    assert result.exit_code == 1
    assert "Words file not found" in result.output


def test_cache_clear_and_unknown_action(tmp_path):
    state_dir = tmp_path / "state"

    cleared = runner.invoke(app, ["cache", "clear", "--state-dir", str(state_dir)])
    assert cleared.exit_code == 0
    assert "Cache cleared" in cleared.output

    unknown = runner.invoke(app, ["cache", "purge", "--state-dir", str(state_dir)])
    assert unknown.exit_code == 1
