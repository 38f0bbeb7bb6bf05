"""Unit tests for configuration loading."""

import pytest
import yaml

from vocabtrans.core.exceptions import ConfigurationError
from vocabtrans.core.settings import TranslatorSettings
from vocabtrans.utils.config_loader import (
    load_config,
    save_config,
    settings_from_dict,
    settings_to_dict,
    update_config_file,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("VOCABTRANS_MODEL", "VOCABTRANS_PRIMARY_ENDPOINT",
                "VOCABTRANS_BACKUP_ENDPOINTS", "VOCABTRANS_RPM"):
        monkeypatch.delenv(var, raising=False)


def test_load_yaml(tmp_path):
    path = tmp_path / "vocabtrans.yaml"
    path.write_text(yaml.safe_dump({
        "model": "llama-x",
        "primary_endpoint": "https://a.example.com",
        "backup_endpoints": ["https://b.example.com"],
        "requests_per_minute": 20,
        "unknown_key": True,
    }))

    settings = load_config(str(path))
    assert settings.model == "llama-x"
    assert settings.backup_endpoints == ["https://b.example.com"]
    assert settings.requests_per_minute == 20
    assert settings.batch_size == 8


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "vocabtrans.yaml"
    path.write_text(yaml.safe_dump({"model": "llama-x", "requests_per_minute": 20}))
    monkeypatch.setenv("VOCABTRANS_MODEL", "other-model")
    monkeypatch.setenv("VOCABTRANS_BACKUP_ENDPOINTS", "https://b.example.com, https://c.example.com")
    monkeypatch.setenv("VOCABTRANS_RPM", "12")

    settings = load_config(str(path))
    assert settings.model == "other-model"
    assert settings.backup_endpoints == ["https://b.example.com", "https://c.example.com"]
    assert settings.requests_per_minute == 12


def test_bad_rpm_env(tmp_path, monkeypatch):
    path = tmp_path / "vocabtrans.yaml"
    path.write_text("model: x\n")
    monkeypatch.setenv("VOCABTRANS_RPM", "fast")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_non_mapping_file(tmp_path):
    path = tmp_path / "vocabtrans.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("VOCABTRANS_PRIMARY_ENDPOINT", "https://env.example.com")

    settings = load_config()
    assert settings.primary_endpoint == "https://env.example.com"
    assert settings.model == ""


def test_save_and_reload(tmp_path):
    settings = TranslatorSettings(model="llama-x", backup_endpoints=["https://b.example.com"])
    path = tmp_path / "out" / "vocabtrans.yaml"

    save_config(settings, str(path))
    assert load_config(str(path)) == settings


def test_settings_dict_round_trip():
    settings = TranslatorSettings(requests_per_minute=7, learner_level="C1")
    assert settings_from_dict(settings_to_dict(settings)) == settings


def test_single_backup_string_becomes_list():
    settings = settings_from_dict({"backup_endpoints": "https://b.example.com"})
    assert settings.backup_endpoints == ["https://b.example.com"]


def test_update_config_file_writes_only_runtime_keys(tmp_path):
    path = tmp_path / "vocabtrans.yaml"
    path.write_text(yaml.safe_dump({
        "model": "llama-x",
        "primary_endpoint": "https://a.example.com",
        "requests_per_minute": 20,
        "custom_note": "keep me",
    }))

    settings = load_config(str(path))
    settings.model = "other-model"
    settings.enable_rate_limiting = False
    settings.primary_endpoint = "https://b.example.com"
    settings.backup_endpoints = ["https://a.example.com"]
    settings.requests_per_minute = 16

    update_config_file(settings, str(path))
    saved = yaml.safe_load(path.read_text())

    assert saved == {
        "model": "llama-x",
        "primary_endpoint": "https://b.example.com",
        "requests_per_minute": 16,
        "custom_note": "keep me",
        "backup_endpoints": ["https://a.example.com"],
    }


def test_update_config_file_rejects_non_mapping(tmp_path):
    path = tmp_path / "vocabtrans.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError):
        update_config_file(TranslatorSettings(), str(path))
