"""Tests for config loading (JSON/YAML files plus environment overrides)."""

import json
from pathlib import Path

from pydantic import ValidationError
import pytest
import yaml

from imgcache.core.config import AppConfig, CacheConfig
import imgcache.core.config.loader as config_loader


@pytest.fixture
def sample_config_data():
    return {
        "cache": {"dir": "build/.imgcache", "retention_seconds": 3600},
        "logging": {"level": "DEBUG", "structured": True},
    }


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("IMGCACHE_CACHE_DIR", "IMGCACHE_CACHE_RETENTION", "IMGCACHE_CACHE_ENABLED"):
        monkeypatch.delenv(name, raising=False)


def test_detect_format():
    assert config_loader.detect_format("imgcache.json") == "json"
    assert config_loader.detect_format(Path("imgcache.yaml")) == "yaml"
    assert config_loader.detect_format("imgcache.yml") == "yaml"


def test_detect_format_invalid():
    with pytest.raises(ValueError, match="Unsupported config format"):
        config_loader.detect_format("imgcache.toml")


def test_load_config_json(tmp_path, sample_config_data):
    config_file = tmp_path / "imgcache.json"
    config_file.write_text(json.dumps(sample_config_data))

    assert config_loader.load_config(config_file) == sample_config_data


def test_load_config_yaml(tmp_path, sample_config_data):
    config_file = tmp_path / "imgcache.yml"
    config_file.write_text(yaml.dump(sample_config_data))

    assert config_loader.load_config(config_file) == sample_config_data


def test_load_config_empty_yaml(tmp_path):
    config_file = tmp_path / "imgcache.yaml"
    config_file.write_text("")

    assert config_loader.load_config(config_file) == {}


def test_load_config_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        config_loader.load_config(tmp_path / "missing.yaml")


def test_load_config_invalid_json(tmp_path):
    config_file = tmp_path / "imgcache.json"
    config_file.write_text("{not json")

    with pytest.raises(ValueError, match="Invalid JSON"):
        config_loader.load_config(config_file)


def test_load_config_non_mapping_root(tmp_path):
    config_file = tmp_path / "imgcache.yaml"
    config_file.write_text("- a\n- b\n")

    with pytest.raises(ValueError, match="mapping"):
        config_loader.load_config(config_file)


class TestLoadAppConfig:
    def test_defaults_when_missing(self, tmp_path):
        config = config_loader.load_app_config(tmp_path / "imgcache.yaml")

        assert config == AppConfig()
        assert config.cache.enabled
        assert config.cache.dir == ".cache/imgcache"
        assert config.cache.retention_seconds == 86400
        assert config.cache.checksum_algorithm == "sha1"

    def test_from_file(self, tmp_path, sample_config_data):
        config_file = tmp_path / "imgcache.yaml"
        config_file.write_text(yaml.dump(sample_config_data))

        config = config_loader.load_app_config(config_file)

        assert config.cache.dir == "build/.imgcache"
        assert config.cache.retention_seconds == 3600
        assert config.logging.level == "DEBUG"
        assert config.logging.structured

    def test_env_overrides(self, tmp_path, sample_config_data, monkeypatch):
        config_file = tmp_path / "imgcache.yaml"
        config_file.write_text(yaml.dump(sample_config_data))
        monkeypatch.setenv("IMGCACHE_CACHE_DIR", "/var/cache/images")
        monkeypatch.setenv("IMGCACHE_CACHE_RETENTION", "0")
        monkeypatch.setenv("IMGCACHE_CACHE_ENABLED", "false")

        config = config_loader.load_app_config(config_file)

        assert config.cache.dir == "/var/cache/images"
        assert config.cache.retention_seconds == 0
        assert not config.cache.enabled

    def test_bad_env_values_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("IMGCACHE_CACHE_RETENTION", "a day")
        monkeypatch.setenv("IMGCACHE_CACHE_ENABLED", "maybe")

        config = config_loader.load_app_config(tmp_path / "imgcache.yaml")

        assert config.cache == CacheConfig()

    def test_invalid_values_rejected(self, tmp_path):
        config_file = tmp_path / "imgcache.json"
        config_file.write_text(json.dumps({"cache": {"retention_seconds": -1}}))

        with pytest.raises(ValidationError):
            config_loader.load_app_config(config_file)


class TestCacheConfig:
    def test_checksum_algorithm_normalized(self):
        assert CacheConfig(checksum_algorithm="SHA256").checksum_algorithm == "sha256"

    def test_unknown_checksum_algorithm(self):
        with pytest.raises(ValidationError):
            CacheConfig(checksum_algorithm="crc-nonsense")

    def test_variable_length_digest_rejected(self):
        with pytest.raises(ValidationError, match="fixed digest size|Unsupported"):
            CacheConfig(checksum_algorithm="shake_128")

    def test_variable_length_digest_rejected_from_file(self, tmp_path):
        config_file = tmp_path / "imgcache.yaml"
        config_file.write_text(yaml.dump({"cache": {"checksum_algorithm": "shake_256"}}))

        with pytest.raises(ValidationError):
            config_loader.load_app_config(config_file)
