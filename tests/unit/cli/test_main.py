"""Unit tests for the imgcache maintenance CLI."""

from __future__ import annotations

from io import StringIO
import os
from pathlib import Path

import pytest
from rich.console import Console

from imgcache.cli import main as cli
from imgcache.core.caching import MANIFEST_NAME, ManifestRecord, OutputMetadata, cache_key
from imgcache.core.config import AppConfig, CacheConfig


@pytest.fixture
def output(monkeypatch) -> StringIO:
    """Capture rich console output at a fixed width."""
    buffer = StringIO()
    monkeypatch.setattr(cli, "console", Console(file=buffer, width=200))
    return buffer


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for name in ("IMGCACHE_CACHE_DIR", "IMGCACHE_CACHE_RETENTION", "IMGCACHE_CACHE_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def make_slot(cache_dir: Path, source_id: str, mtime: float | None = None) -> Path:
    slot = cache_dir / cache_key(source_id)
    slot.mkdir(parents=True)
    (slot / "abc123.webp").write_bytes(b"webp")
    record = ManifestRecord(
        checksum="c0ffee" * 6,
        created_at=1_700_000_000_000,
        outputs=[OutputMetadata(output_id="abc123", format="webp", width=300)],
    )
    manifest = slot / MANIFEST_NAME
    manifest.write_text(record.to_json())
    if mtime is not None:
        os.utime(manifest, (mtime, mtime))
    return slot


def run(project: Path, *args: str) -> int:
    return cli.main(["--root", str(project), "--log-level", "warning", *args])


def test_resolve_cache_dir_relative_to_project_root() -> None:
    config = AppConfig(cache=CacheConfig(dir=".cache/imgcache"))
    resolved = cli._resolve_cache_dir(config, None, Path("/work/site"))
    assert resolved == Path("/work/site/.cache/imgcache")


def test_resolve_cache_dir_override_keeps_absolute_path() -> None:
    resolved = cli._resolve_cache_dir(AppConfig(), "/var/cache/img", Path("/work/site"))
    assert resolved == Path("/var/cache/img")


class TestList:
    def test_lists_slots(self, project: Path, output: StringIO) -> None:
        make_slot(project / ".cache/imgcache", "src/a.png")

        assert run(project, "ls") == 0

        text = output.getvalue()
        assert cache_key("src/a.png")[:12] in text
        assert "c0ffeec0ffee" in text

    def test_flags_invalid_slot(self, project: Path, output: StringIO) -> None:
        (project / ".cache/imgcache" / "deadbeef").mkdir(parents=True)

        assert run(project, "ls") == 0
        assert "invalid" in output.getvalue()

    def test_empty_cache(self, project: Path, output: StringIO) -> None:
        assert run(project, "ls") == 0
        assert "No cache entries" in output.getvalue()


class TestSweep:
    def test_removes_stale_slots(self, project: Path, output: StringIO) -> None:
        cache_dir = project / ".cache/imgcache"
        stale = make_slot(cache_dir, "src/old.png", mtime=0.0)
        fresh = make_slot(cache_dir, "src/new.png")

        assert run(project, "sweep") == 0

        assert not stale.exists()
        assert fresh.exists()
        assert "Removed 1 stale" in output.getvalue()

    def test_zero_retention_disables(self, project: Path, output: StringIO) -> None:
        stale = make_slot(project / ".cache/imgcache", "src/old.png", mtime=0.0)

        assert run(project, "sweep", "--retention", "0") == 0

        assert stale.exists()
        assert "disabled" in output.getvalue()

    def test_custom_dir(self, project: Path, output: StringIO) -> None:
        stale = make_slot(project / "build-cache", "src/old.png", mtime=0.0)

        assert run(project, "--dir", "build-cache", "sweep") == 0
        assert not stale.exists()


class TestInvalidate:
    def test_removes_slot_of_source(self, project: Path, output: StringIO) -> None:
        slot = make_slot(project / ".cache/imgcache", "src/a.png")
        other = make_slot(project / ".cache/imgcache", "src/b.png")

        assert run(project, "invalidate", "src/a.png") == 0

        assert not slot.exists()
        assert other.exists()

    def test_remote_source_canonicalized(self, project: Path, output: StringIO) -> None:
        slot = make_slot(project / ".cache/imgcache", "https://cdn.example.com/a.png")

        assert run(project, "invalidate", "https://cdn.example.com/a.png?v=2") == 0
        assert not slot.exists()

    def test_unknown_source(self, project: Path, output: StringIO) -> None:
        assert run(project, "invalidate", "src/none.png") == 0
        assert "No cache entry" in output.getvalue()


def test_invalid_config_file(project: Path, output: StringIO) -> None:
    config_file = project / "imgcache.json"
    config_file.write_text("{not json")

    assert run(project, "--config", str(config_file), "ls") == 1
    assert "ERROR" in output.getvalue()
