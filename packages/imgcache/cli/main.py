"""Command-line interface for imgcache.

Maintenance commands for a cache directory: list slots, sweep stale ones,
invalidate a single source.
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime
import logging
from pathlib import Path
import sys

from rich.console import Console
from rich.table import Table

from imgcache.core.caching import ArtifactStore, RemoteSource, cache_key, sweep
from imgcache.core.config import AppConfig, configure_logging, load_app_config
from imgcache.core.io import FileSystem, RealFileSystem, absolute_path

console = Console()
logger = logging.getLogger(__name__)


def _resolve_cache_dir(config: AppConfig, override: str | None, project_root: Path) -> Path:
    """Cache directory from --dir, else config, relative paths under the project root."""
    cache_dir = Path(override) if override else Path(config.cache.dir)
    if not cache_dir.is_absolute():
        cache_dir = project_root / cache_dir
    return cache_dir


def _format_ts(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    return datetime.fromtimestamp(seconds).strftime("%Y-%m-%d %H:%M:%S")


async def list_slots_async(fs: FileSystem, cache_dir: Path) -> int:
    """Print one row per cache slot."""
    store = ArtifactStore(fs, absolute_path(cache_dir))
    keys = await store.keys()
    if not keys:
        console.print(f"[yellow]No cache entries in {cache_dir}[/yellow]")
        return 0

    table = Table(title=f"imgcache: {cache_dir}")
    table.add_column("Slot")
    table.add_column("Checksum")
    table.add_column("Created")
    table.add_column("Last used")
    table.add_column("Outputs", justify="right")

    for key in keys:
        record = await store.read_manifest(key)
        if record is None:
            table.add_row(key[:12], "[red]invalid[/red]", "-", "-", "0")
            continue
        try:
            last_used: float | None = (await fs.stat(store.manifest_path(key))).mtime
        except OSError:
            last_used = None
        table.add_row(
            key[:12],
            record.checksum[:12],
            _format_ts(record.created_at / 1000),
            _format_ts(last_used),
            str(len(record.outputs)),
        )

    console.print(table)
    return 0


async def sweep_async(fs: FileSystem, cache_dir: Path, retention_seconds: int) -> int:
    """Run garbage collection and print the report."""
    if retention_seconds == 0:
        console.print("[yellow]Retention is 0, garbage collection disabled[/yellow]")
        return 0

    report = await sweep(fs, absolute_path(cache_dir), retention_seconds)
    console.print(
        f"[green]Removed {len(report.removed_stale)} stale and "
        f"{len(report.removed_invalid)} invalid entries, kept {len(report.kept)}[/green]"
    )
    if report.failed:
        console.print(f"[red]Failed to remove {len(report.failed)} entries[/red]")
        for name in report.failed:
            console.print(f"  {name}")
        return 1
    return 0


async def invalidate_async(fs: FileSystem, cache_dir: Path, source_id: str) -> int:
    """Remove the slot of one project-relative source id."""
    store = ArtifactStore(fs, absolute_path(cache_dir))
    if source_id.startswith(("http://", "https://")):
        source_id = RemoteSource(url=source_id).relative_id
    key = cache_key(source_id)
    if not await fs.exists(store.slot_dir(key)):
        console.print(f"[yellow]No cache entry for {source_id}[/yellow]")
        return 0
    await store.invalidate(key)
    console.print(f"[green]Invalidated {source_id} ({key[:12]})[/green]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="imgcache", description="Image artifact cache tools")
    parser.add_argument("--config", type=Path, default=None, help="Path to imgcache config")
    parser.add_argument(
        "--root", type=Path, default=Path.cwd(), help="Project root (default: current dir)"
    )
    parser.add_argument("--dir", default=None, help="Cache directory (overrides config)")
    parser.add_argument("--log-level", default=None, help="Override configured log level")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("ls", help="List cache entries")

    sweep_parser = sub.add_parser("sweep", help="Evict entries unused for longer than retention")
    sweep_parser.add_argument(
        "--retention", type=int, default=None, help="Retention in seconds (overrides config)"
    )

    invalidate_parser = sub.add_parser("invalidate", help="Remove the entry of one source")
    invalidate_parser.add_argument("source", help="Project-relative source path or URL")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_app_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    if args.log_level:
        logging_config = config.logging.model_copy(update={"level": args.log_level.upper()})
        config = config.model_copy(update={"logging": logging_config})
    configure_logging(config)

    project_root = args.root.resolve()
    cache_dir = _resolve_cache_dir(config, args.dir, project_root)
    fs = RealFileSystem()

    if args.command == "ls":
        return asyncio.run(list_slots_async(fs, cache_dir))
    if args.command == "sweep":
        retention = (
            args.retention if args.retention is not None else config.cache.retention_seconds
        )
        return asyncio.run(sweep_async(fs, cache_dir, retention))
    if args.command == "invalidate":
        return asyncio.run(invalidate_async(fs, cache_dir, args.source))

    logger.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
