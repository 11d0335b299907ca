"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

from ..config import Config, load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, to_fallbacks
from ..core.async_utils import init_semaphore
from ..file_handler import validate_vault_root
from ..store.snapshot import SnapshotError, load_snapshot, save_snapshot
from ..store.tree import BlockStore
from ..sync.adapter import LocalDirectoryAdapter
from ..sync.engine import SyncEngine
from ..sync.models import SyncReport

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a tool handler needs, built once per server run."""

    config: Config
    store: BlockStore
    engine: SyncEngine
    initial_report: SyncReport | None = None


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def _load_store(config: Config) -> BlockStore:
    path = config.snapshot_file
    try:
        return load_snapshot(path)
    except SnapshotError as e:
        # Vault files are re-imported by the first full sync.
        logger.warning("Ignoring unreadable snapshot %s: %s", path, e)
        _stderr_print(f"  Warning: snapshot {path} ignored ({e})")
        return BlockStore()


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[AppContext]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config files if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Load the store snapshot and run an initial full sync of the vault
    - Start the change watcher unless ``sync_once`` is requested

    On shutdown:
    - Close the sync engine (pending exports are flushed)
    - Save the store snapshot

    Args:
        config_overrides: Optional dict with config values from CLI
            (vault, watch_interval, debug, sync_once)

    Yields:
        AppContext with the config, store and sync engine

    Raises:
        RuntimeError: If configuration is invalid or the vault is unusable.
    """
    logger.info("MCP server starting...")
    _stderr_print("Outline Notes MCP Server starting...")
    overrides = config_overrides or {}

    try:
        # .env first so ${VAR} interpolation in YAML can use its values
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            raw = load_hierarchical_config()
            yaml_fallbacks = to_fallbacks(build_config(raw))
            sources.append(f"config file: {config_files[0]}")

        config = load_config(
            vault=overrides.get("vault"),
            watch_interval=overrides.get("watch_interval"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )
        vault_root = validate_vault_root(config.vault_path)

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Vault: %s", vault_root)
        _stderr_print(f"  Vault: {vault_root}")
    except (ValueError, OSError) as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure OUTLINE_VAULT points at a writable directory.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure OUTLINE_VAULT points at a writable directory."
        ) from e

    init_semaphore(config.max_parallel_io)
    store = _load_store(config)
    engine = SyncEngine(
        store,
        LocalDirectoryAdapter(vault_root),
        watch_interval=config.watch_interval,
        export_debounce=config.export_debounce,
        indent_size=config.indent_size,
        conflict_strategy=config.conflict_strategy,
    )

    try:
        report = await engine.full_sync()
        _stderr_print(report.summary())
        if not overrides.get("sync_once"):
            engine.start_watching()
            _stderr_print(
                f"  Watching vault every {config.watch_interval:g}s"
            )
            _stderr_print("Server ready. Waiting for MCP client connection...")

        yield AppContext(
            config=config, store=store, engine=engine, initial_report=report
        )
    finally:
        logger.info("MCP server shutting down")
        await engine.close()
        save_snapshot(store, config.snapshot_file)
        _stderr_print("Outline Notes MCP Server shutting down.")
