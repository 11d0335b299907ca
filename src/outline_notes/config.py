"""Runtime configuration for the outline notes server.

Reads vault and sync settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    OUTLINE_VAULT: Vault directory (required)
    OUTLINE_WATCH_INTERVAL: Seconds between change polls (default: 5.0)
    OUTLINE_EXPORT_DEBOUNCE: Seconds before an edited page is written (default: 0.1)
    OUTLINE_INDENT_SIZE: Spaces per outline level in files (default: 2)
    OUTLINE_CONFLICT_STRATEGY: file-wins, database-wins or merge (default: file-wins)
    OUTLINE_SNAPSHOT: Store snapshot path (default: <vault>/.notesdb/store.json)
    OUTLINE_MAX_PARALLEL_IO: Max parallel file operations (default: 4)
    OUTLINE_DEBUG: Enable debug logging (default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .sync.models import ConflictStrategy

logger = logging.getLogger(__name__)

SNAPSHOT_DIRNAME = ".notesdb"
SNAPSHOT_FILENAME = "store.json"


@dataclass
class Config:
    vault_path: str
    watch_interval: float = 5.0
    export_debounce: float = 0.1
    indent_size: int = 2
    conflict_strategy: str = ConflictStrategy.FILE_WINS.value
    snapshot_path: str | None = None
    max_parallel_io: int = 4
    debug: bool = False

    @property
    def snapshot_file(self) -> Path:
        """Snapshot location, defaulting to a hidden folder in the vault."""
        if self.snapshot_path:
            return Path(self.snapshot_path).expanduser()
        return (
            Path(self.vault_path).expanduser()
            / SNAPSHOT_DIRNAME
            / SNAPSHOT_FILENAME
        )


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid."""
    config.vault_path = config.vault_path.strip()
    if not config.vault_path:
        raise ValueError(
            "Vault path cannot be empty. Set OUTLINE_VAULT environment variable."
        )

    vault = Path(config.vault_path).expanduser()
    if vault.exists() and not vault.is_dir():
        raise ValueError(f"Vault path is not a directory: {config.vault_path}")

    if config.watch_interval <= 0:
        raise ValueError(
            f"Invalid watch interval {config.watch_interval}: must be positive"
        )
    if config.export_debounce < 0:
        raise ValueError(
            f"Invalid export debounce {config.export_debounce}: must not be negative"
        )
    if not (1 <= config.indent_size <= 8):
        raise ValueError(
            f"Invalid indent size {config.indent_size}: must be between 1 and 8"
        )
    if not (1 <= config.max_parallel_io <= 64):
        raise ValueError(
            f"Invalid max parallel I/O {config.max_parallel_io}: must be between 1 and 64"
        )
    valid = sorted(s.value for s in ConflictStrategy)
    if config.conflict_strategy not in valid:
        raise ValueError(
            f"Invalid conflict strategy '{config.conflict_strategy}': must be one of {valid}"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(key: str, cast: type) -> int | float | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid {key} '{raw}': must be a number") from None


def load_config(
    vault: str | None = None,
    watch_interval: float | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        vault: Override vault directory.
        watch_interval: Override polling interval in seconds.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flattened values from the YAML config file.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the vault path is missing or a value is invalid.
    """
    fb = yaml_fallbacks or {}

    vault_path = vault or os.getenv("OUTLINE_VAULT") or fb.get("path")
    if not vault_path:
        raise ValueError(
            "Vault path not found. Set OUTLINE_VAULT environment variable, "
            "pass --vault CLI argument, or add 'vault.path' to config.yml."
        )

    def pick(cli_value, env_key: str, cast: type, fb_key: str, default):
        if cli_value is not None:
            return cast(cli_value)
        env_value = _get_number_env(env_key, cast)
        if env_value is not None:
            return env_value
        if fb.get(fb_key) is not None:
            return cast(fb[fb_key])
        return default

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("OUTLINE_DEBUG")
        final_debug = (
            env_debug if env_debug is not None else bool(fb.get("debug", False))
        )

    config = Config(
        vault_path=str(vault_path),
        watch_interval=pick(
            watch_interval, "OUTLINE_WATCH_INTERVAL", float, "watch_interval", 5.0
        ),
        export_debounce=pick(
            None, "OUTLINE_EXPORT_DEBOUNCE", float, "export_debounce", 0.1
        ),
        indent_size=pick(None, "OUTLINE_INDENT_SIZE", int, "indent_size", 2),
        conflict_strategy=(
            os.getenv("OUTLINE_CONFLICT_STRATEGY")
            or fb.get("conflict_strategy")
            or ConflictStrategy.FILE_WINS.value
        ),
        snapshot_path=os.getenv("OUTLINE_SNAPSHOT") or fb.get("snapshot"),
        max_parallel_io=pick(
            None, "OUTLINE_MAX_PARALLEL_IO", int, "max_parallel_io", 4
        ),
        debug=final_debug,
    )

    validate_config(config)
    return config
