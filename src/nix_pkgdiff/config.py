"""Configuration loading and management for nix-pkgdiff.

Configuration sources are merged in priority order:
    1. Defaults (defined in DiffConfig)
    2. User config (~/.config/nix-pkgdiff/config.toml)
    3. Explicit config file (--config)
    4. Environment variables (NIX_PKGDIFF_* prefix)
    5. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(source="command", workers=4)
    >>> config.source
    'command'
    >>> config.duplicate_window_seconds
    3600
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

# Type aliases for clarity
Verbosity = Literal["quiet", "normal", "verbose"]
SourceKind = Literal["database", "command"]

ENV_PREFIX = "NIX_PKGDIFF_"

NIX_DB_PATH = "/nix/var/nix/db/db.sqlite"

_MAX_DEFAULT_WORKERS = 8


def default_state_file() -> Path:
    """Return the default saved-state location.

    ``$XDG_DATA_HOME/nix-pkgdiff/packages.json``, falling back to
    ``~/.local/share`` when XDG_DATA_HOME is unset.
    """
    data_home = os.environ.get("XDG_DATA_HOME")
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return base / "nix-pkgdiff" / "packages.json"


def user_config_file() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "nix-pkgdiff" / "config.toml"


@dataclass(frozen=True)
class DiffConfig:
    """Configuration for snapshot capture and diffing.

    All fields have sensible defaults. Users typically override only a few
    fields via CLI flags or config file.

    Attributes:
        Store access:
            source: Where package information comes from ("database" reads
                the Nix SQLite database, "command" shells out to
                nixos-option / nix-store)
            database_path: Path to the Nix database
            exclude_patterns: SQL LIKE patterns for store paths to ignore
            command_timeout_seconds: Timeout for each external command

        Deduplication:
            duplicate_window_seconds: Two versions of one package registered
                closer together than this are treated as ambiguous

        Performance tuning:
            workers: Number of parallel workers (None = auto-detect)

        Output:
            state_file: Saved snapshot location (None = XDG data dir)
            verbosity: Logging verbosity level
            log_file: Also append log records to this file (None = stderr only)
    """

    # Store access
    source: SourceKind = "database"
    database_path: str = NIX_DB_PATH
    exclude_patterns: list[str] = field(
        default_factory=lambda: [
            "%-completions",
            "%.tar.%",
        ]
    )
    command_timeout_seconds: int = 60

    # Deduplication
    duplicate_window_seconds: int = 3600

    # Performance tuning
    workers: Optional[int] = None  # None = auto-detect from CPU cores

    # Output
    state_file: Optional[str] = None
    verbosity: Verbosity = "normal"
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.source not in ("database", "command"):
            raise InvalidConfigError("source", self.source, "expected 'database' or 'command'")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError(
                "verbosity", self.verbosity, "expected 'quiet', 'normal' or 'verbose'"
            )
        if self.duplicate_window_seconds < 0:
            raise InvalidConfigError(
                "duplicate_window_seconds", self.duplicate_window_seconds, "must be non-negative"
            )
        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.command_timeout_seconds < 1:
            raise InvalidConfigError(
                "command_timeout_seconds", self.command_timeout_seconds, "must be at least 1"
            )
        if not isinstance(self.exclude_patterns, list):
            raise InvalidConfigError("exclude_patterns", self.exclude_patterns, "must be a list")

    @property
    def effective_workers(self) -> int:
        """Worker count with the auto-detect default resolved."""
        if self.workers is not None:
            return self.workers
        return min(os.cpu_count() or 4, _MAX_DEFAULT_WORKERS)

    @property
    def state_path(self) -> Path:
        if self.state_file:
            return Path(self.state_file).expanduser()
        return default_state_file()


def load_config(config_file: Optional[Path] = None, **overrides) -> DiffConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options fall through.

    Returns:
        Validated DiffConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
        InvalidConfigError: If a value fails validation
    """
    merged: dict = {}

    user_config = user_config_file()
    if user_config.exists():
        merged.update(_read_config_file(user_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_read_config_file(config_file))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return DiffConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        return _load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from NIX_PKGDIFF_* environment variables.

    Supported environment variables:
        NIX_PKGDIFF_SOURCE: database/command
        NIX_PKGDIFF_DATABASE_PATH: str
        NIX_PKGDIFF_COMMAND_TIMEOUT_SECONDS: int
        NIX_PKGDIFF_DUPLICATE_WINDOW_SECONDS: int
        NIX_PKGDIFF_WORKERS: int
        NIX_PKGDIFF_STATE_FILE: str
        NIX_PKGDIFF_VERBOSITY: quiet/normal/verbose
        NIX_PKGDIFF_LOG_FILE: str

    Returns:
        Dict of field_name -> parsed_value for any NIX_PKGDIFF_* vars found.
    """
    type_hints = get_type_hints(DiffConfig)

    result: dict[str, Any] = {}

    for field_name in DiffConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(field_name, env_value, f"{env_key}: {e}")

        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Returns:
        Parsed value or None if the field type is not settable from env

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    # Skip list types (like exclude_patterns) - too complex for env vars
    if origin is list or type_hint is list:
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If tomllib/tomli not available
        Exception: If TOML parsing fails
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
