"""
Configuration Management for demoshelf

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables

Configuration precedence (highest to lowest):
1. Environment variables (DEMOSHELF_*)
2. Configuration file
3. Default values
"""

import json
import logging
import logging.handlers
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from demoshelf.core.constants import DEMO_EXTENSION
from demoshelf.core.ranks import RANK_CATALOG, Rank
from demoshelf.core.utils import safe_int

logger = logging.getLogger(__name__)


def get_default_replays_folder() -> Path:
    """
    Get the default CS replays folder path based on the operating system.

    Raises:
        ValueError: If the OS is not supported
    """
    system = platform.system()
    game_dir = "steamapps/common/Counter-Strike Global Offensive/game/csgo/replays"

    if system == "Windows":
        steam_path = Path(os.environ.get("PROGRAMFILES(X86)", "C:/Program Files (x86)"))
        candidates = [
            steam_path / "Steam" / game_dir,
            Path("C:/Program Files/Steam") / game_dir,
            Path("D:/SteamLibrary") / game_dir,
        ]
    elif system == "Darwin":
        candidates = [Path.home() / "Library/Application Support/Steam" / game_dir]
    elif system == "Linux":
        home = Path.home()
        candidates = [
            home / ".steam/steam" / game_dir,
            home / ".local/share/Steam" / game_dir,
        ]
    else:
        raise ValueError(f"Unsupported operating system: {system}")

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def _default_folders() -> list[str]:
    try:
        return [str(get_default_replays_folder())]
    except ValueError:
        return []


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class LibraryConfig:
    """Where demos live and where backups are written."""

    folders: list[str] = field(default_factory=_default_folders)
    demo_extension: str = DEMO_EXTENSION
    backup_file: str | None = None


@dataclass
class CacheConfig:
    """Configuration for the demo record cache."""

    # Defaults to $DEMOSHELF_CACHE_DIR or ~/.demoshelf/cache
    directory: str | None = None


@dataclass
class SteamConfig:
    """Configuration for the Steam Web API ban lookup."""

    api_key: str | None = None
    timeout_seconds: float = 10.0
    # GetPlayerBans accepts at most 100 steam IDs per request
    batch_size: int = 100


@dataclass
class StatsConfig:
    """Configuration for historical statistics."""

    selected_account_steam_id: int = 0


@dataclass
class ParserConfig:
    """Configuration for replay analysis passes."""

    # One position sample per player every N ticks in player position mode
    position_sample_interval_ticks: int = 64


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class DemoShelfConfig:
    """Main configuration container."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    steam: SteamConfig = field(default_factory=SteamConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"


@dataclass(frozen=True)
class AccountContext:
    """
    The account statistics are computed for, plus the rank catalog used to
    resolve rank numbers. Passed explicitly to the orchestrator and the
    statistics aggregator.
    """

    steam_id: int
    ranks: tuple[Rank, ...] = RANK_CATALOG

    @classmethod
    def from_config(cls, config: DemoShelfConfig) -> "AccountContext":
        return cls(steam_id=safe_int(config.stats.selected_account_steam_id))


# ============================================================================
# Configuration Loading
# ============================================================================

SECTIONS = ("library", "cache", "steam", "stats", "parser", "logging")


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "demoshelf.yaml")
    paths.append(Path.cwd() / "demoshelf.toml")
    paths.append(Path.cwd() / "demoshelf.json")

    # User home directory
    home = Path.home()
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "demoshelf" / "config.yaml")
    paths.append(Path(xdg_config) / "demoshelf" / "config.toml")
    paths.append(home / ".demoshelf.yaml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    import yaml

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    import tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    env_mappings = {
        "DEMOSHELF_LOG_LEVEL": ("logging", "level"),
        "DEMOSHELF_LOG_FILE": ("logging", "file"),
        "DEMOSHELF_CACHE_DIR": ("cache", "directory"),
        "DEMOSHELF_BACKUP_FILE": ("library", "backup_file"),
        "DEMOSHELF_ACCOUNT": ("stats", "selected_account_steam_id"),
        "STEAM_API_KEY": ("steam", "api_key"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is not None:
            if section not in config:
                config[section] = {}

            # Type conversion
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)

            config[section][key] = value

    # Folder list, separated like PATH
    folders = os.environ.get("DEMOSHELF_FOLDERS")
    if folders:
        config.setdefault("library", {})["folders"] = [
            f for f in folders.split(os.pathsep) if f
        ]

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> DemoShelfConfig:
    """Convert a dictionary to DemoShelfConfig, ignoring unknown keys."""
    config = DemoShelfConfig()

    for section_name in SECTIONS:
        values = data.get(section_name)
        if not isinstance(values, dict):
            continue
        section = getattr(config, section_name)
        for key, value in values.items():
            if hasattr(section, key):
                setattr(section, key, value)

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> DemoShelfConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged DemoShelfConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    if include_env:
        config_data = merge_configs(config_data, load_env_config())

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def config_to_dict(config: DemoShelfConfig) -> dict[str, Any]:
    """Convert DemoShelfConfig to a dictionary."""
    from dataclasses import asdict

    return asdict(config)


def save_config(config: DemoShelfConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (format detected from extension)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        import yaml

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unknown config format: {suffix}")

    logger.info(f"Saved config to: {path}")


DEFAULT_CONFIG_YAML = """# demoshelf configuration

library:
  # folders:
  #   - /path/to/replays
  demo_extension: .dem
  # backup_file: /path/to/backup.json

cache:
  # directory: /path/to/cache

steam:
  # api_key: your-steam-web-api-key
  timeout_seconds: 10.0
  batch_size: 100

stats:
  selected_account_steam_id: 0

parser:
  position_sample_interval_ticks: 64

logging:
  level: INFO
  # file: /path/to/demoshelf.log
"""


def generate_default_config(path: Path) -> None:
    """Generate a default configuration file."""
    if path.suffix.lower() in (".yaml", ".yml"):
        path.write_text(DEFAULT_CONFIG_YAML)
    else:
        save_config(DemoShelfConfig(), path)

    logger.info(f"Generated default config at: {path}")


# ============================================================================
# Logging
# ============================================================================


def configure_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Configure root logging from a LoggingConfig."""
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=config.file_max_bytes,
                backupCount=config.file_backup_count,
            )
        )

    logging.basicConfig(level=level, format=config.format, handlers=handlers, force=True)
