"""Configuration management for pkgmigrate.

Handles loading, parsing and validation of the YAML configuration file.
The parsed ``MigrateConfig`` is built once at startup and passed explicitly
to the components that need it.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..catalogs.base import Ecosystem

# Level names accepted for logging.level, matched case-insensitively
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# Source registry kind each ecosystem can be migrated from
SUPPORTED_REGISTRIES = {
    Ecosystem.GEM: "geminabox",
    Ecosystem.NPM: "verdaccio",
}

DEFAULT_CONFIG_PATH = "config.yml"
DEFAULT_DIST_DIR = "dist"
DEFAULT_HTTP_TIMEOUT = 60.0


class ConfigError(ValueError):
    """Raised when the configuration is unusable; carries every problem found."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


@dataclass
class EcosystemConfig:
    """Source and destination of one ecosystem."""

    registry: str
    from_url: str
    to_url: str
    enabled: bool = True


@dataclass
class LoggingConfig:
    """Console and file logging settings."""

    level: str = "INFO"
    color: bool = True
    log_dir: Optional[str] = None


@dataclass
class MigrateConfig:
    """Top-level configuration for pkgmigrate."""

    ecosystems: Dict[Ecosystem, EcosystemConfig] = field(default_factory=dict)
    dist_dir: str = DEFAULT_DIST_DIR
    max_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    http_timeout: Optional[float] = DEFAULT_HTTP_TIMEOUT
    publish_timeout: Optional[float] = None
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def enabled_ecosystems(self) -> List[Ecosystem]:
        """Return enabled ecosystems in migration order."""
        return [
            ecosystem
            for ecosystem in Ecosystem
            if ecosystem in self.ecosystems and self.ecosystems[ecosystem].enabled
        ]


def parse_ecosystem_config(ecosystem_dict: Dict[str, Any]) -> EcosystemConfig:
    """Parse one ecosystem section.

    Args:
        ecosystem_dict: Section dictionary with registry, from and to keys

    Returns:
        EcosystemConfig instance
    """
    return EcosystemConfig(
        registry=str(ecosystem_dict.get("registry") or ""),
        from_url=str(ecosystem_dict.get("from") or "").rstrip("/"),
        to_url=str(ecosystem_dict.get("to") or "").rstrip("/"),
        enabled=bool(ecosystem_dict.get("enabled", True)),
    )


def parse_logging_config(logging_dict: Dict[str, Any]) -> LoggingConfig:
    return LoggingConfig(
        level=logging_dict.get("level", "INFO"),
        color=logging_dict.get("color", True),
        log_dir=logging_dict.get("log_dir"),
    )


def parse_config(config_dict: Dict[str, Any]) -> MigrateConfig:
    """Parse the full configuration dictionary.

    Sections are keyed by ecosystem value (``gems``, ``npm``); a section left
    out of the file is simply not migrated.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        MigrateConfig instance
    """
    ecosystems = {}
    for ecosystem in Ecosystem:
        section = config_dict.get(ecosystem.value)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError([f"Section '{ecosystem.value}' must be a mapping"])
        ecosystems[ecosystem] = parse_ecosystem_config(section)

    config = MigrateConfig(
        ecosystems=ecosystems,
        dist_dir=config_dict.get("dist_dir", DEFAULT_DIST_DIR),
        http_timeout=config_dict.get("http_timeout", DEFAULT_HTTP_TIMEOUT),
        publish_timeout=config_dict.get("publish_timeout"),
        logging=parse_logging_config(config_dict.get("logging") or {}),
    )
    if config_dict.get("max_workers") is not None:
        config.max_workers = config_dict["max_workers"]
    return config


def validate_config(config: MigrateConfig) -> None:
    """Validate a parsed configuration before any network activity.

    Args:
        config: MigrateConfig instance

    Raises:
        ConfigError: With every problem found, not just the first
    """
    problems = []

    for ecosystem, section in config.ecosystems.items():
        expected = SUPPORTED_REGISTRIES[ecosystem]
        if section.registry != expected:
            problems.append(
                f"We only support migrating {ecosystem.value} from a {expected} "
                f"registry (got '{section.registry}')"
            )
        if section.enabled:
            if not section.from_url:
                problems.append(f"Missing '{ecosystem.value}.from' URL")
            if not section.to_url:
                problems.append(f"Missing '{ecosystem.value}.to' URL")

    if not config.enabled_ecosystems():
        problems.append("No ecosystem configured; add a 'gems' or 'npm' section")

    if not isinstance(config.max_workers, int) or config.max_workers < 1:
        problems.append(f"max_workers must be a positive integer (got {config.max_workers!r})")

    level = config.logging.level
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        problems.append(
            f"logging.level must be one of {', '.join(LOG_LEVELS)} (got {level!r})"
        )

    if problems:
        raise ConfigError(problems)


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration values."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(config_path: str = DEFAULT_CONFIG_PATH) -> MigrateConfig:
    """Load, parse and validate configuration.

    Args:
        config_path: Path to configuration file

    Returns:
        Validated MigrateConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        ConfigError: If the configuration fails validation
    """
    config = parse_config(load_config(config_path))
    validate_config(config)
    return config
