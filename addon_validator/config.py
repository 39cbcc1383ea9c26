"""
Configuration management for the Addon Compatibility Validator.
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .exceptions import ConfigurationError
from .logging_config import get_logger

logger = get_logger('config')

CONFIG_SECTIONS = ('catalog', 'matching', 'evidence', 'fetch', 'logging')


@dataclass
class MatchingConfig:
    """Configuration for addon name matching."""
    custom_aliases: Dict[str, str] = field(default_factory=dict)  # Merged over the built-in aliases
    role_suffixes: List[str] = field(default_factory=list)  # Replaces the built-in role words when set
    min_fuzzy_length: int = 4


@dataclass
class EvidenceConfig:
    """Budgets for pruning fetched compatibility documents."""
    max_chars: int = 12000
    max_lines: int = 220
    header_lines: int = 12
    context_lines: int = 2


@dataclass
class FetchConfig:
    """Configuration for the document fetch collaborator."""
    max_workers: int = 10
    timeout_seconds: float = 15.0
    eol_timeout_seconds: float = 10.0
    retry_attempts: int = 3
    retry_initial_delay: float = 0.5
    retry_max_delay: float = 1.0
    retry_multiplier: float = 2.0
    max_content_chars: int = 120000
    max_body_bytes: int = 2 * 1024 * 1024
    user_agent: str = "addon-validator/1.0"


@dataclass
class CatalogConfig:
    """Configuration for the addon catalog."""
    files: List[str] = field(default_factory=list)  # Empty means the bundled dataset


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_file: Optional[str] = None
    verbose: bool = False


@dataclass
class Config:
    """Main configuration class."""
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    evidence: EvidenceConfig = field(default_factory=EvidenceConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Config object with loaded settings

    Raises:
        ConfigurationError: If configuration file is invalid
    """
    config = Config()

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file: {e}")

        if config_data:
            if not isinstance(config_data, dict):
                raise ConfigurationError("Configuration file must contain a mapping")
            _update_config_from_dict(config, config_data)
            logger.info(f"Loaded configuration from {config_path}")

    elif config_path:
        logger.warning(f"Configuration file not found: {config_path}")

    validation_errors = validate_config(config)
    if validation_errors:
        raise ConfigurationError("Invalid configuration:\n" + "\n".join(validation_errors))

    return config


def _update_section(section: object, section_name: str, section_data: Dict) -> None:
    """Copy known keys from a YAML mapping onto a config section dataclass."""
    if not isinstance(section_data, dict):
        raise ConfigurationError(f"Section for {type(section).__name__} must be a mapping")

    for key, value in section_data.items():
        if hasattr(section, key):
            setattr(section, key, _checked_value(f"{section_name}.{key}", getattr(section, key), value))
        else:
            logger.warning(f"Ignoring unknown configuration key '{key}' in {type(section).__name__}")


def _checked_value(name: str, current, value):
    """
    Check a YAML value against the type of the setting's default.

    Integers are accepted for float settings. Settings that default to None
    take a string or null.

    Raises:
        ConfigurationError: If the value has the wrong type
    """
    if current is None:
        expected = (str, type(None))
    elif isinstance(current, bool):
        expected = bool
    elif isinstance(current, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        expected = float
    else:
        expected = type(current)

    # bool is a subclass of int, YAML true must not pass as a number
    if isinstance(value, expected) and not (isinstance(value, bool) and expected is int):
        return value

    expected_name = 'str or null' if current is None else expected.__name__
    raise ConfigurationError(f"Invalid value for {name}: expected {expected_name}, "
                             f"got {type(value).__name__}")


def _update_config_from_dict(config: Config, config_data: Dict) -> None:
    """
    Update configuration object from dictionary data.

    Args:
        config: Config object to update
        config_data: Dictionary with configuration data
    """
    for section_name, section_data in config_data.items():
        if section_name in CONFIG_SECTIONS:
            _update_section(getattr(config, section_name), section_name, section_data)
        else:
            logger.warning(f"Ignoring unknown configuration section '{section_name}'")


def validate_config(config: Config) -> List[str]:
    """
    Check numeric budgets and limits.

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if config.matching.min_fuzzy_length < 0:
        errors.append("matching.min_fuzzy_length must not be negative")

    for name in ('max_chars', 'max_lines', 'header_lines', 'context_lines'):
        if getattr(config.evidence, name) < 0:
            errors.append(f"evidence.{name} must not be negative")

    if config.fetch.max_workers < 1:
        errors.append("fetch.max_workers must be at least 1")
    if config.fetch.retry_attempts < 1:
        errors.append("fetch.retry_attempts must be at least 1")
    if config.fetch.timeout_seconds <= 0 or config.fetch.eol_timeout_seconds <= 0:
        errors.append("fetch timeouts must be positive")
    if config.fetch.retry_initial_delay < 0 or config.fetch.retry_max_delay < 0:
        errors.append("fetch retry delays must not be negative")

    return errors


def get_default_config_path() -> Optional[str]:
    """
    Get the default configuration file path.

    Returns:
        Path to default config file if it exists, None otherwise
    """
    possible_paths = [
        'addon_validator.yaml',
        'addon_validator.yml',
        os.path.expanduser('~/.addon_validator.yaml'),
        os.path.expanduser('~/.addon_validator.yml'),
    ]

    for path in possible_paths:
        if os.path.exists(path):
            return path

    return None
