"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.esicache/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from esicache.infrastructure.cache.catalog_store import DEFAULT_CACHE_DIR
from esicache.infrastructure.esi.esi_client import (
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    ESI_BASE_URL,
    NAMES_PAGE_LIMIT,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".esicache"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "ESICACHE_"

DEFAULT_GROUP_CONCURRENCY = 10
DEFAULT_NAME_CONCURRENCY = 10
DEFAULT_NAME_PAGE_SIZE = NAMES_PAGE_LIMIT

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_runtime_config: Dict[str, Any] = {}  # set_config, e.g. CLI flags
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Test overrides
    2. Values set at runtime (CLI flags via set_config)
    3. Environment Variables (ESICACHE_ prefixed)
    4. .env file
    5. YAML configuration file
    6. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no .env found).")

    _loaded = True
    logger.info("Configuration loading process completed.")


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML sections into dotted keys ('sync.name_page_size')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def _coerce(value: str) -> Any:
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key.

    'sync.name_page_size' is looked up in the environment as
    ESICACHE_SYNC_NAME_PAGE_SIZE.
    """
    if key in _test_config:
        return _test_config[key]
    if key in _runtime_config:
        return _runtime_config[key]

    env_key = ENV_PREFIX + key.upper().replace('.', '_')
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the running process (e.g. from a CLI flag)."""
    logger.debug(f"Setting config: {key} = {value}")
    _runtime_config[key] = value


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_esi_base_url() -> str:
    return str(get_config('esi.base_url', ESI_BASE_URL))


def get_user_agent() -> str:
    return str(get_config('esi.user_agent', DEFAULT_USER_AGENT))


def get_request_timeout() -> float:
    return float(get_config('esi.timeout_seconds', DEFAULT_TIMEOUT_SECONDS))


def get_cache_dir() -> Path:
    return Path(str(get_config('cache.dir', DEFAULT_CACHE_DIR))).expanduser()


def _positive_int(key: str, default: int) -> int:
    value = get_config(key, default)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Config '{key}'={value!r} is not an integer. Using {default}.")
        return default
    if parsed < 1:
        logger.warning(f"Config '{key}'={parsed} must be positive. Using {default}.")
        return default
    return parsed


def get_group_concurrency() -> int:
    return _positive_int('sync.group_concurrency', DEFAULT_GROUP_CONCURRENCY)


def get_name_concurrency() -> int:
    return _positive_int('sync.name_concurrency', DEFAULT_NAME_CONCURRENCY)


def get_name_page_size() -> int:
    return min(_positive_int('sync.name_page_size', DEFAULT_NAME_PAGE_SIZE), NAMES_PAGE_LIMIT)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Set configuration values that override every other source."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing and runtime configuration values."""
    _test_config.clear()
    _runtime_config.clear()
    logger.debug("Cleared testing configuration")
