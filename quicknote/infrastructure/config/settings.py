"""Provides functions for loading and accessing application settings.

Supports loading from .env files, environment variables, and a dedicated
settings file (~/.quicknote/settings.yaml). These are the application's
tunables (API endpoint, timeouts, logging); the user's token and selected
page live in the ConfigStore instead.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".quicknote"
DEFAULT_SETTINGS_FILE = DEFAULT_CONFIG_DIR / "settings.yaml"
DEFAULT_STORE_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "QUICKNOTE_"

# --- Global Settings Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(settings_file: Path = DEFAULT_SETTINGS_FILE, env_file: Optional[Path] = None) -> None:
    """Loads settings from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables (QUICKNOTE_<KEY>, dots replaced by underscores)
    2. .env file
    3. YAML settings file
    4. Defaults passed to get_config

    Args:
        settings_file: Path to the YAML settings file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if settings_file.exists():
        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded settings from YAML: {settings_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML settings file {settings_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML settings {settings_file}: {e}")
    else:
        logger.debug(f"YAML settings file not found: {settings_file}")

    # 2. .env file (environment variables already set take precedence)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('logging.level')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def _env_key(key: str) -> str:
    return ENV_PREFIX + key.upper().replace(".", "_")


def _coerce(value: str) -> Any:
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by dotted key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable
    3. YAML settings
    4. Default value

    Args:
        key: The configuration key (e.g., 'api.timeout_seconds')
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = _env_key(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_api_base_url() -> str:
    return str(get_config("api.base_url", "https://api.notion.com"))


def get_api_version() -> str:
    return str(get_config("api.version", "2022-06-28"))


def get_request_timeout() -> float:
    return float(get_config("api.timeout_seconds", 10.0))


def get_cache_ttl() -> float:
    return float(get_config("cache.ttl_seconds", 300))


def get_store_path() -> Path:
    """Location of the persisted token/page configuration."""
    return Path(str(get_config("store.path", DEFAULT_STORE_FILE))).expanduser()


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {sorted(config_dict)}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
