"""Configuration loader for appint-toolkit."""
import os
import logging
from pathlib import Path
from typing import Dict, Any
import yaml

from .preferences import CONFIG_PATH, get_preference

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    return Path.home() / ".config" / "appint-toolkit" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path using XDG Base Directory standard.

    Priority order:
    1. User preference (stored in ~/.config/appint-toolkit/preferences.json)
    2. Default location: ~/.config/appint-toolkit/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    # 1. Check user preference
    config_path_pref = get_preference(CONFIG_PATH)
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.debug(f"Using config from preference: {config_path}")
            return str(config_path)
        else:
            logger.warning(f"Config path from preference doesn't exist: {config_path}")

    # 2. Check default location
    default_config = default_config_path()
    if default_config.exists():
        logger.debug(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Either pass --proj and --reg, set GCP_PROJECT and GCP_REGION,\n"
        "save them with 'appint config set-target',\n"
        "or set up a config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   appint config set-path /path/to/your/config.yml\n"
    )


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def _validate_authentication(auth: Dict[str, Any], config_path: str) -> None:
    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != 'service_account':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'service_account' is supported."
        )

    if 'service_account_path' not in auth:
        raise ConfigError(
            "Missing 'authentication.service_account_path' in config\n"
            "Please specify the absolute path to your service account JSON file."
        )

    service_account_path = auth['service_account_path']

    if not os.path.exists(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(service_account_path):
        raise ConfigError(
            f"Service account path is not a file: {service_account_path}"
        )


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - gcp: dict with project_id and optionally region
        - authentication (optional): dict with type and service_account_path

    Raises:
        FileNotFoundError: If no config file can be located
        ConfigError: If config file is invalid, or the service account file doesn't exist
    """
    # Path is resolved on every call so preference changes apply immediately
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must be a YAML mapping")

    if 'gcp' not in config or not isinstance(config['gcp'], dict):
        raise ConfigError(
            f"Missing 'gcp' section in config at {config_path}\n"
            f"Required format:\n"
            f"gcp:\n"
            f"  project_id: your-project-id\n"
            f"  region: us-central1"
        )

    if 'project_id' not in config['gcp']:
        raise ConfigError("Missing 'gcp.project_id' in config")

    if 'authentication' in config:
        _validate_authentication(config['authentication'], config_path)
        service_account_path = config['authentication']['service_account_path']
        os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = service_account_path
        logger.debug(f"Set GOOGLE_APPLICATION_CREDENTIALS from config: {service_account_path}")

    logger.debug(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using project ID: {config['gcp']['project_id']}")

    return config
