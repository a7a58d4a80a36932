"""Server configuration load/save utilities."""
import json
import logging
import os

import app_state
from app_state import SERVER_CONFIG_FILE, SERVER_CONFIG_DEFAULTS

logger = logging.getLogger(__name__)

# Environment variables that override the config file
ENV_OVERRIDES = {
    'HOST': 'host',
    'PORT': 'port',
}


def _coerce(key, value):
    """Convert a raw config value to the type of its default."""
    default = SERVER_CONFIG_DEFAULTS[key]
    if isinstance(default, str):
        return str(value)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number")
    if isinstance(default, int):
        return int(value)
    return float(value)


def load_server_config(path=SERVER_CONFIG_FILE, environ=None):
    """Load server config from JSON file, creating with defaults if missing."""
    environ = os.environ if environ is None else environ
    config = SERVER_CONFIG_DEFAULTS.copy()
    try:
        if os.path.exists(path):
            with open(path, 'r') as f:
                loaded = json.load(f)
            # Only use valid keys from the file
            for key in SERVER_CONFIG_DEFAULTS:
                if key not in loaded:
                    continue
                try:
                    config[key] = _coerce(key, loaded[key])
                except (TypeError, ValueError) as e:
                    logger.warning(f"Ignoring invalid {key}={loaded[key]!r} in {path}: {e}")
            logger.info(f"Loaded server config from {path}")
        else:
            # Create config file with defaults
            save_server_config(config, path)
            logger.info(f"Created server config file with defaults at {path}")
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading server config: {e}, using defaults")

    for env_name, key in ENV_OVERRIDES.items():
        if env_name in environ:
            try:
                config[key] = _coerce(key, environ[env_name])
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring invalid {env_name}={environ[env_name]!r}: {e}")
    return config


def save_server_config(config, path=SERVER_CONFIG_FILE):
    """Save server config to JSON file."""
    try:
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(config, f, indent=4)
        logger.info(f"Saved server config to {path}")
        return True
    except OSError as e:
        logger.error(f"Error saving server config: {e}")
        return False


def tier_intervals(config):
    """Map server config onto StatsScheduler tier periods."""
    return {
        'cpu/net': config['cpu_network_interval'],
        'mem': config['memory_interval'],
        'disk': config['disk_interval'],
        'docker': config['docker_interval'],
        'uptime': config['uptime_interval'],
    }


def init_server_config(path=SERVER_CONFIG_FILE):
    """Initialize server config and store in app_state."""
    config = load_server_config(path)
    with app_state.server_config_lock:
        app_state.server_config = config
    app_state.sse_clients.max_clients = config['max_stream_clients']
    return config
