"""
Shared application state: stats cache, SSE registry, server config.

This module centralizes all shared state to avoid circular imports.
Other modules import from here to access the shared cache and locks.
"""
import os
import threading

from sse_registry import SubscriberRegistry
from stats_cache import StatsCache

DEBUG_MODE = os.environ.get('DEBUG_MODE') == '1'

# Latest sample of every stats category (written by background tiers)
stats_cache = StatsCache()

# Open /api/stats/stream connections
sse_clients = SubscriberRegistry()

# Set by app_factory.create_app()
scheduler = None

# Server configuration (loaded from JSON file, overridable via HOST/PORT env)
SERVER_CONFIG_FILE = os.path.join(os.path.dirname(__file__), 'config', 'server_config.local.json')
SERVER_CONFIG_DEFAULTS = {
    'host': '127.0.0.1',
    'port': 8080,
    'cpu_network_interval': 2.0,  # seconds
    'memory_interval': 5.0,  # seconds
    'disk_interval': 30.0,  # seconds
    'docker_interval': 5.0,  # seconds
    'uptime_interval': 60.0,  # seconds
    'max_stream_clients': 10,
    'max_request_bytes': 1024 * 1024,
    'sse_keepalive_interval': 15.0,  # seconds
}

# Server config will be initialized by utils/server_config.py
server_config = None
server_config_lock = threading.Lock()

# SocketIO instance (set by main app, used to spawn background tasks)
_socketio = None


def set_socketio(sio):
    """Set the SocketIO instance for use by other modules."""
    global _socketio
    _socketio = sio


def get_socketio():
    """Get the SocketIO instance."""
    return _socketio


def get_config_value(key):
    """Read one server config value, falling back to the default before init."""
    with server_config_lock:
        if server_config is None:
            return SERVER_CONFIG_DEFAULTS[key]
        return server_config.get(key, SERVER_CONFIG_DEFAULTS[key])
