"""Utility modules for the stats broadcaster."""
from .subprocess_helper import blocking_call, run as subprocess_run
from .server_config import (
    load_server_config,
    save_server_config,
    init_server_config,
    tier_intervals,
)
