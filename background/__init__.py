"""Background stats refresh management."""
import logging

import app_state

logger = logging.getLogger(__name__)


def start_all_background_tasks():
    """Fill the stats cache once, then start every refresh tier.

    Tier loops run as SocketIO background tasks (green threads under eventlet).
    """
    scheduler = app_state.scheduler
    socketio = app_state.get_socketio()
    if scheduler is None or socketio is None:
        raise RuntimeError("create_app() must run before starting background tasks")

    scheduler.initial_fetch()
    scheduler.start(spawn=socketio.start_background_task)
    logger.info("Started stats refresh tiers")


def stop_all_background_tasks():
    """Stop the refresh tiers and close every open SSE stream."""
    if app_state.scheduler is not None:
        app_state.scheduler.stop()
    app_state.sse_clients.close_all()
