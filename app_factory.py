"""Flask application factory for the stats broadcaster."""
import logging
import os

import eventlet.patcher
from flask import Flask, jsonify, request
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException

import app_state
from background.stats_scheduler import StatsScheduler
from routes import register_blueprints
from telemetry_provider import TelemetryProvider
from utils import tier_intervals

logger = logging.getLogger(__name__)


def broadcast_stats():
    """Push the current stats to every SSE subscriber."""
    delivered = app_state.sse_clients.broadcast(app_state.stats_cache.snapshot)
    logger.debug(f"Broadcast stats to {delivered} SSE client(s)")


def _error_response(message, status):
    response = jsonify({'status': 'error', 'message': message})
    response.headers['Access-Control-Allow-Origin'] = '*'
    return response, status


def create_app(provider=None, config=None):
    """Build the Flask app, its SocketIO wrapper and the stats scheduler.

    Args:
        provider: Telemetry source; defaults to the psutil-backed provider
        config: Server config dict; defaults to app_state.server_config

    Returns:
        (app, socketio)
    """
    if config is None:
        config = app_state.server_config or app_state.SERVER_CONFIG_DEFAULTS

    app = Flask(__name__)
    # Generate a random secret key on startup for Flask session management
    app.config['SECRET_KEY'] = os.environ.get('FLASK_SECRET_KEY', os.urandom(24).hex())
    app.config['MAX_CONTENT_LENGTH'] = config['max_request_bytes']

    # Green threads when the entry point has monkey-patched, plain threads otherwise
    async_mode = 'eventlet' if eventlet.patcher.is_monkey_patched('socket') else 'threading'
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode=async_mode)
    app_state.set_socketio(socketio)

    register_blueprints(app)

    @app.before_request
    def limit_request_size():
        """Reject oversized bodies before any route reads them."""
        length = request.content_length
        if length is not None and length > config['max_request_bytes']:
            logger.warning(f"Rejected {request.method} {request.path}: body of {length} bytes")
            return _error_response('Request body too large', 413)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _error_response(e.description or e.name, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception(f"Unhandled error on {request.path}: {e}")
        return _error_response(f"Server error: {e}", 500)

    app_state.scheduler = StatsScheduler(
        provider or TelemetryProvider(),
        app_state.stats_cache,
        on_broadcast=broadcast_stats,
        intervals=tier_intervals(config),
    )
    return app, socketio
