"""Stats API routes: point-in-time query and live SSE stream."""
import logging

from flask import Blueprint, Response, jsonify

import app_state
from errors import CapacityExceeded
from sse_registry import SSEClient

logger = logging.getLogger(__name__)

stats_bp = Blueprint('stats', __name__)

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Connection': 'keep-alive',
    'Access-Control-Allow-Origin': '*',
    'X-Accel-Buffering': 'no',
}


@stats_bp.route('/api/stats')
def get_stats():
    """Get cached system stats, however stale each field is."""
    response = jsonify(app_state.stats_cache.snapshot())
    response.headers['Access-Control-Allow-Origin'] = '*'
    return response


@stats_bp.route('/api/stats/stream')
def stream_stats():
    """Open an SSE stream: current stats first, then one event per heartbeat."""
    registry = app_state.sse_clients
    client = SSEClient()
    try:
        registry.subscribe(client, app_state.stats_cache.snapshot)
    except CapacityExceeded as e:
        logger.warning(f"Rejected SSE client: {e}")
        response = jsonify({'status': 'error', 'message': 'Too many SSE connections'})
        response.headers['Access-Control-Allow-Origin'] = '*'
        return response, 429

    keepalive = app_state.get_config_value('sse_keepalive_interval')

    def generate():
        try:
            yield from client.events(keepalive=keepalive)
        finally:
            # Runs when the client disconnects and the server closes the generator
            registry.unsubscribe(client)

    response = Response(generate(), mimetype='text/event-stream', headers=SSE_HEADERS)
    # A generator closed before its first chunk never reaches its finally block
    response.call_on_close(lambda: registry.unsubscribe(client))
    return response
