import eventlet

# Modifies Python's standard libraries to use non-blocking, cooperative I/O (greenthreads), so the
# refresh tiers and every open SSE stream share one thread without blocking each other.
eventlet.monkey_patch()

import logging
import signal
import sys

import app_state
from app_factory import create_app
from background import start_all_background_tasks, stop_all_background_tasks
from utils import init_server_config

logger = logging.getLogger(__name__)


def _install_signal_handlers():
    def shutdown(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop_all_background_tasks()
        sys.exit(0)

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)


def main():
    logging.basicConfig(
        level=logging.DEBUG if app_state.DEBUG_MODE else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    config = init_server_config()
    app, socketio = create_app(config=config)
    start_all_background_tasks()
    _install_signal_handlers()

    logger.info(f"Stats server running at http://{config['host']}:{config['port']}")
    socketio.run(app, host=config['host'], port=config['port'], debug=app_state.DEBUG_MODE, use_reloader=False)


if __name__ == '__main__':
    main()
