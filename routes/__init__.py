"""Blueprint registration for all routes."""
from .stats_api import stats_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(stats_bp)
