"""Flask application factory."""

import json
import os
from flask import Flask
from flask_cors import CORS

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "config", "planner-config.json"
)


def load_planner_config(app):
    """Load planner setting defaults from the config file.

    Snapshot settings sent with each request override these.
    """
    config_path = os.environ.get("PLANNER_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    defaults = {}

    if os.path.exists(config_path):
        try:
            with open(config_path, "r") as f:
                config = json.load(f)
            if isinstance(config, dict):
                defaults = config
                app.logger.info(
                    f"Loaded planner defaults from {config_path}: {sorted(defaults)}"
                )
            else:
                app.logger.warning(f"Ignoring planner config {config_path}: not an object")
        except (json.JSONDecodeError, IOError) as e:
            app.logger.warning(f"Failed to load planner config: {e}")
    else:
        app.logger.info("No planner-config.json found, using built-in defaults")

    app.config["PLANNER_DEFAULTS"] = defaults


def create_app():
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Enable CORS for frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": ["http://localhost:5173", "http://127.0.0.1:5173"],
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type"]
        }
    })

    # Register blueprints
    from capacity_api.api import calendar, capacity, forecast, holidays
    app.register_blueprint(capacity.bp)
    app.register_blueprint(forecast.bp)
    app.register_blueprint(calendar.bp)
    app.register_blueprint(holidays.bp)

    load_planner_config(app)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
