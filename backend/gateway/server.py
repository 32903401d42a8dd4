"""
API gateway: combines the auth, events, and registrations blueprints.
This is the local entrypoint for development.
"""

import logging
from typing import Any, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from backend import config
from backend.common.errors import register_error_handlers
from backend.database.store import STORE_EXTENSION_KEY, EntityStore

# Basic console logging during API requests
logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(asctime)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app(store: Optional[Any] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        store (optional): Entity Store to inject. Defaults to a PostgreSQL
            EntityStore using DATABASE_URL.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    app.extensions[STORE_EXTENSION_KEY] = store if store is not None else EntityStore()

    CORS(app, resources={
        r"/*": {
            "origins": config.CORS_ORIGINS,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": ["Content-Type", "Authorization"],
            "supports_credentials": True
        }
    })

    # --- REGISTER BLUEPRINTS ---
    from backend.auth_service.routes import auth_bp
    from backend.events_service.routes import events_bp
    from backend.registrations_service.routes import registrations_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(events_bp, url_prefix="/events")
    app.register_blueprint(registrations_bp, url_prefix="/registrations")

    register_error_handlers(app)
    logger.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=config.GATEWAY_PORT, debug=True)
