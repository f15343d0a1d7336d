"""Application factory."""

import json
import os
import uuid

from flask import Flask, jsonify, g, request
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.applications import applications_bp
from routes.countries import countries_bp
from routes.notifications import notifications_bp
from routes.trips import trips_bp
from routes.visa import visa_bp
from services.notifications import DatabaseNotificationDispatcher
from services.rule_tables import DEFAULT_RULE_TABLES
from services.rules_engine import VisaRulesEngine
from storage.sql_storage import SQLReferenceStore

jwt = JWTManager()
migrate = Migrate()


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Rule tables are loaded once and injected into the engine
    app.extensions["visa_engine"] = VisaRulesEngine(SQLReferenceStore(), DEFAULT_RULE_TABLES)
    app.extensions["notification_dispatcher"] = DatabaseNotificationDispatcher()

    # Blueprints
    app.register_blueprint(visa_bp, url_prefix="/visa")
    app.register_blueprint(trips_bp, url_prefix="/trips")
    app.register_blueprint(applications_bp, url_prefix="/applications")
    app.register_blueprint(notifications_bp, url_prefix="/notifications")
    app.register_blueprint(countries_bp, url_prefix="/countries")

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)

    return app


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        if error.code and error.code >= 500:
            app.logger.error("HTTP %s on %s: %s", error.code, request.path, error.description)
        else:
            app.logger.info("HTTP %s on %s: %s", error.code, request.path, error.description)
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        request_id = g.get("request_id") or str(uuid.uuid4())
        db.session.rollback()
        app.logger.exception("Unhandled application error", exc_info=error)
        payload = {
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred.",
            "request_id": request_id,
        }
        response = jsonify(payload)
        response.status_code = 500
        response.headers.setdefault("X-Request-ID", request_id)
        return response


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
