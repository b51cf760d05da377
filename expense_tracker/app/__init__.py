"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to load the metadata without starting the full server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow, Sock) via init_app()
  4. Create this app's realtime ConnectionRegistry
  5. Register the route blueprints (/api/v1, plus /health and /ws)
  6. Register global error handlers (AppError → JSON, Exception → 500)
  7. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before Alembic inspects it. They are not used
  directly here — the import side-effect is sufficient.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from expense_tracker.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development", config_overrides: dict | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
        config_overrides: Optional keys applied on top of the config class,
                     before any extension reads them.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from expense_tracker.app.extensions import db, ma, sock
    db.init_app(app)
    ma.init_app(app)
    sock.init_app(app)

    from expense_tracker.app.services.fanout_service import REGISTRY_KEY, ConnectionRegistry
    app.extensions[REGISTRY_KEY] = ConnectionRegistry()

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from expense_tracker.app.models import (  # noqa: F401
            expense,
            friend_link,
            invitation,
            shared_expense,
            split,
            user,
        )

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Applies LOG_LEVEL to the root logger (service modules log through
    logging.getLogger(__name__)) and to app.logger.
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("expense_tracker").setLevel(level)
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource.
    """
    from expense_tracker.app.routes.auth import auth_bp
    from expense_tracker.app.routes.expenses import expenses_bp
    from expense_tracker.app.routes.friends import friends_bp
    from expense_tracker.app.routes.health import health_bp
    from expense_tracker.app.routes.realtime import realtime_bp
    from expense_tracker.app.routes.users import users_bp

    app.register_blueprint(auth_bp,     url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp,    url_prefix="/api/v1/users")
    app.register_blueprint(friends_bp,  url_prefix="/api/v1/friends")
    # expenses_bp owns both /expenses[...] and /personal-expenses[...].
    app.register_blueprint(expenses_bp, url_prefix="/api/v1")
    # Probe and realtime channel live outside the versioned API.
    app.register_blueprint(health_bp)
    app.register_blueprint(realtime_bp)


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Every handler rolls the session back so a failed request never leaves
    half-flushed rows behind. Stack traces never leave the server.
    """
    from expense_tracker.app.errors import AppError, ErrorCode
    from expense_tracker.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        db.session.rollback()
        if error.http_status >= 500:
            app.logger.error("Request failed with %r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST error is reported. If the message is itself one of the
        registered ErrorCode constants it becomes the code.
        """
        db.session.rollback()
        field, raw_message = _first_validation_message(error.messages)

        if raw_message in vars(ErrorCode).values():
            code = raw_message
            message = _code_to_message(code)
        elif str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        """
        Unknown URLs (404), wrong methods (405) and unparseable JSON bodies
        (400) keep their status but use the standard envelope.
        """
        db.session.rollback()
        code = (
            ErrorCode.INVALID_FIELD
            if error.code == 400
            else error.name.upper().replace(" ", "_")
        )
        return jsonify({"error": {"code": code, "message": error.description}}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger. Stack traces
        NEVER leave the server in the response body.
        """
        db.session.rollback()
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _first_validation_message(messages) -> tuple[str | None, str]:
    """
    Walks marshmallow's nested messages down to the first leaf.

    Returns (dotted field path or None, message). Nested list entries are
    keyed by index, e.g. "shares.0.amount".
    """
    path: list[str] = []
    node = messages

    while True:
        if isinstance(node, dict) and node:
            key, node = next(iter(node.items()))
            if key != "_schema":
                path.append(str(key))
            continue
        if isinstance(node, list) and node:
            node = node[0]
            continue
        break

    message = node if isinstance(node, str) and node else "Invalid input."
    return (".".join(path) or None), message


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself
    (e.g. INVALID_AMOUNT_PRECISION raised as ValidationError in schemas).
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_CATEGORY": "The category value is not valid.",
        "INVALID_EXPENSE_TYPE": "type must be 'personal' or 'shared'.",
    }
    return _messages.get(code, "Invalid input.")
