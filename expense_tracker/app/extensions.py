"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy, marshmallow and the WebSocket extension as
module-level objects so they can be imported anywhere without creating
circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db`, `ma` or `sock` from here wherever needed.

The realtime connection registry is NOT created here. It holds per-process
connection state, so the factory builds one per app and stores it in
app.extensions["connection_registry"] (see services/fanout_service.py).
"""

from flask_marshmallow import Marshmallow
from flask_sock import Sock
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Marshmallow instance — available for SQLAlchemy model serialization helpers.
#
# IMPORTANT — schema inheritance rule:
#   All validation Schema classes (in app/schemas/) inherit from
#   marshmallow.Schema directly, NOT from ma.Schema. ma.Schema requires an
#   active Flask application context, and tests/unit/ runs without one.
ma = Marshmallow()

sock = Sock()
