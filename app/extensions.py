"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # no global limit, applied per route
    storage_uri="memory://",
)


@login_manager.request_loader
def load_user_from_request(request):
    """Resolve the caller from an ``Authorization: Bearer <id token>`` header.

    There are no server-side sessions: every API call carries a Firebase ID
    token. Imports lazily to avoid circular deps.
    """
    from app.services.identity_service import verify_bearer_token

    return verify_bearer_token(request.headers.get("Authorization"))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401
