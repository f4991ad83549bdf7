"""Identity service — Firebase ID token verification.

Every protected API call carries ``Authorization: Bearer <Firebase ID
token>``. Verification is delegated to firebase_admin, which checks the
signature against Google's published certificates plus the audience,
issuer and expiry for our project. Nothing about the user is stored
locally; the uid is the stable user identifier across all tables.
"""

import logging

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions
from flask import current_app
from flask_login import UserMixin

logger = logging.getLogger(__name__)


class AuthenticatedUser(UserMixin):
    """The verified caller for the current request."""

    def __init__(self, uid, email=None, name=None):
        self.id = uid
        self.email = email
        self.name = name

    def __repr__(self):
        return f"<AuthenticatedUser {self.id}>"


def _get_firebase_app():
    """Return the default firebase_admin app, initializing it on first use.

    Only the project id is needed to verify ID tokens, so no service
    account credentials are loaded here. httpTimeout bounds the public
    certificate fetch.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        return firebase_admin.initialize_app(options={
            "projectId": current_app.config["FIREBASE_PROJECT_ID"],
            "httpTimeout": current_app.config["PROVIDER_TIMEOUT_SECONDS"],
        })


def verify_id_token(token):
    """Verify a Firebase ID token.

    Returns an AuthenticatedUser, or None if the token is invalid,
    expired, revoked, or issued for another project.
    """
    try:
        claims = firebase_auth.verify_id_token(token, app=_get_firebase_app())
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        logger.info(f"Rejected ID token: {e}")
        return None

    return AuthenticatedUser(
        uid=claims["uid"],
        email=claims.get("email"),
        name=claims.get("name"),
    )


def verify_bearer_token(header_value):
    """Parse an Authorization header and verify its bearer token.

    Returns an AuthenticatedUser or None.
    """
    if not header_value:
        return None

    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    return verify_id_token(token.strip())
