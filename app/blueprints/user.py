"""User blueprint — /api/user/*"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from app.services.subscription_service import get_subscription_status

logger = logging.getLogger(__name__)

user_bp = Blueprint("user", __name__, url_prefix="/api/user")


@user_bp.route("/subscription-status")
@login_required
def subscription_status():
    """Current premium status for the caller.

    {isPremium, subscription: object|null, status: "premium"|"free"}
    """
    try:
        return jsonify(get_subscription_status(current_user.id))
    except Exception as e:
        logger.error(f"Subscription status lookup failed for {current_user.id}: {e}", exc_info=True)
        return jsonify({"error": "Failed to load subscription status"}), 500


@user_bp.route("/me")
@login_required
def me():
    return jsonify({
        "user_id": current_user.id,
        "email": current_user.email,
        "name": current_user.name,
    })
