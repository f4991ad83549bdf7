"""Payments blueprint — checkout creation and the browser redirect pages.

Routes:
- POST /api/payments/create-checkout  — create a Dodo checkout session
- GET  /payment/success               — Dodo return URL, redirect to app
- GET  /payment/cancel                — user abandoned checkout, redirect to app

Entitlement is granted only by the webhook; the redirects just record
what the browser saw on the PaymentSession row.
"""

import logging

from flask import Blueprint, jsonify, redirect, request
from flask_login import current_user, login_required

from app.extensions import db, limiter
from app.services.dodo_service import (
    CheckoutError,
    CheckoutInitiator,
    get_payment_settings,
    update_session_status,
)

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__)

FAILED_PAYMENT_STATUSES = ("failed", "cancelled", "canceled", "requires_payment_method")


# ──────────────────────────────────────────────
# POST /api/payments/create-checkout
# ──────────────────────────────────────────────

@payments_bp.route("/api/payments/create-checkout", methods=["POST"])
@limiter.limit("10 per minute")
@login_required
def create_checkout():
    """Create a Dodo checkout session for the current user.

    Body (optional): {"product_id": "..."}; falls back to DODO_PRODUCT_ID.
    """
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id") or data.get("productId")

    initiator = CheckoutInitiator(get_payment_settings())
    try:
        payment_session = initiator.create_checkout(
            user_id=current_user.id,
            user_email=current_user.email,
            user_name=current_user.name,
            product_id=product_id,
        )
    except CheckoutError as e:
        return jsonify({"success": False, "error": str(e)}), 502

    return jsonify({
        "success": True,
        "checkout_url": payment_session.checkout_url,
        "session_id": payment_session.session_id,
    })


# ──────────────────────────────────────────────
# GET /payment/success
# ──────────────────────────────────────────────

@payments_bp.route("/payment/success")
def payment_success():
    """Dodo return URL. Marks the session completed and redirects home."""
    session_id = request.args.get("session_id")
    payment_status = (
        request.args.get("payment_status") or request.args.get("status") or ""
    ).lower()

    if payment_status in FAILED_PAYMENT_STATUSES:
        logger.info(f"Checkout {session_id} returned with status {payment_status}")
        return redirect("/?payment=error")

    try:
        if session_id:
            update_session_status(session_id, "completed")
            db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to record checkout success for {session_id}: {e}", exc_info=True)
        return redirect("/?payment=error")

    return redirect("/?payment=success")


# ──────────────────────────────────────────────
# GET /payment/cancel
# ──────────────────────────────────────────────

@payments_bp.route("/payment/cancel")
def payment_cancel():
    """User cancelled Dodo checkout — record it and redirect home."""
    session_id = request.args.get("session_id")

    try:
        if session_id:
            update_session_status(session_id, "cancelled")
            db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to record checkout cancel for {session_id}: {e}", exc_info=True)
        return redirect("/?payment=error")

    return redirect("/?payment=cancelled")
