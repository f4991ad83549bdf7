"""Webhooks blueprint — /api/payments/webhook

Receives Dodo Payments webhook events.
Raw body is required for signature verification.
"""

import logging

from flask import Blueprint, jsonify, request

from app.services.dodo_service import (
    SignatureInvalid,
    SignatureMissing,
    get_payment_settings,
    verify_webhook_signature,
)
from app.services.reconciler import Reconciler

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/payments")


@webhooks_bp.route("/webhook", methods=["POST"])
def dodo_webhook():
    """Receive and process Dodo webhook events.

    1. Get raw body (required for signature verification)
    2. Verify the Standard Webhooks signature with DODO_WEBHOOK_SECRET
    3. Pass to the Reconciler (idempotent on provider subscription id)
    4. Return 200 to acknowledge receipt, whatever the reconcile outcome

    Reconciliation faults are logged and dead-lettered rather than
    surfaced, so Dodo does not retry-storm on our internal errors.
    """
    payload = request.get_data(as_text=True)
    settings = get_payment_settings()
    webhook_id = request.headers.get("webhook-id")

    # --- Verify signature ---
    try:
        event = verify_webhook_signature(payload, request.headers, settings.webhook_secret)
    except SignatureMissing:
        logger.warning("Webhook received without signature headers")
        return jsonify({"success": False, "error": "Missing signature"}), 400
    except SignatureInvalid as e:
        logger.warning(f"Webhook signature verification failed (id={webhook_id}): {e}")
        return jsonify({"success": False, "error": "Invalid signature"}), 401
    except ValueError:
        logger.warning(f"Webhook body is not valid JSON (id={webhook_id})")
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400

    if not isinstance(event, dict):
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400

    # --- Reconcile (never raises) ---
    outcome = Reconciler(settings).reconcile(event, webhook_id=webhook_id)

    return jsonify({
        "success": True,
        "message": f"Webhook received ({outcome.value})",
    }), 200
