"""Client config blueprint — public settings the browser needs at startup."""

from flask import Blueprint, current_app, jsonify

client_config_bp = Blueprint("client_config", __name__, url_prefix="/api")


@client_config_bp.route("/config/firebase")
def firebase_config():
    """Firebase *web* config. These values are public; no service keys here."""
    cfg = current_app.config
    return jsonify({
        "apiKey": cfg.get("FIREBASE_API_KEY"),
        "authDomain": cfg.get("FIREBASE_AUTH_DOMAIN"),
        "projectId": cfg.get("FIREBASE_PROJECT_ID"),
        "storageBucket": cfg.get("FIREBASE_STORAGE_BUCKET"),
        "messagingSenderId": cfg.get("FIREBASE_MESSAGING_SENDER_ID"),
        "appId": cfg.get("FIREBASE_APP_ID"),
    })


@client_config_bp.route("/health")
def health():
    return jsonify({"status": "ok"})
