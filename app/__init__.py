import os
import logging

import click
from flask import Flask, g, jsonify

from app.config import config_by_name
from app.extensions import db, migrate, login_manager, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    @app.teardown_request
    def forget_request_user(exc):
        # Bearer auth is per request. g outlives the request when an app
        # context was already pushed, so drop the cached user here.
        g.pop("_login_user", None)

    # --- Payment settings, built once and handed to payment components ---
    from app.services.dodo_service import PaymentSettings
    app.extensions["payment_settings"] = PaymentSettings.from_config(app.config)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from app import models  # noqa: F401

    # --- Register blueprints ---
    from app.blueprints.notes import notes_bp
    from app.blueprints.attachments import attachments_bp
    from app.blueprints.payments import payments_bp
    from app.blueprints.webhooks import webhooks_bp
    from app.blueprints.user import user_bp
    from app.blueprints.client_config import client_config_bp

    app.register_blueprint(notes_bp)
    app.register_blueprint(attachments_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhooks_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(client_config_bp)

    # --- Local file serving (dev only) ---
    if app.debug:
        @app.route("/uploads/<path:filepath>")
        def serve_upload(filepath):
            """Serve uploaded files from instance/uploads in dev mode."""
            from flask import send_from_directory
            upload_dir = os.path.join(app.instance_path, "uploads")
            return send_from_directory(upload_dir, filepath)

    # --- Error handlers (JSON API) ---
    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=(self)"
        )
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' https://www.gstatic.com https://apis.google.com; "
            "img-src 'self' data: https://*.supabase.co; "
            "connect-src 'self' https://*.googleapis.com https://*.supabase.co; "
            "frame-src https://*.firebaseapp.com https://*.dodopayments.com; "
            "base-uri 'self'; "
            "form-action 'self' https://*.dodopayments.com; "
            "frame-ancestors 'none';"
        )
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_error_handlers(app):
    """Every error leaves the API as JSON, never an HTML page."""

    def _json_error(status, message):
        return jsonify({"success": False, "error": message}), status

    @app.errorhandler(400)
    def bad_request(e):
        return _json_error(400, "Bad request")

    @app.errorhandler(401)
    def unauthorized(e):
        return _json_error(401, "Authentication required")

    @app.errorhandler(403)
    def forbidden(e):
        return _json_error(403, "Forbidden")

    @app.errorhandler(404)
    def not_found(e):
        return _json_error(404, "Not found")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _json_error(405, "Method not allowed")

    @app.errorhandler(413)
    def too_large(e):
        return _json_error(413, "Upload is too large")

    @app.errorhandler(429)
    def rate_limited(e):
        return _json_error(429, "Too many requests, slow down")

    @app.errorhandler(500)
    def server_error(e):
        db.session.rollback()
        return _json_error(500, "Internal server error")


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("dead-letters")
    @click.option("--all", "show_all", is_flag=True, help="Include resolved dead letters.")
    def list_dead_letters(show_all):
        """List webhook deliveries that could not be reconciled.

        Usage:
            flask dead-letters
            flask dead-letters --all
        """
        from app.models.webhook_dead_letter import WebhookDeadLetter

        query = WebhookDeadLetter.query
        if not show_all:
            query = query.filter(WebhookDeadLetter.resolved_at.is_(None))
        letters = query.order_by(WebhookDeadLetter.created_at).all()

        if not letters:
            click.echo("No dead letters.")
            return

        for letter in letters:
            data = letter.payload.get("data") if isinstance(letter.payload, dict) else None
            data = data if isinstance(data, dict) else {}
            state = "resolved" if letter.resolved_at else "open"
            click.echo(
                f"{letter.id}  {letter.created_at}  {letter.event_type or '-'}  "
                f"{letter.reason}  [{state}]  "
                f"session={data.get('checkout_session_id')}  "
                f"subscription={data.get('subscription_id')}"
            )
            if letter.error:
                click.echo(f"    error: {letter.error}")

    @app.cli.command("replay-dead-letter")
    @click.argument("letter_id")
    def replay_dead_letter_command(letter_id):
        """Re-run reconciliation for one dead letter.

        Marks it resolved when the replay succeeds.

        Usage:
            flask replay-dead-letter <id>
        """
        from app.models.webhook_dead_letter import WebhookDeadLetter
        from app.services.reconciler import replay_dead_letter

        letter = db.session.get(WebhookDeadLetter, letter_id)
        if letter is None:
            click.echo(f"ERROR: no dead letter with id {letter_id}")
            return
        if letter.resolved_at is not None:
            click.echo(f"Dead letter {letter_id} is already resolved.")
            return

        outcome = replay_dead_letter(letter, app.extensions["payment_settings"])
        if outcome.is_failure:
            click.echo(f"Replay failed: {outcome.value}. Dead letter left open.")
        else:
            click.echo(f"Replayed: {outcome.value}. Dead letter resolved.")
