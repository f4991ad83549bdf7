"""Tests for the dead-letter CLI commands.

Covers:
- flask dead-letters (open only, --all)
- flask replay-dead-letter (unknown id, success, still failing, already resolved)
"""

from datetime import datetime, timezone

from app.extensions import db
from app.models.payment import PaymentSession, Subscription
from app.models.webhook_dead_letter import WebhookDeadLetter
from app.services.reconciler import Reconciler, ReconcileOutcome


def _dead_letter_unattributed(app, event_factory):
    """Reconcile an event nobody can be matched to -> one dead letter."""
    outcome = Reconciler(app.extensions["payment_settings"]).reconcile(
        event_factory(session_id="cks_later", metadata=None),
        webhook_id="msg_orphan",
    )
    assert outcome is ReconcileOutcome.UNATTRIBUTED
    return WebhookDeadLetter.query.one()


class TestListDeadLetters:

    def test_no_dead_letters(self, app):
        result = app.test_cli_runner().invoke(args=["dead-letters"])
        assert result.exit_code == 0
        assert "No dead letters." in result.output

    def test_lists_open_letters(self, app, db_session, event_factory):
        letter = _dead_letter_unattributed(app, event_factory)

        result = app.test_cli_runner().invoke(args=["dead-letters"])

        assert result.exit_code == 0
        assert letter.id in result.output
        assert "unattributed" in result.output
        assert "session=cks_later" in result.output
        assert "[open]" in result.output

    def test_resolved_hidden_unless_all(self, app, db_session, event_factory):
        letter = _dead_letter_unattributed(app, event_factory)
        letter.resolved_at = datetime.now(timezone.utc)
        db_session.commit()

        runner = app.test_cli_runner()
        assert "No dead letters." in runner.invoke(args=["dead-letters"]).output

        result = runner.invoke(args=["dead-letters", "--all"])
        assert letter.id in result.output
        assert "[resolved]" in result.output


class TestReplayDeadLetter:

    def test_unknown_id(self, app):
        result = app.test_cli_runner().invoke(args=["replay-dead-letter", "nope"])
        assert "ERROR: no dead letter with id nope" in result.output

    def test_replay_still_unattributable(self, app, db_session, event_factory):
        letter = _dead_letter_unattributed(app, event_factory)

        result = app.test_cli_runner().invoke(args=["replay-dead-letter", letter.id])

        assert "Replay failed: unattributed" in result.output
        assert db.session.get(WebhookDeadLetter, letter.id).resolved_at is None
        # A failing replay does not add another dead letter
        assert WebhookDeadLetter.query.count() == 1

    def test_replay_after_session_recorded(self, app, db_session, event_factory):
        """The checkout session shows up later -> replay grants premium."""
        letter = _dead_letter_unattributed(app, event_factory)
        db_session.add(PaymentSession(
            session_id="cks_later", user_id="u7", status="created",
        ))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["replay-dead-letter", letter.id])

        assert "Replayed: created. Dead letter resolved." in result.output
        assert db.session.get(WebhookDeadLetter, letter.id).resolved_at is not None
        sub = Subscription.query.one()
        assert sub.user_id == "u7"
        assert sub.is_active is True

    def test_already_resolved(self, app, db_session, event_factory):
        letter = _dead_letter_unattributed(app, event_factory)
        letter.resolved_at = datetime.now(timezone.utc)
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["replay-dead-letter", letter.id])
        assert "already resolved" in result.output
