"""Tests for services/nudge_service.py and services/mailer.py."""

import pytest
import requests

from ecotrack.models.user import User
from ecotrack.services import mailer
from ecotrack.services.mailer import MailerConfigError, ResendMailer
from ecotrack.services.nudge_service import NUDGE_SUBJECT, compose_nudge


class RecordingSender:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def __call__(self, to, subject, text):
        if to in self.fail_for:
            raise requests.ConnectionError("resend unreachable")
        self.sent.append((to, subject, text))


def _last_nudged(database, user_id):
    with database.session_scope() as session:
        return session.get(User, user_id).last_nudged_day


def _check_in(services, user_id):
    services.checklist.toggle_item(user_id, "reusable_bottle", True)
    services.checklist.perform_check_in(user_id)


def test_compose_nudge_mentions_live_streak():
    assert "3 days streak" in compose_nudge("alice", 3)
    assert "1 day streak" in compose_nudge("alice", 1)
    assert "starts a new streak" in compose_nudge("alice", 0)


def test_only_users_not_checked_in_are_nudged(services, database, user_id, other_user_id):
    _check_in(services, user_id)
    sender = RecordingSender()
    services.nudges.send_email = sender

    summary = services.nudges.send_nudges()

    assert summary == {"day": "2024-03-01", "candidates": 1, "sent": 1, "failed": 0}
    assert [(to, subject) for to, subject, _ in sender.sent] == [("bob@example.com", NUDGE_SUBJECT)]
    assert _last_nudged(database, other_user_id) == "2024-03-01"
    assert _last_nudged(database, user_id) is None


def test_nudge_is_sent_once_per_day(services, clock, user_id):
    sender = RecordingSender()
    services.nudges.send_email = sender

    services.nudges.send_nudges()
    services.nudges.send_nudges()
    assert len(sender.sent) == 1

    clock.advance(1)
    services.nudges.send_nudges()
    assert len(sender.sent) == 2


def test_nudge_never_touches_the_ledger(services, user_id):
    services.nudges.send_email = RecordingSender()
    services.nudges.send_nudges()
    assert services.ledger.history(user_id) == []


def test_nudge_uses_yesterdays_streak(services, clock, user_id):
    _check_in(services, user_id)
    clock.advance(1)
    sender = RecordingSender()
    services.nudges.send_email = sender

    services.nudges.send_nudges()

    assert "1 day streak" in sender.sent[0][2]


def test_dry_run_sends_and_marks_nothing(services, database, user_id):
    summary = services.nudges.send_nudges(dry_run=True)

    assert summary["candidates"] == 1
    assert summary["sent"] == 0
    assert _last_nudged(database, user_id) is None


def test_failed_send_is_retried_next_run(services, database, user_id, other_user_id):
    services.nudges.send_email = RecordingSender(fail_for={"alice@example.com"})

    summary = services.nudges.send_nudges()

    assert (summary["sent"], summary["failed"]) == (1, 1)
    assert _last_nudged(database, user_id) is None
    assert [user["id"] for user in services.nudges.pending_users("2024-03-01")] == [user_id]


def test_send_without_sender_raises(services, user_id):
    with pytest.raises(RuntimeError):
        services.nudges.send_nudges()


# ── mailer ─────────────────────────────────────────────────────


def test_mailer_requires_credentials():
    with pytest.raises(MailerConfigError):
        ResendMailer("", "eco@example.com")
    with pytest.raises(MailerConfigError):
        ResendMailer("re_key", "")


def test_mailer_posts_to_resend(monkeypatch):
    calls = []

    class FakeResponse:
        def raise_for_status(self):
            return None

    def fake_post(url, json, headers, timeout):
        calls.append((url, json, headers, timeout))
        return FakeResponse()

    monkeypatch.setattr(mailer.requests, "post", fake_post)

    ResendMailer("re_key", "eco@example.com").send("bob@example.com", "Hi", "Body")

    url, payload, headers, timeout = calls[0]
    assert url == mailer.RESEND_URL
    assert payload == {"from": "eco@example.com", "to": ["bob@example.com"], "subject": "Hi", "text": "Body"}
    assert headers == {"Authorization": "Bearer re_key"}
    assert timeout == 10
