import asyncio

from business_claims import config
from business_claims.services.notifications import (
    LoggingNotifier,
    WebhookNotifier,
    build_approval_notification,
    build_notifier,
    build_rejection_notification,
    dispatch_notification,
)
from business_claims.services.review_authority import approve_claim, reject_claim


class ExplodingNotifier:
    async def send(self, notification):
        raise RuntimeError("smtp exploded")


def test_approval_message_wording(claim_factory, db_session, authorizer):
    claim = approve_claim(db_session, claim_factory().id, "reviewer-1", authorizer=authorizer)
    note = build_approval_notification(claim, "Welcome aboard", converted=True)
    assert note.decision == "approved"
    assert note.recipient_email == "alice@example.com"
    assert note.subject == "Your iEndorse Business Account is Ready!"
    assert note.body.startswith("Hi Alice Owner,")
    assert '"Blue Door Coffee" has been approved' in note.body
    assert "Notes from our team:\nWelcome aboard" in note.body
    assert note.body.endswith("Best regards,\nThe iEndorse Team")


def test_approval_message_when_conversion_pending(claim_factory, db_session, authorizer):
    claim = approve_claim(db_session, claim_factory().id, "reviewer-1", authorizer=authorizer)
    note = build_approval_notification(claim, None, converted=False)
    assert "being set up" in note.body
    assert "Notes from our team" not in note.body
    assert note.subject == "Your iEndorse Business Claim was Approved"


def test_rejection_message_includes_reason(claim_factory, db_session, authorizer):
    claim = reject_claim(db_session, claim_factory().id, "reviewer-1", "Phone did not match", authorizer=authorizer)
    note = build_rejection_notification(claim)
    assert note.decision == "rejected"
    assert note.subject == "Update on Your iEndorse Business Claim"
    assert "Reason:\nPhone did not match" in note.body


def test_dispatch_swallows_delivery_errors(claim_factory, db_session, authorizer):
    claim = reject_claim(db_session, claim_factory().id, "reviewer-1", "No", authorizer=authorizer)
    note = build_rejection_notification(claim)
    assert asyncio.run(dispatch_notification(ExplodingNotifier(), note)) is False
    assert asyncio.run(dispatch_notification(LoggingNotifier(), note)) is True


def test_build_notifier_backends(monkeypatch):
    monkeypatch.setitem(config.NOTIFICATION_SETTINGS, "backend", "log")
    assert isinstance(build_notifier(), LoggingNotifier)

    monkeypatch.setitem(config.NOTIFICATION_SETTINGS, "backend", "webhook")
    monkeypatch.setitem(config.NOTIFICATION_SETTINGS, "webhook_url", None)
    assert isinstance(build_notifier(), LoggingNotifier)

    monkeypatch.setitem(config.NOTIFICATION_SETTINGS, "webhook_url", "https://relay.example/hooks/claims")
    notifier = build_notifier()
    assert isinstance(notifier, WebhookNotifier)
    assert notifier.url == "https://relay.example/hooks/claims"
