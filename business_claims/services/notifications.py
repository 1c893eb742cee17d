"""Claimant notifications for review outcomes (best effort).

A notification is built while the claim is still loaded and handed to a
``Notifier`` after the response is sent. Delivery failures are logged and
dropped: an approval or rejection never depends on the claimant hearing
about it.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional, Protocol

import aiohttp

from business_claims.config import NOTIFICATION_SETTINGS
from business_claims.models.db.claims import BusinessClaim
from business_claims.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClaimNotification:
    claim_id: str
    decision: str  # approved | rejected
    recipient_email: str
    recipient_name: str
    subject: str
    body: str


class Notifier(Protocol):
    async def send(self, notification: ClaimNotification) -> None: ...


def _greeting(claim: BusinessClaim) -> str:
    return f"Hi {claim.claimant_name or 'there'},\n\n"


def _signature() -> str:
    return f"Best regards,\n{NOTIFICATION_SETTINGS['sender_name']}"


def build_approval_notification(
    claim: BusinessClaim, notes: Optional[str] = None, converted: bool = True
) -> ClaimNotification:
    product = NOTIFICATION_SETTINGS["product_name"]
    if converted:
        status_line = (
            f'Great news! Your claim for "{claim.target_name}" has been approved '
            "and your business account is now active!\n\n"
            "You can now:\n"
            "- Manage your business profile\n"
            "- Set up customer discounts\n"
            "- Endorse other businesses\n"
            "- Track endorsements and engagement\n\n"
        )
    else:
        status_line = (
            f'Great news! Your claim for "{claim.target_name}" has been approved. '
            "Your business account is being set up and will be ready shortly.\n\n"
        )
    body = (
        _greeting(claim)
        + status_line
        + (f"Notes from our team:\n{notes}\n\n" if notes else "")
        + f"Log in to {product} to get started.\n\n"
        + _signature()
    )
    return ClaimNotification(
        claim_id=claim.id,
        decision="approved",
        recipient_email=claim.claimant_email,
        recipient_name=claim.claimant_name,
        subject=(
            f"Your {product} Business Account is Ready!" if converted
            else f"Your {product} Business Claim was Approved"
        ),
        body=body,
    )


def build_rejection_notification(claim: BusinessClaim) -> ClaimNotification:
    product = NOTIFICATION_SETTINGS["product_name"]
    body = (
        _greeting(claim)
        + f'We\'ve reviewed your claim for "{claim.target_name}" and unfortunately '
        "we were unable to verify your ownership at this time.\n\n"
        + f"Reason:\n{claim.review_notes}\n\n"
        + "If you believe this is an error, please reply to this email with additional "
        "verification information.\n\n"
        + _signature()
    )
    return ClaimNotification(
        claim_id=claim.id,
        decision="rejected",
        recipient_email=claim.claimant_email,
        recipient_name=claim.claimant_name,
        subject=f"Update on Your {product} Business Claim",
        body=body,
    )


class LoggingNotifier:
    """Writes notifications to the log; the default when no delivery backend is configured."""

    async def send(self, notification: ClaimNotification) -> None:
        logger.info(
            "Claim notification",
            claim_id=notification.claim_id,
            decision=notification.decision,
            recipient=notification.recipient_email,
            subject=notification.subject,
        )


class WebhookNotifier:
    """POSTs the notification as JSON to a mail relay / messaging webhook."""

    def __init__(self, url: str, timeout_seconds: Optional[float] = None):
        self.url = url
        self.timeout_seconds = float(timeout_seconds or NOTIFICATION_SETTINGS["timeout_seconds"])  # type: ignore[arg-type]

    async def send(self, notification: ClaimNotification) -> None:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.url, json=asdict(notification)) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise RuntimeError(f"Notification webhook returned {resp.status}: {text[:200]}")


async def dispatch_notification(notifier: Notifier, notification: ClaimNotification) -> bool:
    """Send ``notification``; returns False instead of raising on any delivery failure."""
    try:
        await notifier.send(notification)
        return True
    except Exception as e:  # delivery problems of any kind stay out of the review flow
        logger.error(
            "Claim notification failed",
            claim_id=notification.claim_id,
            decision=notification.decision,
            error=str(e),
        )
        return False


def build_notifier() -> Notifier:
    backend = str(NOTIFICATION_SETTINGS["backend"]).lower()
    if backend == "webhook":
        url = NOTIFICATION_SETTINGS["webhook_url"]
        if not url:
            logger.warning("NOTIFICATION_WEBHOOK_URL not set; falling back to log notifier")
            return LoggingNotifier()
        return WebhookNotifier(str(url))
    return LoggingNotifier()


__all__ = [
    "ClaimNotification",
    "Notifier",
    "build_approval_notification",
    "build_rejection_notification",
    "LoggingNotifier",
    "WebhookNotifier",
    "dispatch_notification",
    "build_notifier",
]
