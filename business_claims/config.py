"""Core application configuration & tunable claim lifecycle rules.

All business rules that may evolve (verification requirements, business profile
defaults, lookup resilience thresholds, notification routing, reviewer allowlist)
are centralized here so they can be adjusted without diving into service logic.
Values are module constants seeded from environment variables; tests monkeypatch
the module attributes directly.
"""
from __future__ import annotations

import os


def _csv_env(name: str) -> list[str]:
	raw = os.getenv(name, "").strip()
	return [part.strip() for part in raw.split(",") if part.strip()]


# ------------------------------ Claim Rules ------------------------------- #
CLAIM_RULES: dict[str, bool | str | int] = {
	# At least one of business phone / business email must be supplied.
	"require_business_contact": True,
	# Claimant must state their role at the business (owner, manager, ...).
	"require_business_role": True,
	"default_business_role": "owner",
	# Prefix written into review notes when an approved claim is soft-revoked.
	"revoke_notes_prefix": "revoked: ",
	# Upper bound for reviewer notes, revoke reasons and verification details.
	"max_notes_length": int(os.getenv("CLAIM_MAX_NOTES_LENGTH", "2000")),
}

# ------------------------- Business Profile Defaults ---------------------- #
# Conversion must never enroll a business into the discount program.
BUSINESS_PROFILE_DEFAULTS: dict[str, bool | int] = {
	"accepts_discounts": False,
	"customer_discount_percent": int(os.getenv("DEFAULT_CUSTOMER_DISCOUNT_PERCENT", "5")),
}

# ------------------------------ Place Lookup ------------------------------ #
PLACE_LOOKUP_SETTINGS: dict[str, str | float | None] = {
	"provider": os.getenv("PLACE_LOOKUP_PROVIDER", "static"),  # static | google
	"api_base_url": os.getenv("PLACE_LOOKUP_BASE_URL", "https://maps.googleapis.com/maps/api/place"),
	"api_key": os.getenv("GOOGLE_PLACES_API_KEY") or None,
	"timeout_seconds": float(os.getenv("PLACE_LOOKUP_TIMEOUT", "10")),
	"fields": "name,formatted_address,types,formatted_phone_number,website,geometry/location,photos",
	# Probability of simulated failure for the static provider (local dev only)
	"static_failure_rate": float(os.getenv("STATIC_LOOKUP_FAILURE_RATE", "0.0")),
}

# ----------------------------- Circuit Breaker ---------------------------- #
CIRCUIT_BREAKER: dict[str, int | float] = {
	"failure_threshold": 5,          # Consecutive failures before OPEN
	"open_cooldown_seconds": 300,    # Stay OPEN for 5 minutes
	"half_open_probe_count": 3,      # Probes allowed in HALF_OPEN
}

# --------------------------------- Backoff -------------------------------- #
BACKOFF_POLICY: dict[str, int | float] = {
	"base_seconds": 1,
	"factor": 2,          # Exponential factor
	"max_seconds": 30,
	"max_attempts": 3,
	"jitter_pct": 0.10,   # +/-10% jitter
}

# ------------------------------ Notifications ----------------------------- #
NOTIFICATION_SETTINGS: dict[str, str | float | None] = {
	"backend": os.getenv("NOTIFICATION_BACKEND", "log"),  # log | webhook
	"webhook_url": os.getenv("NOTIFICATION_WEBHOOK_URL") or None,
	"timeout_seconds": float(os.getenv("NOTIFICATION_TIMEOUT", "5")),
	"sender_name": os.getenv("NOTIFICATION_SENDER_NAME", "The iEndorse Team"),
	"product_name": os.getenv("NOTIFICATION_PRODUCT_NAME", "iEndorse"),
}

# ------------------------------ Authorization ----------------------------- #
# Identity ids holding the reviewer capability for the default allowlist
# authorizer. Deployments with a role service inject their own authorizer.
REVIEWER_IDS: list[str] = _csv_env("REVIEWER_IDS")

# Shared secret used by the surrounding application's backend when forwarding
# an authenticated caller identity (Authorization: Gateway <token>).
GATEWAY_INTERNAL_TOKEN: str | None = os.getenv("GATEWAY_INTERNAL_TOKEN") or None

__all__ = [
	"CLAIM_RULES",
	"BUSINESS_PROFILE_DEFAULTS",
	"PLACE_LOOKUP_SETTINGS",
	"CIRCUIT_BREAKER",
	"BACKOFF_POLICY",
	"NOTIFICATION_SETTINGS",
	"REVIEWER_IDS",
	"GATEWAY_INTERNAL_TOKEN",
]
