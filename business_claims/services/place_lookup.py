"""Place lookup wrapper applying circuit breaker and retries.

Conversion re-fetches a listing's attributes right before writing the business
profile. This module owns the resilience around that call:

* the circuit breaker short-circuits while the provider is known to be down
* retryable provider errors are retried with exponential backoff
* exhaustion (or an open circuit) raises LookupUnavailable so the claim stays
  approved and unconverted

An unknown place id is not an error: ``lookup`` returns None and conversion
falls back to the claim's snapshot.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from business_claims.config import BACKOFF_POLICY, PLACE_LOOKUP_SETTINGS
from business_claims.integrations import (
    GooglePlacesProvider,
    PlaceLookupError,
    PlaceLookupProvider,
    StaticPlaceProvider,
)
from business_claims.models.schemas.places import PlaceDetails
from business_claims.services.errors import LookupUnavailable
from business_claims.utils import get_logger
from business_claims.utils.backoff import compute_backoff_seconds
from business_claims.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER, CircuitBreaker

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class PlaceLookupService:
    """Resilient place lookup for a single provider."""

    def __init__(
        self,
        provider: PlaceLookupProvider,
        *,
        breaker: CircuitBreaker | None = None,
        max_attempts: int | None = None,
        sleep: SleepFn | None = None,
    ):
        self.provider = provider
        self.breaker = breaker or GLOBAL_CIRCUIT_BREAKER
        self.max_attempts = int(max_attempts or BACKOFF_POLICY["max_attempts"])  # type: ignore[index]
        self._sleep = sleep or asyncio.sleep

    @property
    def breaker_key(self) -> str:
        return f"place_lookup:{self.provider.name}"

    async def lookup(self, target_id: str) -> Optional[PlaceDetails]:
        allow, reason = self.breaker.allow_call(self.breaker_key)
        if not allow:
            logger.warning(
                "Place lookup skipped due to circuit breaker",
                provider=self.provider.name,
                target_id=target_id,
                reason=reason,
            )
            raise LookupUnavailable(
                "Place lookup temporarily unavailable (circuit open); retry conversion later",
                target_id=target_id,
                reason=reason,
            )

        attempts = 0
        last_error: PlaceLookupError | None = None
        while attempts < self.max_attempts:
            attempts += 1
            try:
                details = await self.provider.fetch_place(target_id)
            except PlaceLookupError as e:
                last_error = e
                self.breaker.record_failure(self.breaker_key)
                logger.warning(
                    "Place lookup attempt failed",
                    provider=self.provider.name,
                    target_id=target_id,
                    attempt=attempts,
                    retryable=e.retryable,
                    error=str(e),
                )
                if not e.retryable or attempts >= self.max_attempts:
                    break
                await self._sleep(compute_backoff_seconds(attempts))
                continue

            self.breaker.record_success(self.breaker_key)
            if details is None:
                logger.info("Place not found; snapshot will be used", target_id=target_id)
            return details

        raise LookupUnavailable(
            f"Place lookup failed after {attempts} attempt(s); retry conversion later",
            cause=last_error,
            target_id=target_id,
            attempts=attempts,
        )


def build_place_lookup_service(provider_name: str | None = None) -> PlaceLookupService:
    """Construct the configured provider (``static`` unless ``google`` is selected)."""
    name = (provider_name or str(PLACE_LOOKUP_SETTINGS["provider"])).lower()
    if name == "google":
        provider: PlaceLookupProvider = GooglePlacesProvider()
    elif name == "static":
        provider = StaticPlaceProvider()
    else:
        raise ValueError(f"Unknown place lookup provider: {name}")
    logger.info("Place lookup provider configured", provider=provider.name)
    return PlaceLookupService(provider)


__all__ = ["PlaceLookupService", "build_place_lookup_service"]
