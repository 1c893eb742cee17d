"""
In-memory place lookup for local development and tests.

Serves a fixed catalogue of places; ``failure_rate`` and ``unavailable``
simulate an unreliable upstream the same way a flaky network would.
"""
import asyncio
import random
from typing import Dict, Optional

from business_claims.config import PLACE_LOOKUP_SETTINGS
from business_claims.models.schemas.places import PlaceDetails
from business_claims.utils import get_logger
from .base import PlaceLookupError, PlaceLookupProvider

logger = get_logger(__name__)


class StaticPlaceProvider(PlaceLookupProvider):
    name = "static"

    def __init__(
        self,
        places: Optional[Dict[str, PlaceDetails]] = None,
        failure_rate: Optional[float] = None,
        latency_seconds: float = 0.0,
    ):
        self.places: Dict[str, PlaceDetails] = dict(places or {})
        self.failure_rate = float(
            failure_rate if failure_rate is not None else PLACE_LOOKUP_SETTINGS["static_failure_rate"]  # type: ignore[arg-type]
        )
        self.latency_seconds = latency_seconds
        self.unavailable = False
        self.calls = 0

    def add_place(self, target_id: str, details: PlaceDetails) -> None:
        self.places[target_id] = details

    async def fetch_place(self, target_id: str) -> Optional[PlaceDetails]:
        self.calls += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        if self.unavailable:
            raise PlaceLookupError("Static place provider marked unavailable", status=503)
        if self.failure_rate and random.random() < self.failure_rate:
            logger.warning("Simulated place lookup failure", target_id=target_id)
            raise PlaceLookupError("Simulated place lookup failure", status=503)
        return self.places.get(target_id)
