"""
Google Places "details" integration.

Resolves a place id to the attributes conversion copies into the business
profile. Only transport problems and server-side errors are raised as
retryable; an unknown place id is a normal ``None`` result.
"""
import asyncio
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from business_claims.config import PLACE_LOOKUP_SETTINGS
from business_claims.models.schemas.places import PlaceDetails
from business_claims.utils import get_logger
from .base import PlaceLookupError, PlaceLookupProvider

logger = get_logger(__name__)

# Statuses in the response body that mean "no such place" rather than failure
_NOT_FOUND_STATUSES = {"NOT_FOUND", "ZERO_RESULTS", "INVALID_REQUEST"}
_DENIED_STATUSES = {"REQUEST_DENIED", "OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT"}


def parse_place_result(result: Dict[str, Any]) -> PlaceDetails:
    location = (result.get("geometry") or {}).get("location") or {}
    types = result.get("types") or []
    photos = result.get("photos") or []
    return PlaceDetails(
        name=result.get("name"),
        address=result.get("formatted_address"),
        category=types[0].replace("_", " ") if types else None,
        phone=result.get("formatted_phone_number") or result.get("international_phone_number"),
        website=result.get("website"),
        latitude=location.get("lat"),
        longitude=location.get("lng"),
        photo_ref=photos[0].get("photo_reference") if photos else None,
    )


class GooglePlacesProvider(PlaceLookupProvider):
    """Place lookup backed by the Google Places details endpoint."""

    name = "google"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.api_key = api_key or PLACE_LOOKUP_SETTINGS["api_key"]
        self.base_url = str(base_url or PLACE_LOOKUP_SETTINGS["api_base_url"]).rstrip("/")
        self.timeout_seconds = float(timeout_seconds or PLACE_LOOKUP_SETTINGS["timeout_seconds"])  # type: ignore[arg-type]

    async def fetch_place(self, target_id: str) -> Optional[PlaceDetails]:
        if not self.api_key:
            raise PlaceLookupError("GOOGLE_PLACES_API_KEY not configured", retryable=False)

        params = {
            "place_id": target_id,
            "fields": PLACE_LOOKUP_SETTINGS["fields"],
            "key": self.api_key,
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(f"{self.base_url}/details/json", params=params) as response:
                    if response.status >= 500 or response.status == 429:
                        raise PlaceLookupError(
                            f"Places API returned status {response.status}", status=response.status
                        )
                    if response.status in (401, 403):
                        raise PlaceLookupError(
                            f"Places API rejected credentials ({response.status})",
                            retryable=False,
                            status=response.status,
                        )
                    if response.status == 404:
                        return None
                    data = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise PlaceLookupError("Places API request timed out") from e
        except aiohttp.ClientError as e:
            raise PlaceLookupError(f"Places API client error: {e}") from e
        except ValueError as e:
            raise PlaceLookupError("Places API returned a body that is not JSON") from e

        status = (data or {}).get("status", "UNKNOWN_ERROR")
        if status == "OK":
            try:
                return parse_place_result(data.get("result") or {})
            except (ValidationError, AttributeError) as e:
                raise PlaceLookupError(
                    f"Places API returned a malformed result: {e}", retryable=False
                ) from e
        if status in _NOT_FOUND_STATUSES:
            logger.info("Place not known to provider", target_id=target_id, status=status)
            return None
        if status in _DENIED_STATUSES:
            raise PlaceLookupError(
                f"Places API denied the request: {status}",
                retryable=status != "REQUEST_DENIED",
            )
        raise PlaceLookupError(f"Places API error status: {status}")
