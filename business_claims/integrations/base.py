from abc import ABC, abstractmethod
from typing import Optional

from business_claims.models.schemas.places import PlaceDetails


class PlaceLookupError(Exception):
    """Provider could not answer. ``retryable`` is False for errors a retry cannot fix (bad key, quota denied)."""

    def __init__(self, message: str, *, retryable: bool = True, status: Optional[int] = None):
        super().__init__(message)
        self.retryable = retryable
        self.status = status


class PlaceLookupProvider(ABC):
    name: str = "base"

    @abstractmethod
    async def fetch_place(self, target_id: str) -> Optional[PlaceDetails]:
        """Fetch current listing attributes; None when the provider does not know the id."""
        pass
