"""
Integrations package initialization.
Exports the place lookup providers.
"""
from .base import PlaceLookupError, PlaceLookupProvider
from .google_places import GooglePlacesProvider
from .static import StaticPlaceProvider

__all__ = [
    "PlaceLookupError",
    "PlaceLookupProvider",
    "GooglePlacesProvider",
    "StaticPlaceProvider",
]
