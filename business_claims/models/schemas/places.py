"""
Pydantic schema for attributes returned by the place-lookup collaborator.
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class PlaceDetails(BaseModel):
    """Fresh listing attributes fetched at conversion time.

    Every field is optional: a partially failed lookup still yields a usable
    object and the conversion falls back to the claim snapshot per field.
    """
    name: Optional[str] = None
    address: Optional[str] = None
    category: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    photo_ref: Optional[str] = Field(None, description="Provider photo reference or URL used as logo")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Blue Door Coffee",
            "address": "12 Main St, Springfield",
            "category": "cafe",
            "phone": "+1 555 0100",
            "website": "https://bluedoor.example",
            "latitude": 40.7128,
            "longitude": -74.006,
            "photo_ref": "AWU5eFg..."
        }
    })

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
