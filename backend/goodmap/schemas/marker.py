"""
Marker Schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from goodmap.models.marker import Marker, MarkerTag


def _unique_tags(tags: List[MarkerTag]) -> List[MarkerTag]:
    return list(dict.fromkeys(tags))


class MarkerCreate(BaseModel):
    """Schema for dropping a new marker on the map"""
    name: str = Field(..., min_length=1, max_length=255, description="Place name")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")
    tags: List[MarkerTag] = Field(default_factory=list, description="Tags from the fixed vocabulary")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def coordinate_is_number(cls, value):
        # Numeric strings and booleans would otherwise be coerced.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        return value

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: List[MarkerTag]) -> List[MarkerTag]:
        return _unique_tags(value)


class MarkerTagsUpdate(BaseModel):
    """Full replacement of a marker's tags"""
    tags: List[MarkerTag]

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: List[MarkerTag]) -> List[MarkerTag]:
        return _unique_tags(value)


class MarkerResponse(BaseModel):
    id: str
    name: str
    latitude: float
    longitude: float
    tags: List[str]
    created_at: datetime
    post_ids: Optional[List[str]] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_marker(cls, marker: Marker, include_posts: bool = True) -> "MarkerResponse":
        return cls(
            id=marker.id,
            name=marker.name,
            latitude=marker.latitude,
            longitude=marker.longitude,
            tags=list(marker.tags or []),
            created_at=marker.created_at,
            post_ids=marker.post_ids if include_posts else None,
        )
