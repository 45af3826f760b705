from fastapi import APIRouter, Depends, Query, Response, status
from typing import List, Optional

from goodmap.api.deps import get_marker_service
from goodmap.schemas.marker import MarkerCreate, MarkerTagsUpdate, MarkerResponse
from goodmap.services.marker_service import MarkerService

router = APIRouter(prefix="/markers", tags=["markers"])


@router.get("", response_model=List[MarkerResponse])
def get_markers(
    name: Optional[str] = Query(None, description="Case-insensitive name substring"),
    include_posts: bool = Query(True, description="Include post ids so clients can tell which markers are deletable"),
    service: MarkerService = Depends(get_marker_service)
):
    """Get all markers."""
    return service.list(name=name, include_posts=include_posts)


@router.post("", response_model=MarkerResponse, status_code=status.HTTP_201_CREATED)
def create_marker(
    marker_data: MarkerCreate,
    service: MarkerService = Depends(get_marker_service)
):
    """Drop a new marker. Fails when a marker already sits on the same coordinates."""
    return service.create(
        name=marker_data.name,
        latitude=marker_data.latitude,
        longitude=marker_data.longitude,
        tags=marker_data.tags,
    )


@router.get("/{marker_id}", response_model=MarkerResponse)
def get_marker(
    marker_id: str,
    service: MarkerService = Depends(get_marker_service)
):
    """Get a specific marker by ID."""
    return service.get(marker_id)


@router.patch("/{marker_id}", response_model=MarkerResponse)
def update_marker_tags(
    marker_id: str,
    tags_data: MarkerTagsUpdate,
    service: MarkerService = Depends(get_marker_service)
):
    """Replace the marker's tags."""
    return service.update_tags(marker_id, tags_data.tags)


@router.delete("/{marker_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_marker(
    marker_id: str,
    service: MarkerService = Depends(get_marker_service)
):
    """Delete a marker that has no posts."""
    service.delete(marker_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
