import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from goodmap.api.metrics import metrics_collector
from goodmap.core.cache import PostCache
from goodmap.core.exceptions import ConflictError, NotFoundError, ValidationError
from goodmap.models import Marker, MarkerTag
from goodmap.schemas.marker import MarkerResponse

logger = logging.getLogger(__name__)

DUPLICATE_LOCATION_MESSAGE = "이미 해당 위치에 마커가 있습니다."
MARKER_NOT_FOUND_MESSAGE = "마커를 찾을 수 없습니다."
MARKER_HAS_POSTS_MESSAGE = "이 마커에 연결된 글이 있어 삭제할 수 없습니다. 먼저 글을 삭제하세요."


def normalize_tags(tags: Optional[Iterable]) -> List[str]:
    """Validate tags against the vocabulary and drop duplicates, keeping first-seen order."""
    if tags is None:
        return []
    if isinstance(tags, (str, bytes)) or not isinstance(tags, (list, tuple, set)):
        raise ValidationError("tags must be an array")

    normalized = []
    for tag in tags:
        try:
            value = MarkerTag(tag).value
        except ValueError:
            raise ValidationError(f"Unknown tag: {tag}")
        if value not in normalized:
            normalized.append(value)
    return normalized


class MarkerService:
    """Marker CRUD. One marker per coordinate; only post-free markers can be deleted."""

    def __init__(self, db: Session, cache: PostCache):
        self.db = db
        self.cache = cache

    def _get_marker(self, marker_id: str) -> Marker:
        marker = self.db.get(Marker, marker_id)
        if not marker:
            raise NotFoundError(MARKER_NOT_FOUND_MESSAGE)
        return marker

    def create(self, name: str, latitude: float, longitude: float, tags: Optional[Iterable] = None) -> MarkerResponse:
        name = (name or "").strip()
        if not name:
            raise ValidationError("이름, 위도, 경도는 필수입니다.")
        for value in (latitude, longitude):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError("이름, 위도, 경도는 필수입니다.")

        marker = Marker(
            name=name,
            latitude=float(latitude),
            longitude=float(longitude),
            tags=normalize_tags(tags),
        )
        self.db.add(marker)

        # The unique constraint on (latitude, longitude) decides duplicates.
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Marker already exists at ({latitude}, {longitude})")
            raise ConflictError(DUPLICATE_LOCATION_MESSAGE)

        self.db.refresh(marker)
        metrics_collector.record_marker_mutation("create")
        logger.info(f"Created marker {marker.id} at ({marker.latitude}, {marker.longitude})")
        return MarkerResponse.from_marker(marker)

    def list(self, name: Optional[str] = None, include_posts: bool = True) -> List[MarkerResponse]:
        query = self.db.query(Marker)
        if include_posts:
            query = query.options(selectinload(Marker.posts))
        if name:
            query = query.filter(Marker.name.icontains(name, autoescape=True))

        markers = query.order_by(Marker.created_at.asc()).all()
        return [MarkerResponse.from_marker(marker, include_posts=include_posts) for marker in markers]

    def get(self, marker_id: str) -> MarkerResponse:
        return MarkerResponse.from_marker(self._get_marker(marker_id))

    def update_tags(self, marker_id: str, tags) -> MarkerResponse:
        if not isinstance(tags, (list, tuple)):
            raise ValidationError("tags must be an array")
        normalized = normalize_tags(tags)

        marker = self._get_marker(marker_id)
        marker.tags = normalized
        self.db.commit()
        self.db.refresh(marker)

        metrics_collector.record_marker_mutation("update_tags")
        return MarkerResponse.from_marker(marker)

    def delete(self, marker_id: str) -> None:
        marker = self._get_marker(marker_id)
        if marker.posts:
            raise ConflictError(MARKER_HAS_POSTS_MESSAGE)

        self.db.delete(marker)
        try:
            self.db.commit()
        except IntegrityError:
            # A post was attached after the check above.
            self.db.rollback()
            raise ConflictError(MARKER_HAS_POSTS_MESSAGE)

        self.cache.invalidate(marker_id)
        metrics_collector.record_marker_mutation("delete")
        logger.info(f"Deleted marker: {marker_id}")
