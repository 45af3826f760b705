import logging
from typing import List, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from goodmap.api.metrics import metrics_collector
from goodmap.auth.password import PasswordManager
from goodmap.core.cache import PostCache
from goodmap.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from goodmap.models import Marker, Post
from goodmap.schemas.post import PostDeleteResponse, PostPage, PostResponse
from goodmap.services.marker_service import MARKER_NOT_FOUND_MESSAGE

logger = logging.getLogger(__name__)

POST_NOT_FOUND_MESSAGE = "글을 찾을 수 없습니다."
WRONG_PASSWORD_MESSAGE = "비밀번호가 일치하지 않습니다."


class PostService:
    """Post CRUD scoped to a marker.

    Edit and delete are gated by the per-post password (an admin session skips
    the check). Every mutation drops the owning marker's cached post list after
    the database commit.
    """

    def __init__(self, db: Session, cache: PostCache, password_manager: PasswordManager):
        self.db = db
        self.cache = cache
        self.password_manager = password_manager

    def _get_post(self, post_id: str) -> Post:
        post = self.db.get(Post, post_id)
        if not post:
            raise NotFoundError(POST_NOT_FOUND_MESSAGE)
        return post

    def _ensure_marker(self, marker_id: str) -> None:
        if not self.db.get(Marker, marker_id):
            raise NotFoundError(MARKER_NOT_FOUND_MESSAGE)

    def _authorize(self, post: Post, password: Optional[str], is_admin: bool) -> None:
        if is_admin:
            return
        if not self.password_manager.verify_password(password or "", post.hashed_password):
            raise UnauthorizedError(WRONG_PASSWORD_MESSAGE)

    def create(self, marker_id: str, title: str, content: str, password: str) -> PostResponse:
        if not title or not password:
            raise ValidationError("제목과 비밀번호는 필수입니다.")
        self._ensure_marker(marker_id)

        post = Post(
            marker_id=marker_id,
            title=title,
            content=content or "",
            hashed_password=self.password_manager.hash_password(password),
            likes=0,
        )
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)

        self.cache.invalidate(marker_id)
        metrics_collector.record_post_mutation("create")
        logger.info(f"Created post {post.id} on marker {marker_id}")
        return PostResponse.model_validate(post)

    def list(self, marker_id: str) -> List[PostResponse]:
        """Posts of one marker, newest first. Served from cache when possible."""
        cached = self.cache.get_posts(marker_id)
        if cached is not None:
            try:
                return [PostResponse.model_validate(item) for item in cached]
            except SchemaValidationError:
                logger.warning(f"Cached posts for marker {marker_id} do not match the schema, reloading")
                self.cache.invalidate(marker_id)

        self._ensure_marker(marker_id)
        posts = (
            self.db.query(Post)
            .filter(Post.marker_id == marker_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .all()
        )
        responses = [PostResponse.model_validate(post) for post in posts]

        self.cache.set_posts(marker_id, [response.model_dump(mode="json") for response in responses])
        return responses

    def edit(self, post_id: str, title: str, content: str, password: Optional[str], is_admin: bool = False) -> PostResponse:
        post = self._get_post(post_id)
        self._authorize(post, password, is_admin)
        if not title:
            raise ValidationError("제목은 필수입니다.")

        post.title = title
        post.content = content or ""
        self.db.commit()
        self.db.refresh(post)

        self.cache.invalidate(post.marker_id)
        metrics_collector.record_post_mutation("edit")
        return PostResponse.model_validate(post)

    def delete(self, post_id: str, password: Optional[str] = None, is_admin: bool = False) -> PostDeleteResponse:
        post = self._get_post(post_id)
        self._authorize(post, password, is_admin)

        marker_id = post.marker_id
        self.db.delete(post)
        self.db.commit()

        self.cache.invalidate(marker_id)
        metrics_collector.record_post_mutation("delete")
        logger.info(f"Deleted post {post_id} from marker {marker_id}")
        return PostDeleteResponse(post_id=post_id, marker_id=marker_id)

    def like(self, post_id: str) -> PostResponse:
        # Single UPDATE so concurrent likes never overwrite each other.
        updated = (
            self.db.query(Post)
            .filter(Post.id == post_id)
            .update({Post.likes: Post.likes + 1}, synchronize_session=False)
        )
        if not updated:
            self.db.rollback()
            raise NotFoundError(POST_NOT_FOUND_MESSAGE)
        self.db.commit()

        post = self._get_post(post_id)
        self.db.refresh(post)

        self.cache.invalidate(post.marker_id)
        metrics_collector.record_post_mutation("like")
        return PostResponse.model_validate(post)

    def list_all(self, page: int = 1, limit: int = 10) -> PostPage:
        """Admin listing of every post, newest first."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")

        total = self.db.query(func.count(Post.id)).scalar() or 0
        posts = (
            self.db.query(Post)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return PostPage(
            posts=[PostResponse.model_validate(post) for post in posts],
            total=total,
            page=page,
            limit=limit,
        )
