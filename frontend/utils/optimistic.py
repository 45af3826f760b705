"""Optimistic updates for likes and deletes.

The local view changes first; the server call follows and the change is
rolled back when the server refuses or cannot be reached.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

ALREADY_LIKED_MESSAGE = "이미 좋아요를 눌렀습니다."


class OptimisticCommand:
    """Apply a local change, run a request, revert if the request fails.

    ``request`` returns an API client response dict. Anything other than
    ``{"success": True, ...}`` counts as failure.
    """

    def __init__(self, apply: Callable[[], None], request: Callable[[], Dict[str, Any]], revert: Callable[[], None]):
        self.apply = apply
        self.request = request
        self.revert = revert

    def execute(self) -> Dict[str, Any]:
        self.apply()
        try:
            response = self.request()
        except Exception:
            self.revert()
            raise
        if not response.get("success"):
            logger.info(f"Reverting optimistic change: {response.get('error')}")
            self.revert()
        return response


class PostBoard:
    """Posts shown for one marker plus the posts this session already liked."""

    def __init__(self, posts: Iterable[Dict[str, Any]], liked_ids: Optional[Set[str]] = None):
        self.posts: List[Dict[str, Any]] = [dict(post) for post in posts]
        self.liked_ids: Set[str] = liked_ids if liked_ids is not None else set()

    def find(self, post_id: str) -> Optional[Dict[str, Any]]:
        for post in self.posts:
            if post["id"] == post_id:
                return post
        return None

    def has_liked(self, post_id: str) -> bool:
        return post_id in self.liked_ids

    def like(self, post_id: str, send: Callable[[str], Dict[str, Any]]) -> Dict[str, Any]:
        """Like once per session. The count moves before the server answers."""
        if post_id in self.liked_ids:
            return {"success": False, "error": ALREADY_LIKED_MESSAGE, "status_code": None}

        post = self.find(post_id)
        if post is None:
            return send(post_id)

        def apply():
            post["likes"] += 1
            self.liked_ids.add(post_id)

        def revert():
            post["likes"] -= 1
            self.liked_ids.discard(post_id)

        response = OptimisticCommand(apply, lambda: send(post_id), revert).execute()
        if response.get("success") and response.get("data"):
            # Other sessions may have liked in the meantime
            post["likes"] = response["data"]["likes"]
        return response

    def delete(self, post_id: str, send: Callable[[str], Dict[str, Any]]) -> Dict[str, Any]:
        """Remove the post from view, put it back in place if the server refuses."""
        index = next((i for i, post in enumerate(self.posts) if post["id"] == post_id), None)
        if index is None:
            return send(post_id)
        removed = self.posts[index]

        def apply():
            self.posts.pop(index)

        def revert():
            self.posts.insert(index, removed)

        return OptimisticCommand(apply, lambda: send(post_id), revert).execute()

    def replace(self, updated: Dict[str, Any]):
        """Swap in the server's copy of an edited post."""
        for i, post in enumerate(self.posts):
            if post["id"] == updated["id"]:
                self.posts[i] = dict(updated)
                return

    def prepend(self, created: Dict[str, Any]):
        self.posts.insert(0, dict(created))


def forget_post(markers: List[Dict[str, Any]], marker_id: str, post_id: str):
    """Drop a deleted post from its marker's ``post_ids``."""
    for marker in markers:
        if marker["id"] == marker_id and marker.get("post_ids"):
            marker["post_ids"] = [pid for pid in marker["post_ids"] if pid != post_id]
