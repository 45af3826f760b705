#!/usr/bin/env python3
"""Seed script to populate the database with sample markers and posts."""

from goodmap.core.cache import NullPostCache
from goodmap.core.config import settings
from goodmap.core.database import Base, build_engine, build_session_factory
from goodmap.core.exceptions import ConflictError
from goodmap.auth.password import password_manager
from goodmap.services.marker_service import MarkerService
from goodmap.services.post_service import PostService


SAMPLE_MARKERS = [
    {
        "name": "Gyeongbokgung Palace",
        "latitude": 37.5796,
        "longitude": 126.9770,
        "tags": ["tourism_view"],
        "posts": [
            {"title": "Go early", "content": "<p>Arrive at opening time to avoid the crowds.</p>"},
        ],
    },
    {
        "name": "Cafe Onion Seongsu",
        "latitude": 37.5447,
        "longitude": 127.0582,
        "tags": ["cafe"],
        "posts": [
            {"title": "Great bread", "content": "<p>The pandoro sells out by noon.</p>"},
            {"title": "Busy weekends", "content": "<p>Expect a queue on Saturdays.</p>"},
        ],
    },
    {
        "name": "Gwangjang Market",
        "latitude": 37.5701,
        "longitude": 126.9996,
        "tags": ["restaurant", "shopping"],
        "posts": [],
    },
]


def create_sample_data(post_password: str = "sample123"):
    """Create sample markers and posts. Markers already present are skipped."""
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    cache = NullPostCache()

    markers = MarkerService(db, cache)
    posts = PostService(db, cache, password_manager)

    created_markers = 0
    created_posts = 0
    try:
        for sample in SAMPLE_MARKERS:
            try:
                marker = markers.create(
                    name=sample["name"],
                    latitude=sample["latitude"],
                    longitude=sample["longitude"],
                    tags=sample["tags"],
                )
            except ConflictError:
                print(f"Skipping {sample['name']}: a marker already exists there")
                continue

            created_markers += 1
            for post in sample["posts"]:
                posts.create(marker.id, post["title"], post["content"], post_password)
                created_posts += 1

        print("Sample data created successfully!")
        print(f"Created {created_markers} markers and {created_posts} posts")
        print(f"Sample post password: {post_password}")
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    create_sample_data()
