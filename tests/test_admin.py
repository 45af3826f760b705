"""
Tests for admin login, the admin-only post listing and admin moderation.
"""

from fastapi.testclient import TestClient

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, make_marker, make_post
from goodmap.auth.jwt_manager import JWTManager, jwt_manager
from goodmap.core.config import settings
from goodmap.main import create_app
from goodmap.models import User


def login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    return client.post("/admin/login", json={"email": email, "password": password})


def test_login_returns_token_and_cookie(client, admin_user):
    response = login(client)

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == ADMIN_EMAIL
    assert body["user"]["is_admin"] is True
    assert body["user"]["last_login_at"] is not None
    assert jwt_manager.verify_access_token(body["access_token"])["sub"] == admin_user.id
    assert response.cookies.get(settings.admin_token_cookie_name) == body["access_token"]


def test_login_wrong_password(client, admin_user):
    response = login(client, password="wrong")

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


def test_login_unknown_user(client):
    response = login(client, email="nobody@example.com")

    assert response.status_code == 401


def test_login_lockout_after_repeated_failures(client, admin_user):
    for _ in range(settings.max_login_attempts):
        assert login(client, password="wrong").status_code == 401

    response = login(client)

    assert response.status_code == 429
    assert "Retry-After" in response.headers


def test_me_requires_admin(client, admin_user, admin_headers):
    assert client.get("/admin/me").status_code == 403

    response = client.get("/admin/me", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["email"] == ADMIN_EMAIL


def test_cookie_session_is_accepted(client, admin_user):
    login(client)

    # TestClient keeps the HttpOnly cookie set at login
    assert client.get("/admin/me").status_code == 200

    client.post("/admin/logout")
    client.cookies.clear()
    assert client.get("/admin/me").status_code == 403


def test_all_posts_requires_admin(client):
    response = client.get("/posts")

    assert response.status_code == 403
    assert response.json()["error"] == "어드민 권한이 필요합니다."


def test_all_posts_rejects_non_admin_and_bad_tokens(client, session_factory):
    db = session_factory()
    user = User(email="member@example.com", hashed_password="x", is_admin=False)
    db.add(user)
    db.commit()
    member_token = jwt_manager.create_access_token(user.id, is_admin=False)
    db.close()

    forged = JWTManager("another-secret").create_access_token("someone", is_admin=True)

    for token in (member_token, forged, "garbage"):
        response = client.get("/posts", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403


def test_all_posts_pagination(client, admin_headers):
    marker_a = make_marker(client, latitude=1, longitude=1)
    marker_b = make_marker(client, latitude=2, longitude=2)
    created = []
    for i in range(3):
        created.append(make_post(client, marker_a["id"], title=f"a{i}"))
        created.append(make_post(client, marker_b["id"], title=f"b{i}"))

    first = client.get("/posts", params={"page": 1, "limit": 4}, headers=admin_headers).json()
    second = client.get("/posts", params={"page": 2, "limit": 4}, headers=admin_headers).json()

    assert first["total"] == 6
    assert first["page"] == 1
    assert first["limit"] == 4
    assert len(first["posts"]) == 4
    assert len(second["posts"]) == 2
    newest_first = [p["id"] for p in reversed(created)]
    assert [p["id"] for p in first["posts"] + second["posts"]] == newest_first


def test_all_posts_defaults(client, admin_headers):
    body = client.get("/posts", headers=admin_headers).json()

    assert body == {"posts": [], "total": 0, "page": 1, "limit": 10}


def test_all_posts_rejects_bad_paging(client, admin_headers):
    assert client.get("/posts", params={"page": 0}, headers=admin_headers).status_code == 400
    assert client.get("/posts", params={"limit": 0}, headers=admin_headers).status_code == 400


def test_admin_deletes_without_password(client, admin_headers):
    marker = make_marker(client)
    post = make_post(client, marker["id"], password="pw1")

    response = client.delete(f"/posts/{post['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert client.get(f"/markers/{marker['id']}/posts").json() == []


def test_admin_edits_without_password(client, admin_headers):
    marker = make_marker(client)
    post = make_post(client, marker["id"], password="pw1")

    response = client.patch(
        f"/posts/{post['id']}",
        json={"title": "Moderated", "content": "removed"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["title"] == "Moderated"


def test_non_admin_token_does_not_bypass_password(client, session_factory):
    marker = make_marker(client)
    post = make_post(client, marker["id"], password="pw1")
    member_token = jwt_manager.create_access_token("member-id", is_admin=False)

    response = client.delete(f"/posts/{post['id']}", headers={"Authorization": f"Bearer {member_token}"})

    assert response.status_code == 401


def test_login_uses_the_app_cookie_name(test_settings, engine, post_cache, admin_user):
    custom = test_settings.model_copy(update={"admin_token_cookie_name": "goodmap_session"})
    custom_app = create_app(app_settings=custom, engine=engine, post_cache=post_cache)

    with TestClient(custom_app) as custom_client:
        response = login(custom_client)
        assert response.cookies.get("goodmap_session") == response.json()["access_token"]
        assert settings.admin_token_cookie_name not in response.cookies

        # The session cookie is read back under the same name
        assert custom_client.get("/admin/me").status_code == 200
