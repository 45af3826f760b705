"""
Tests for the marker endpoints.

Covers creation, duplicate coordinates, name search, tag updates and the
"only markers without posts can be deleted" rule.
"""

from conftest import make_marker, make_post


def test_create_marker_returns_created_marker(client):
    """POST /markers echoes the marker with an id and an empty post list."""
    marker = make_marker(client, name="  Namsan Tower ", tags=["tourism_view", "tourism_view", "cafe"])

    assert marker["id"]
    assert marker["name"] == "Namsan Tower"
    assert marker["latitude"] == 37.5665
    assert marker["longitude"] == 126.978
    assert marker["tags"] == ["tourism_view", "cafe"]
    assert marker["post_ids"] == []
    assert "created_at" in marker


def test_create_marker_duplicate_coordinates(client):
    """A second marker on the same coordinates is refused and nothing is added."""
    make_marker(client, name="First")

    response = client.post("/markers", json={"name": "Second", "latitude": 37.5665, "longitude": 126.978})

    assert response.status_code == 400
    assert response.json()["error"] == "이미 해당 위치에 마커가 있습니다."
    assert len(client.get("/markers").json()) == 1


def test_create_marker_nearby_coordinates_allowed(client):
    make_marker(client, latitude=37.5665, longitude=126.978)
    make_marker(client, latitude=37.5666, longitude=126.978)

    assert len(client.get("/markers").json()) == 2


def test_create_marker_validation(client):
    """Missing names, out-of-range or non-numeric coordinates and unknown tags are 400s."""
    bad_payloads = [
        {"latitude": 1, "longitude": 1},
        {"name": "   ", "latitude": 1, "longitude": 1},
        {"name": "x", "latitude": 91, "longitude": 1},
        {"name": "x", "latitude": 1, "longitude": -180.5},
        {"name": "x", "latitude": "37.5", "longitude": 1},
        {"name": "x", "latitude": True, "longitude": 1},
        {"name": "x", "latitude": 1, "longitude": 1, "tags": ["nightlife"]},
    ]

    for payload in bad_payloads:
        response = client.post("/markers", json=payload)
        assert response.status_code == 400, payload
        body = response.json()
        assert body["status_code"] == 400
        assert body["error"]
        assert "request_id" in body


def test_list_markers_with_post_ids(client):
    marker = make_marker(client)
    post = make_post(client, marker["id"])

    markers = client.get("/markers").json()

    assert markers[0]["post_ids"] == [post["id"]]


def test_list_markers_without_posts(client):
    make_marker(client)

    markers = client.get("/markers", params={"include_posts": "false"}).json()

    assert markers[0]["post_ids"] is None


def test_search_markers_by_name_case_insensitive(client):
    make_marker(client, name="Gwangjang Market", latitude=37.57, longitude=126.99)
    make_marker(client, name="Namdaemun MARKET", latitude=37.56, longitude=126.97)
    make_marker(client, name="Bukchon Village", latitude=37.58, longitude=126.98)

    names = {m["name"] for m in client.get("/markers", params={"name": "market"}).json()}

    assert names == {"Gwangjang Market", "Namdaemun MARKET"}


def test_search_markers_treats_wildcards_literally(client):
    make_marker(client, name="100% Beef", latitude=1, longitude=1)
    make_marker(client, name="Beef House", latitude=2, longitude=2)

    names = [m["name"] for m in client.get("/markers", params={"name": "%"}).json()]

    assert names == ["100% Beef"]


def test_get_marker(client):
    marker = make_marker(client)

    response = client.get(f"/markers/{marker['id']}")

    assert response.status_code == 200
    assert response.json()["name"] == marker["name"]


def test_get_unknown_marker(client):
    response = client.get("/markers/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "마커를 찾을 수 없습니다."


def test_update_marker_tags_replaces_set(client):
    marker = make_marker(client, tags=["cafe"])

    response = client.patch(f"/markers/{marker['id']}", json={"tags": ["restaurant", "shopping", "restaurant"]})

    assert response.status_code == 200
    assert response.json()["tags"] == ["restaurant", "shopping"]
    assert client.get(f"/markers/{marker['id']}").json()["tags"] == ["restaurant", "shopping"]


def test_update_marker_tags_can_clear(client):
    marker = make_marker(client, tags=["cafe"])

    response = client.patch(f"/markers/{marker['id']}", json={"tags": []})

    assert response.status_code == 200
    assert response.json()["tags"] == []


def test_update_marker_tags_rejects_bad_input(client):
    marker = make_marker(client, tags=["cafe"])

    assert client.patch(f"/markers/{marker['id']}", json={"tags": "cafe"}).status_code == 400
    assert client.patch(f"/markers/{marker['id']}", json={"tags": ["bar"]}).status_code == 400
    assert client.patch(f"/markers/{marker['id']}", json={}).status_code == 400
    assert client.get(f"/markers/{marker['id']}").json()["tags"] == ["cafe"]


def test_update_tags_unknown_marker(client):
    response = client.patch("/markers/missing", json={"tags": []})

    assert response.status_code == 404


def test_delete_marker_without_posts(client):
    marker = make_marker(client)

    response = client.delete(f"/markers/{marker['id']}")

    assert response.status_code == 204
    assert client.get(f"/markers/{marker['id']}").status_code == 404


def test_delete_marker_with_posts_refused(client):
    marker = make_marker(client)
    make_post(client, marker["id"])

    response = client.delete(f"/markers/{marker['id']}")

    assert response.status_code == 400
    assert response.json()["error"] == "이 마커에 연결된 글이 있어 삭제할 수 없습니다. 먼저 글을 삭제하세요."
    assert client.get(f"/markers/{marker['id']}").status_code == 200


def test_delete_marker_with_posts_refused_for_admin(client, admin_headers):
    marker = make_marker(client)
    make_post(client, marker["id"])

    response = client.delete(f"/markers/{marker['id']}", headers=admin_headers)

    assert response.status_code == 400


def test_delete_unknown_marker(client):
    assert client.delete("/markers/missing").status_code == 404


def test_coordinates_free_again_after_delete(client):
    marker = make_marker(client)
    client.delete(f"/markers/{marker['id']}")

    make_marker(client, name="Replacement")
