from __future__ import annotations

import io

from PIL import Image

AUTH = {"Authorization": "Bearer good-token"}


def test_healthz(api_env):
    client, *_ = api_env
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_create_then_fetch_image(api_env):
    client, spotify, host, store = api_env
    r = client.post("/api/collages", json={"grid_size": 3, "canvas_size": 300}, headers=AUTH)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["width"] == body["height"] == 300
    assert body["grid_size"] == 3 and body["cell_size"] == 100
    assert body["label_rows"][1] == ["Artist 3", "Artist 4", "Artist 5"]
    assert body["report"]["images_fetched"] == 9
    assert body["image_url"] == f"/api/collages/{body['collage_id']}"

    img = client.get(body["image_url"])
    assert img.status_code == 200
    assert img.headers["content-type"] == "image/png"
    assert Image.open(io.BytesIO(img.content)).size == (300, 300)


def test_two_requests_get_distinct_artifacts(api_env):
    client, *_ = api_env
    a = client.post("/api/collages", json={"grid_size": 2, "canvas_size": 100}, headers=AUTH).json()
    b = client.post("/api/collages", json={"grid_size": 3, "canvas_size": 300}, headers=AUTH).json()
    assert a["collage_id"] != b["collage_id"]
    assert Image.open(io.BytesIO(client.get(a["image_url"]).content)).size == (100, 100)
    assert Image.open(io.BytesIO(client.get(b["image_url"]).content)).size == (300, 300)


def test_missing_bearer_is_401(api_env):
    client, spotify, *_ = api_env
    r = client.post("/api/collages", json={"grid_size": 3})
    assert r.status_code == 401
    assert spotify.calls == []


def test_rejected_token_is_401_with_category(api_env):
    client, spotify, host, store = api_env
    r = client.post("/api/collages", json={"grid_size": 3}, headers={"Authorization": "Bearer expired"})
    assert r.status_code == 401
    assert r.json()["detail"]["category"] == "auth"
    assert host.calls == []
    assert len(store) == 0


def test_grid_over_limit_is_400(api_env):
    client, spotify, *_ = api_env
    r = client.post("/api/collages", json={"grid_size": 20}, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["detail"]["category"] == "parameter"
    assert spotify.calls == []


def test_unsupported_entity_type_is_rejected(api_env):
    client, *_ = api_env
    r = client.post("/api/collages", json={"entity_type": "albums"}, headers=AUTH)
    assert r.status_code == 422


def test_upstream_failure_is_502(api_env):
    client, spotify, *_ = api_env
    spotify.script = {0: 404}
    r = client.post("/api/collages", json={"grid_size": 2}, headers=AUTH)
    assert r.status_code == 502
    assert r.json()["detail"]["category"] == "upstream"


def test_unknown_collage_is_404_and_delete(api_env):
    client, *_ = api_env
    assert client.get("/api/collages/doesnotexist").status_code == 404

    body = client.post("/api/collages", json={"grid_size": 1, "canvas_size": 64}, headers=AUTH).json()
    assert client.delete(body["image_url"]).status_code == 204
    assert client.get(body["image_url"]).status_code == 404
    assert client.delete(body["image_url"]).status_code == 404
