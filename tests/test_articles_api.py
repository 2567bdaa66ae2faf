from __future__ import annotations

from unittest.mock import patch

from board.storage.articles import PLACEHOLDER_IMAGE_URL
from conftest import bearer_for, make_user


def test_public_listing_only_shows_approved(client, db) -> None:
    db["articles"].insert_many(
        [
            {"title": "Live", "body": "b", "tag": "t", "status": "approved"},
            {"title": "Queued", "body": "b", "tag": "t", "status": "pending"},
        ]
    )
    r = client.get("/articles")
    assert r.status_code == 200
    assert [a["title"] for a in r.json()["articles"]] == ["Live"]


def test_create_article_anonymously_uses_placeholder_image(client, db) -> None:
    r = client.post("/articles", json={"title": "T", "body": "B", "tag": "news"})
    assert r.status_code == 201
    article = r.json()["article"]
    assert article["image_path"] == PLACEHOLDER_IMAGE_URL
    assert article["author_name"] == "Anonymous"
    assert db["articles"].find_one({"title": "T"}).get("user_id") is None


def test_create_article_attributes_signed_in_author(client, db) -> None:
    uid = make_user(db, email="w@x.com", name="Writer")
    r = client.post("/articles", headers=bearer_for("w@x.com"), json={"title": "T", "body": "B", "tag": "news"})
    assert r.status_code == 201
    assert r.json()["article"]["author_name"] == "Writer"
    assert db["articles"].find_one({"title": "T"})["user_id"] == uid


def test_create_article_requires_fields(client) -> None:
    r = client.post("/articles", json={"title": "T"})
    assert r.status_code == 400
    assert r.json()["error"] == "Title, body, and tag are required"


def test_create_article_uploads_image(client) -> None:
    with patch("board.api.server.images.upload", return_value="https://res.cloudinary.com/x.jpg") as up:
        r = client.post("/articles", json={"title": "T", "body": "B", "tag": "n", "imageData": "data:image/png;base64,AA"})
    assert r.status_code == 201
    assert r.json()["article"]["image_path"] == "https://res.cloudinary.com/x.jpg"
    assert up.call_args.args[1] == "data:image/png;base64,AA"


def test_create_article_with_unconfigured_image_host(client, db) -> None:
    r = client.post("/articles", json={"title": "T", "body": "B", "tag": "n", "imageData": "data:,x"})
    assert r.status_code == 500
    assert db["articles"].count_documents({}) == 0


def test_bull_logo_falls_back_to_environment(client, monkeypatch) -> None:
    assert client.get("/bull-logo").json() == {"success": True, "url": None}

    from board.storage.config import load_storage_config

    monkeypatch.setenv("BULL_LOGO_URL", "https://cdn.example.com/bull.png")
    load_storage_config.cache_clear()
    assert client.get("/bull-logo").json()["url"] == "https://cdn.example.com/bull.png"


def test_bull_logo_update_requires_admin(client, db) -> None:
    make_user(db, email="m@x.com")
    make_user(db, email="ed@x.com", is_admin=True)

    assert client.put("/bull-logo", json={"url": "https://x/y.png"}).status_code == 401
    assert client.put("/bull-logo", headers=bearer_for("m@x.com"), json={"url": "https://x/y.png"}).status_code == 403

    r = client.put("/bull-logo", headers=bearer_for("ed@x.com"), json={"url": ""})
    assert r.status_code == 400

    r = client.put("/bull-logo", headers=bearer_for("ed@x.com"), json={"url": "https://x/y.png"})
    assert r.status_code == 200
    assert client.get("/bull-logo").json()["url"] == "https://x/y.png"
    assert db["app_config"].count_documents({"key": "bull_logo_url"}) == 1
