from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from voicegate.app import create_app
from voicegate.config import Settings


@pytest.fixture
def client(tmp_path: Path):
    settings = Settings(
        filters_path=tmp_path / "filters.json",
        default_deny_items=["badword"],
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def test_health_reports_default_filter(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "active_filters": 1, "sweeper_running": True}


def test_default_filter_is_seeded(client: TestClient, tmp_path: Path) -> None:
    response = client.get("/api/filters/default")

    assert response.status_code == 200
    assert [entry["item"] for entry in response.json()["deny_list"]] == ["badword"]
    assert (tmp_path / "filters.json").exists()


def test_create_filter_and_conflict(client: TestClient) -> None:
    created = client.post("/api/filters/", json={"id": "extra", "deny_list": ["bad"]})
    duplicate = client.post("/api/filters/", json={"id": "extra"})

    assert created.status_code == 201
    assert created.json()["id"] == "extra"
    assert duplicate.status_code == 409
    assert [f["id"] for f in client.get("/api/filters/").json()] == ["default", "extra"]


def test_temporary_deny_item_and_check(client: TestClient) -> None:
    added = client.post(
        "/api/filters/default/deny", json={"items": ["spam"], "ttl_seconds": 60}
    )

    assert added.status_code == 200
    assert added.json()["deny_list"][-1]["kind"] == "temporary"

    verdict = client.post("/api/filters/check", json={"text": "SPAM here"}).json()
    assert verdict["is_blocked"] is True
    assert verdict["reason"] == "blacklist"
    assert verdict["expiration_reason"].startswith("Blocked until ")

    strict = client.post(
        "/api/filters/check",
        json={"text": "SPAM here", "options": {"case_sensitive": True}},
    ).json()
    assert strict["reason"] == "none"


def test_invalid_ttl_is_rejected(client: TestClient) -> None:
    response = client.post("/api/filters/default/deny", json={"items": ["x"], "ttl_seconds": 0})

    assert response.status_code == 422


def test_allow_items_round_trip(client: TestClient) -> None:
    client.post("/api/filters/default/allow", json={"items": ["no badword here"]})

    assert client.post("/api/filters/check", json={"text": "no badword here"}).json()[
        "reason"
    ] == "whitelist"

    removed = client.request(
        "DELETE", "/api/filters/default/allow", json={"items": ["no badword here"]}
    )
    assert removed.json()["allow_list"] == []


def test_remove_deny_items(client: TestClient) -> None:
    response = client.request("DELETE", "/api/filters/default/deny", json={"items": ["badword"]})

    assert response.status_code == 200
    assert response.json()["deny_list"] == []


def test_toggle_with_and_without_body(client: TestClient) -> None:
    flipped = client.post("/api/filters/default/toggle")
    explicit = client.post("/api/filters/default/toggle", json={"is_active": False})

    assert flipped.json()["is_active"] is False
    assert explicit.json()["is_active"] is False
    assert client.get("/api/filters/", params={"active_only": True}).json() == []


def test_stats_search_and_sweep(client: TestClient) -> None:
    stats = client.get("/api/filters/stats").json()

    assert stats["total_filters"] == 1
    assert stats["total_deny_items"] == 1
    assert [f["id"] for f in client.get("/api/filters/search", params={"q": "BAD"}).json()] == [
        "default"
    ]
    assert client.post("/api/filters/sweep").json() == {"removed": 0}


def test_unknown_filter_returns_404(client: TestClient) -> None:
    assert client.get("/api/filters/missing").status_code == 404
    assert client.delete("/api/filters/missing").status_code == 404
    assert client.post("/api/filters/missing/allow", json={"items": ["x"]}).status_code == 404
    assert client.post("/api/filters/missing/toggle").status_code == 404


def test_delete_filter(client: TestClient) -> None:
    assert client.delete("/api/filters/default").json() == {"ok": True}
    assert client.get("/api/filters/").json() == []


def test_webhook_accepts_event(client: TestClient) -> None:
    response = client.post(
        "/webhook", json={"eventName": "chat", "nickname": "Ana", "comment": "wowwww"}
    )

    body = response.json()
    assert response.status_code == 200
    assert body["accepted"] is True
    assert body["text"] == "Ana woww"


def test_webhook_blocks_denied_text(client: TestClient) -> None:
    body = client.post("/webhook", json={"nickname": "Ana", "comment": "badword!"}).json()

    assert body["accepted"] is False
    assert body["reason"] == "blocked"


def test_webhook_rejects_bad_bodies(client: TestClient) -> None:
    not_json = client.post(
        "/webhook", content=b"not json", headers={"content-type": "application/json"}
    )
    not_object = client.post("/webhook", json=[1, 2])

    assert not_json.status_code == 400
    assert not_object.status_code == 400


def test_clean_and_moderate_endpoints(client: TestClient) -> None:
    cleaned = client.get("/api/clean", params={"text": "no no no"}).json()
    moderated = client.get("/api/moderate", params={"text": "hi [emote:1:x]"}).json()

    assert cleaned["cleaned"] == "no"
    assert cleaned["was_spam"] is True
    assert moderated["accepted"] is True
    assert moderated["text"] == "hi"
