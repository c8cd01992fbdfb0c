from datetime import datetime, timedelta

import pytest

from memoserver.exceptions import StoreError


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def test_create_then_read_returns_same_content(client, clock):
    r = client.post("/api/memo", json={"password": "abcd", "content": "hello", "duration": 1})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert _ts(body["expiresAt"]) == clock.now + timedelta(minutes=1)

    r = client.get("/api/memo/abcd")
    assert r.status_code == 200
    data = r.json()
    assert data["content"] == "hello"
    assert data["durationMinutes"] == 1
    assert _ts(data["expiresAt"]) == _ts(body["expiresAt"])


def test_create_uses_default_duration_and_empty_content(client, clock):
    r = client.post("/api/memo", json={"password": "abcd"})
    assert r.status_code == 200
    assert _ts(r.json()["expiresAt"]) == clock.now + timedelta(minutes=30)

    r = client.get("/api/memo/abcd")
    assert r.json()["content"] == ""
    assert r.json()["durationMinutes"] == 30


@pytest.mark.parametrize("key", ["", "a", "abc"])
def test_short_keys_are_rejected_everywhere(client, key):
    r = client.post("/api/memo", json={"password": key, "content": "x"})
    assert r.status_code == 400

    r = client.post("/api/check-password", json={"password": key})
    assert r.status_code == 200
    assert r.json()["valid"] is False

    if key:
        assert client.get(f"/api/memo/{key}").status_code == 400
        assert client.put(f"/api/memo/{key}", json={"content": "x"}).status_code == 400
        assert client.delete(f"/api/memo/{key}").status_code == 400


def test_missing_password_is_rejected(client):
    r = client.post("/api/memo", json={"content": "x"})
    assert r.status_code == 400

    r = client.post("/api/check-password", json={})
    assert r.status_code == 200
    assert r.json()["valid"] is False


def test_read_after_expiry_is_not_found_and_removes_memo(client, clock, store):
    client.post("/api/memo", json={"password": "abcd", "content": "hello", "duration": 1})

    clock.advance(minutes=1, seconds=1)
    r = client.get("/api/memo/abcd")
    assert r.status_code == 404

    # lazily deleted, not only hidden
    assert store.get("abcd") is None
    assert client.get("/api/memo/abcd").status_code == 404


def test_memo_is_absent_exactly_at_expiry(client, clock):
    client.post("/api/memo", json={"password": "abcd", "content": "hello", "duration": 1})
    clock.advance(minutes=1)
    assert client.get("/api/memo/abcd").status_code == 404


def test_content_only_update_keeps_expiry(client, clock):
    r = client.post("/api/memo", json={"password": "abcd", "content": "v1", "duration": 10})
    expires_at = r.json()["expiresAt"]
    before = client.get("/api/memo/abcd").json()

    clock.advance(minutes=2)
    r = client.put("/api/memo/abcd", json={"content": "v2"})
    assert r.status_code == 200
    assert _ts(r.json()["expiresAt"]) == _ts(expires_at)

    after = client.get("/api/memo/abcd").json()
    assert after["content"] == "v2"
    assert _ts(after["expiresAt"]) == _ts(expires_at)
    assert _ts(after["lastUpdated"]) == _ts(before["lastUpdated"]) + timedelta(minutes=2)


def test_update_with_duration_resets_expiry_from_now(client, clock):
    client.post("/api/memo", json={"password": "abcd", "content": "v1", "duration": 10})

    clock.advance(minutes=5)
    r = client.put("/api/memo/abcd", json={"content": "v2", "duration": 60})
    assert r.status_code == 200
    assert _ts(r.json()["expiresAt"]) == clock.now + timedelta(minutes=60)
    assert client.get("/api/memo/abcd").json()["durationMinutes"] == 60


def test_update_missing_memo_is_not_found(client):
    r = client.put("/api/memo/nope", json={"content": "x"})
    assert r.status_code == 404


def test_update_expired_memo_is_not_found(client, clock, store):
    client.post("/api/memo", json={"password": "abcd", "content": "v1", "duration": 1})
    clock.advance(minutes=2)

    r = client.put("/api/memo/abcd", json={"content": "v2"})
    assert r.status_code == 404
    assert store.get("abcd") is None


def test_update_requires_content(client):
    client.post("/api/memo", json={"password": "abcd", "content": "v1"})
    r = client.put("/api/memo/abcd", json={"duration": 5})
    assert r.status_code == 400


@pytest.mark.parametrize("duration", [0, -5, 60 * 24 * 30 + 1, "soon"])
def test_out_of_range_duration_is_rejected(client, duration):
    r = client.post("/api/memo", json={"password": "abcd", "duration": duration})
    assert r.status_code == 400


def test_check_password_reports_taken_and_reusable_after_delete(client):
    r = client.post("/api/check-password", json={"password": "abcd"})
    assert r.json() == {"valid": True}

    client.post("/api/memo", json={"password": "abcd", "content": "x"})
    r = client.post("/api/check-password", json={"password": "abcd"})
    assert r.json()["valid"] is False
    assert r.json()["message"]

    r = client.delete("/api/memo/abcd")
    assert r.status_code == 200
    assert r.json()["success"] is True

    r = client.post("/api/check-password", json={"password": "abcd"})
    assert r.json() == {"valid": True}


def test_check_password_treats_expired_key_as_free(client, clock):
    client.post("/api/memo", json={"password": "abcd", "content": "x", "duration": 1})
    clock.advance(minutes=5)

    r = client.post("/api/check-password", json={"password": "abcd"})
    assert r.json() == {"valid": True}


def test_delete_is_idempotent(client):
    r = client.delete("/api/memo/never-created")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Key deleted."}


def test_create_on_live_key_conflicts(client):
    assert client.post("/api/memo", json={"password": "abcd", "content": "a"}).status_code == 200
    r = client.post("/api/memo", json={"password": "abcd", "content": "b"})
    assert r.status_code == 409
    assert client.get("/api/memo/abcd").json()["content"] == "a"


def test_create_replaces_expired_holder(client, clock):
    client.post("/api/memo", json={"password": "abcd", "content": "old", "duration": 1})
    clock.advance(minutes=2)

    r = client.post("/api/memo", json={"password": "abcd", "content": "new"})
    assert r.status_code == 200
    assert client.get("/api/memo/abcd").json()["content"] == "new"


def test_keys_with_path_characters_are_opaque(client):
    key = "../../etc"
    r = client.post("/api/memo", json={"password": key, "content": "x"})
    assert r.status_code == 200
    r = client.post("/api/check-password", json={"password": key})
    assert r.json()["valid"] is False


class _BrokenStore:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise StoreError("backend down")
        return fail


def test_store_failures_surface_as_500(tmp_path, clock):
    from fastapi.testclient import TestClient

    from memoserver.config import Settings
    from memoserver.main import create_app

    app = create_app(Settings(data_dir=tmp_path, sweep_enabled=False), store=_BrokenStore(), clock=clock)
    client = TestClient(app)

    r = client.post("/api/check-password", json={"password": "abcd"})
    assert r.status_code == 500
    assert r.json()["valid"] is False

    assert client.post("/api/memo", json={"password": "abcd"}).status_code == 500
    assert client.get("/api/memo/abcd").status_code == 500
    assert client.put("/api/memo/abcd", json={"content": "x"}).status_code == 500
    assert client.delete("/api/memo/abcd").status_code == 500

    # validation still wins over store failures
    assert client.get("/api/memo/abc").status_code == 400


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


@pytest.mark.parametrize("key", ["ab/cd", "a/b/c/d", "abcd/"])
def test_keys_with_slashes_round_trip(client, key):
    r = client.post("/api/memo", json={"password": key, "content": "hello"})
    assert r.status_code == 200

    r = client.get(f"/api/memo/{key}")
    assert r.status_code == 200
    assert r.json()["content"] == "hello"

    r = client.put(f"/api/memo/{key}", json={"content": "v2"})
    assert r.status_code == 200
    assert client.get(f"/api/memo/{key}").json()["content"] == "v2"

    r = client.delete(f"/api/memo/{key}")
    assert r.status_code == 200
    assert client.get(f"/api/memo/{key}").status_code == 404


def test_percent_encoded_slash_reaches_the_memo(client):
    client.post("/api/memo", json={"password": "ab/cd", "content": "hello"})
    r = client.get("/api/memo/ab%2Fcd")
    assert r.status_code == 200
    assert r.json()["content"] == "hello"


@pytest.mark.parametrize("body", [{"password": 12345}, {"password": None}, {"password": ["abcd"]}, {}])
def test_check_password_non_string_key_is_invalid_not_an_error(client, body):
    r = client.post("/api/check-password", json=body)
    assert r.status_code == 200
    assert r.json()["valid"] is False
    assert r.json()["message"]


def test_check_password_without_body_is_invalid_not_an_error(client):
    r = client.post("/api/check-password")
    assert r.status_code == 200
    assert r.json()["valid"] is False


def test_content_over_limit_is_rejected(client):
    from memoserver.models.memos import MAX_CONTENT_LENGTH

    r = client.post("/api/memo", json={"password": "abcd", "content": "x" * (MAX_CONTENT_LENGTH + 1)})
    assert r.status_code == 400

    client.post("/api/memo", json={"password": "abcd", "content": "x" * MAX_CONTENT_LENGTH})
    r = client.put("/api/memo/abcd", json={"content": "x" * (MAX_CONTENT_LENGTH + 1)})
    assert r.status_code == 400


def test_validation_errors_use_fastapi_error_shape(client):
    r = client.post("/api/memo", json={"password": "abcd", "duration": 0})
    assert r.status_code == 400
    [err] = r.json()["detail"]
    assert err["loc"] == ["body", "duration"]
    assert err["type"] == "greater_than_equal"
    assert err["ctx"] == {"ge": 1}
