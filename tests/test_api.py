import pytest
from fastapi.testclient import TestClient

from shared_bloom import main
from shared_bloom.bloom import AsyncBloomFilter
from shared_bloom.errors import StoreTransportError


@pytest.fixture
def client(monkeypatch, async_memory_store, walkthrough_encoder):
    bf = AsyncBloomFilter(m=64, k=3, store=async_memory_store, encode=walkthrough_encoder)
    monkeypatch.setattr(main, "bloom", bf)
    return TestClient(main.app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_not_ready_without_filter(monkeypatch):
    monkeypatch.setattr(main, "bloom", None)
    resp = TestClient(main.app).get("/bloom/users/exists", params={"value": "foo"})
    assert resp.status_code == 503


def test_add_then_exists(client, async_memory_store):
    resp = client.post("/bloom/users", json={"value": "foo"})
    assert resp.status_code == 200
    assert resp.json() == {"key": "users", "value": "foo", "added": True}
    assert async_memory_store.sync.bits[main.settings.bloom_key_prefix + "users"] == {5, 19, 40}

    resp = client.get("/bloom/users/exists", params={"value": "foo"})
    assert resp.json()["exists"] is True

    resp = client.get("/bloom/users/exists", params={"value": "bar"})
    assert resp.json()["exists"] is False


def test_exists_on_untouched_key(client):
    resp = client.get("/bloom/nobody/exists", params={"value": "foo"})
    assert resp.status_code == 200
    assert resp.json() == {"key": "nobody", "value": "foo", "exists": False}


def test_empty_value_rejected(client):
    assert client.post("/bloom/users", json={"value": ""}).status_code == 422
    assert client.get("/bloom/users/exists", params={"value": ""}).status_code == 422


def test_store_error_maps_to_bad_gateway(client, async_memory_store):
    async_memory_store.sync.fail_with = StoreTransportError("connection refused")
    resp = client.get("/bloom/users/exists", params={"value": "foo"})
    assert resp.status_code == 502
    assert "connection refused" in resp.json()["detail"]


def test_slow_store_times_out(client, async_memory_store, monkeypatch):
    monkeypatch.setattr(main.settings, "request_timeout_seconds", 0.05)
    async_memory_store.delay = 1.0
    resp = client.post("/bloom/users", json={"value": "foo"})
    assert resp.status_code == 504


def test_inspect_lists_offsets_and_bits(client):
    client.post("/bloom/users", json={"value": "foo"})
    resp = client.get("/bloom/users/inspect", params={"value": "bar"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["m"] == 64 and body["k"] == 3
    assert body["bits"] == [
        {"offset": 5, "bit": 1},
        {"offset": 19, "bit": 1},
        {"offset": 41, "bit": 0},
    ]


def test_metrics_exposes_bloom_counters(client):
    client.post("/bloom/users", json={"value": "foo"})
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "bloom_ops_total" in resp.text
    assert "bloom_http_requests_total" in resp.text
    assert 'path="/bloom/{key}"' in resp.text
    assert 'path="/bloom/users"' not in resp.text


def test_lone_surrogate_value_rejected(client):
    resp = client.post(
        "/bloom/users",
        content=b'{"value": "\\ud800"}',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 422
    assert "UTF-8" in resp.json()["detail"]
