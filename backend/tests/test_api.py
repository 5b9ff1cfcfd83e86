import pytest
from fastapi.testclient import TestClient

from authorization import AuthorizationFlag
from main import create_app
from tests.conftest import obs

TIMEOUT = 2


@pytest.fixture
def client(scan_source, fake_scheduler):
    app = create_app(scan_source=scan_source, authorization=AuthorizationFlag(True), scheduler=fake_scheduler)
    with TestClient(app) as c:
        c.app.state.pipeline.flush().result(TIMEOUT)
        c.app.state.pipeline.flush().result(TIMEOUT)
        yield c


def push(client, scan_source, observations):
    scan_source.emit(observations)
    return client.app.state.pipeline.flush().result(TIMEOUT)


def test_health_ok(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_lifespan_installs_passive_tick(client, fake_scheduler):
    assert fake_scheduler.running
    assert any(j.get("id") == "passive_tick" for j in fake_scheduler.jobs)


def test_channels_and_recommendations(client, scan_source):
    push(client, scan_source, [obs("weak", 2412, -80), obs("strong", 2412, -30)])

    channels = client.get("/channels").json()
    assert [c["channel_number"] for c in channels] == list(range(11, 27))
    ch11 = channels[0]
    assert [n["identifier"] for n in ch11["interfering_networks"]] == ["strong", "weak"]
    assert "Zigbee Light Link (ZLL) recommended channel" in ch11["pros"]

    recs = client.get("/recommendations").json()
    assert len(recs["recommendations"]) == 3
    assert recs["recommendations"][-1]["is_zll_recommended"]
    assert recs["recommended_channel_numbers"] == sorted(
        c["channel_number"] for c in recs["recommendations"]
    )


def test_state_snapshot(client, scan_source):
    push(client, scan_source, [obs("net", 2437, -50)])
    state = client.get("/state").json()
    assert state["authorized"] is True
    assert len(state["latest_observations"]) == 1
    assert len(state["congestion"]) == 16


def test_revoking_authorization_empties_outputs(client, scan_source):
    push(client, scan_source, [obs("net", 2437, -50)])

    response = client.post("/authorization", json={"authorized": False})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "authorized": False}
    assert client.get("/channels").json() == []
    assert client.get("/recommendations").json()["recommendations"] == []


def test_refresh_now_skips_while_scanning(client, scan_source, fake_scheduler):
    # startup grant already requested a scan that has not settled
    assert client.post("/refresh-now").json() == {"ok": False, "skipped": True}

    fake_scheduler.run_date_jobs()
    client.app.state.pipeline.flush().result(TIMEOUT)

    before = scan_source.requests
    assert client.post("/refresh-now").json() == {"ok": True}
    assert scan_source.requests == before + 1
    assert client.get("/refresh-now").json() == {"ok": False, "skipped": True}


def test_refresh_now_skips_without_authorization(scan_source, fake_scheduler):
    app = create_app(scan_source=scan_source, authorization=AuthorizationFlag(False), scheduler=fake_scheduler)
    with TestClient(app) as c:
        c.app.state.pipeline.flush().result(TIMEOUT)

        assert c.post("/refresh-now").json() == {"ok": False, "skipped": True}
        assert c.get("/refresh-now").json() == {"ok": False, "skipped": True}
        assert scan_source.requests == 0
