"""API route tests. Lifespan disabled; store, provider and ledger are in-memory doubles."""
from __future__ import annotations

from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from shared.config import Environment, Settings, get_settings
from shared.models.domain import LedgerEntry
from shared.models.enums import MatchPhase

from api.app import create_app
from api.dependencies import get_ledger, get_reconciler, get_store
from api.service import check_sync_secrets, resolve_port
from live.reconciler import LiveReconciler
from fakes import NOW, FakeLedger, FakeProvider, FakeStore, make_state, reported

GENERIC_ERROR = {"error": "An internal error occurred. Please try again later."}


class RecordingLedger(FakeLedger):
    async def recent(self, job_type, limit: int = 20) -> list[LedgerEntry]:
        return list(reversed(self.entries))[:limit]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def api_ledger() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture
def client(settings: Settings, store: FakeStore, provider: FakeProvider, api_ledger: RecordingLedger):
    """Test client with lifespan disabled and every dependency replaced."""
    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_ledger] = lambda: api_ledger
    app.dependency_overrides[get_reconciler] = lambda: LiveReconciler(
        store=store, provider=provider, ledger=api_ledger, settings=settings, clock=lambda: NOW
    )
    with TestClient(app) as c:
        yield c


def _auth(settings: Settings, header: str = "x-cron-token") -> dict[str, str]:
    return {header: settings.sync_admin_token}


# ── System ──────────────────────────────────────────────────────────────

def test_health_returns_ok(client: TestClient) -> None:
    """GET /health returns 200 and status ok."""
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data.get("status") == "ok"
    assert data.get("service") == "api"
    assert r.headers.get("x-request-id")


# ── POST /v1/sync/live ──────────────────────────────────────────────────

class TestSyncLive:
    def test_missing_token_is_401(self, client: TestClient, api_ledger: RecordingLedger) -> None:
        r = client.post("/v1/sync/live")
        assert r.status_code == 401
        assert r.json() == {"error": "Unauthorized"}
        assert api_ledger.entries == []

    def test_wrong_token_is_401(self, client: TestClient, provider: FakeProvider) -> None:
        r = client.post("/v1/sync/live", headers={"x-sync-token": "nope"})
        assert r.status_code == 401
        assert provider.calls == 0

    @pytest.mark.parametrize("header", ["x-cron-token", "x-sync-token"])
    def test_both_token_headers_are_accepted(self, client: TestClient, settings: Settings, header: str) -> None:
        r = client.post("/v1/sync/live", headers=_auth(settings, header))
        assert r.status_code == 200
        assert r.json() == {
            "success": True,
            "matchesUpdated": 0,
            "providerCallSkipped": True,
            "message": "No live or upcoming matches",
        }

    def test_service_role_bearer_is_accepted(self, client: TestClient, settings: Settings) -> None:
        settings.service_role_key = "service-role"
        r = client.post("/v1/sync/live", headers={"Authorization": "Bearer service-role"})
        assert r.status_code == 200

    def test_no_secret_configured_is_500(self, client: TestClient, settings: Settings) -> None:
        settings.sync_admin_token = ""
        r = client.post("/v1/sync/live", headers={"x-cron-token": "anything"})
        assert r.status_code == 500
        assert r.json() == GENERIC_ERROR

    def test_reconciled_response(
        self, client: TestClient, settings: Settings, store: FakeStore, provider: FakeProvider
    ) -> None:
        b = make_state(MatchPhase.LIVE, external_id="B", kickoff_in=timedelta(minutes=-40))
        store.rows[b.fixture_id] = b
        provider.fixtures = [reported("B", "2H", 1, 0), reported("Z", "1H", league="999")]

        r = client.post("/v1/sync/live", headers=_auth(settings))

        assert r.status_code == 200
        assert r.json() == {
            "success": True,
            "matchesUpdated": 1,
            "providerCallSkipped": False,
            "apiFixturesReturned": 2,
        }

    def test_provider_failure_is_generic_500(
        self, client: TestClient, settings: Settings, store: FakeStore, provider: FakeProvider,
        api_ledger: RecordingLedger,
    ) -> None:
        b = make_state(MatchPhase.LIVE, external_id="B", kickoff_in=timedelta(minutes=-40))
        store.rows[b.fixture_id] = b
        provider.error = httpx.ConnectError("connection refused to 10.0.0.7")

        r = client.post("/v1/sync/live", headers=_auth(settings))

        assert r.status_code == 500
        assert r.json() == GENERIC_ERROR
        assert "10.0.0.7" not in r.text
        assert api_ledger.entries[-1].success is False


# ── POST /v1/sync/validate-token ────────────────────────────────────────

class TestValidateToken:
    def test_valid(self, client: TestClient, settings: Settings) -> None:
        r = client.post("/v1/sync/validate-token", json={"token": settings.sync_admin_token})
        assert r.status_code == 200
        assert r.json() == {"valid": True}

    def test_invalid(self, client: TestClient) -> None:
        r = client.post("/v1/sync/validate-token", json={"token": "guess"})
        assert r.json() == {"valid": False}

    def test_non_string_token(self, client: TestClient) -> None:
        assert client.post("/v1/sync/validate-token", json={"token": 42}).json() == {"valid": False}

    def test_bad_body_is_400(self, client: TestClient) -> None:
        r = client.post(
            "/v1/sync/validate-token", content=b"not json", headers={"content-type": "application/json"}
        )
        assert r.status_code == 400
        assert r.json() == {"valid": False}

    def test_secret_not_configured_is_500(self, client: TestClient, settings: Settings) -> None:
        settings.sync_admin_token = ""
        r = client.post("/v1/sync/validate-token", json={"token": "x"})
        assert r.status_code == 500
        assert r.json() == {"valid": False}


# ── GET /v1/sync/runs ───────────────────────────────────────────────────

def test_runs_lists_ledger(client: TestClient, settings: Settings) -> None:
    client.post("/v1/sync/live", headers=_auth(settings))
    r = client.get("/v1/sync/runs", headers=_auth(settings))
    assert r.status_code == 200
    runs = r.json()["runs"]
    assert len(runs) == 1
    assert runs[0]["job_type"] == "sync-live"
    assert runs[0]["params"]["providerCallSkipped"] is True


def test_runs_requires_token(client: TestClient) -> None:
    assert client.get("/v1/sync/runs").status_code == 401


# ── Fixture minute ──────────────────────────────────────────────────────

class TestFixtureMinute:
    def test_minute_for_running_fixture(self, client: TestClient, store: FakeStore) -> None:
        state = make_state(MatchPhase.HALFTIME, home=1, away=1)
        store.rows[state.fixture_id] = state

        r = client.get(f"/v1/fixtures/{state.fixture_id}/minute")

        assert r.status_code == 200
        body = r.json()
        assert body["minute"]["display_minute"] == "HT"
        assert body["minute"]["is_half_time"] is True
        assert body["fixture"]["phase"] == "ht"
        assert body["score"] == "1 - 1"

    def test_unknown_fixture_is_404(self, client: TestClient) -> None:
        r = client.get("/v1/fixtures/6f1c2a7e-2c4b-4a55-9d7e-8e3b8b1f0c11/minute")
        assert r.status_code == 404
        assert r.json()["error"] == "not_found"

    def test_live_list(self, client: TestClient, store: FakeStore) -> None:
        running = make_state(MatchPhase.SECOND_HALF)
        pens = make_state(MatchPhase.PENALTIES)
        done = make_state(MatchPhase.FINISHED)
        for s in (running, pens, done):
            store.rows[s.fixture_id] = s

        body = client.get("/v1/fixtures/live").json()

        assert body["refresh_after_s"] == 1.0
        phases = sorted(item["fixture"]["phase"] for item in body["fixtures"])
        assert phases == ["2h", "pens"]

    def test_live_list_without_running_match(self, client: TestClient, store: FakeStore) -> None:
        ht = make_state(MatchPhase.HALFTIME)
        store.rows[ht.fixture_id] = ht
        assert client.get("/v1/fixtures/live").json()["refresh_after_s"] is None


# ── Service entrypoint ──────────────────────────────────────────────────

class TestServiceEntrypoint:
    def test_production_without_sync_secret_refuses_to_start(self, settings: Settings) -> None:
        settings.environment = Environment.PRODUCTION
        settings.sync_admin_token = ""
        with pytest.raises(SystemExit):
            check_sync_secrets(settings)

    def test_service_role_key_alone_is_enough(self, settings: Settings) -> None:
        settings.environment = Environment.PRODUCTION
        settings.sync_admin_token = ""
        settings.service_role_key = "service-role"
        check_sync_secrets(settings)

    def test_platform_port_wins(self, settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PORT", "8123")
        assert resolve_port(settings) == 8123
        monkeypatch.delenv("PORT")
        assert resolve_port(settings) == settings.api_port
