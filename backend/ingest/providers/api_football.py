"""
API-Football (api-sports.io) live feed connector.
One GET /fixtures?live=all per poll; key in the x-apisports-key header.
"""
from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from shared.config import Settings, get_settings
from shared.models.domain import LiveSnapshot, ProviderFixture, utcnow
from shared.models.enums import MatchPhase, ProviderName
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from ingest.providers.base import LiveScoreProvider

logger = get_logger(__name__)

API_FOOTBALL_BASE = "https://v3.football.api-sports.io"
LOW_QUOTA_THRESHOLD = 5

# API-Football reports both extra-time legs as ET; the reconciler resolves
# et_ht -> ET into et2.
STATUS_TO_PHASE: Mapping[str, MatchPhase] = MappingProxyType({
    "TBD": MatchPhase.SCHEDULED,
    "NS": MatchPhase.SCHEDULED,
    "PST": MatchPhase.SCHEDULED,
    "1H": MatchPhase.LIVE,
    "LIVE": MatchPhase.LIVE,
    "SUSP": MatchPhase.LIVE,
    "INT": MatchPhase.LIVE,
    "HT": MatchPhase.HALFTIME,
    "2H": MatchPhase.SECOND_HALF,
    "ET": MatchPhase.EXTRA_TIME_1,
    "BT": MatchPhase.EXTRA_TIME_HALFTIME,
    "P": MatchPhase.PENALTIES,
    "FT": MatchPhase.FINISHED,
    "AET": MatchPhase.FINISHED,
    "PEN": MatchPhase.FINISHED,
    "CANC": MatchPhase.FINISHED,
    "ABD": MatchPhase.FINISHED,
    "AWD": MatchPhase.FINISHED,
    "WO": MatchPhase.FINISHED,
})


def map_status(status: Optional[str]) -> MatchPhase:
    """Map an API-Football short status code to MatchPhase; unknown codes read as scheduled."""
    s = (status or "").strip().upper()
    return STATUS_TO_PHASE.get(s, MatchPhase.SCHEDULED)


def _safe_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_fixture(item: dict[str, Any]) -> Optional[ProviderFixture]:
    """Parse one element of the response array; None when the row is unusable."""
    fixture = item.get("fixture") or {}
    league = item.get("league") or {}
    goals = item.get("goals") or {}
    fixture_id = fixture.get("id")
    league_id = league.get("id")
    if fixture_id is None or league_id is None:
        return None
    status = (fixture.get("status") or {}).get("short") or ""
    return ProviderFixture(
        external_id=str(fixture_id),
        league_external_id=str(league_id),
        status_code=str(status).strip().upper(),
        home_goals=_safe_int(goals.get("home")),
        away_goals=_safe_int(goals.get("away")),
        kickoff_at=_parse_date(fixture.get("date")),
    )


class ApiFootballProvider(LiveScoreProvider):
    """API-Football v3 live scoreboard."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: ProviderHTTPClient | None = None,
    ) -> None:
        settings = settings or get_settings()
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if settings.api_football_key:
            headers["x-apisports-key"] = settings.api_football_key
        http_client = http_client or ProviderHTTPClient(
            provider_name=ProviderName.API_FOOTBALL.value,
            base_url=settings.api_football_base_url or API_FOOTBALL_BASE,
            headers=headers,
            timeout_s=settings.provider_request_timeout_s,
            max_retries=settings.provider_max_retries,
            retry_delay_s=settings.provider_retry_delay_s,
        )
        super().__init__(name=ProviderName.API_FOOTBALL, http_client=http_client)

    async def fetch_live(self) -> LiveSnapshot:
        resp = await self._http.get("/fixtures", params={"live": "all"}, endpoint="fixtures_live")

        remaining = _safe_int(resp.headers.get("x-ratelimit-requests-remaining"))
        if remaining is not None and remaining < LOW_QUOTA_THRESHOLD:
            logger.warning("api_football_low_quota", remaining=remaining)

        data = resp.json()
        errors = data.get("errors")
        # The API returns errors as [] when empty and as an object otherwise.
        if errors:
            logger.error("api_football_errors", errors=errors)

        fixtures: list[ProviderFixture] = []
        for item in data.get("response") or []:
            parsed = parse_fixture(item) if isinstance(item, dict) else None
            if parsed is None:
                logger.warning("api_football_row_skipped", row=str(item)[:200])
                continue
            fixtures.append(parsed)

        logger.info("api_football_live_fetched", fixtures=len(fixtures))
        return LiveSnapshot(provider=self._name, fixtures=fixtures, fetched_at=utcnow())
