import json
from datetime import datetime, timezone
from urllib.parse import unquote

import httpx
import pytest

from tvguide.config import CustomSettings


REFERENCE_NOW = datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc)

LINEUP = [
    {"stationId": "100", "channelNumber": "2.1", "stationCallSign": "KAAA", "logo": "/logos/100.png"},
    {"stationId": "200", "channelNumber": "4.1", "stationCallSign": "KBBB", "logo": ""},
    {"stationId": "300", "channelNumber": "7.1", "stationCallSign": "KCCC"},
]

PROGRAMS = {
    "100": [
        {
            "title": "Morning News",
            "subtitle": "Early Edition",
            "description": "Local headlines.",
            "startTime": "2024-03-01T05:00:00Z",
            "runTime": 30,
            "type": "N",
            "flags": ["Stereo"],
        },
        {
            "title": "Cartoon Hour",
            "startTime": "2024-03-01T05:30:00Z",
            "runTime": 60,
            "flags": ["EI", "HD"],
        },
    ],
    "200": [
        {
            "title": "Big Movie",
            "startTime": "2024-03-01T06:00:00Z",
            "runTime": 120,
            "type": "M",
            "flags": ["HD", "New"],
        },
    ],
    "300": [],
}


def make_settings(**overrides) -> CustomSettings:
    values = {
        "lineup_id": "TEST-LINEUP",
        "timezone": "America/Denver",
        "days": 1,
        "provider_base_url": "https://provider.test",
        "provider_api_path": "/api/v1",
        "xmltv_profile": "standard",
        "title_fallback": "No Title",
    }
    values.update(overrides)
    return CustomSettings(_env_file=None, **values)


def _json_response(status_code, payload) -> httpx.Response:
    # ASCII-escaped like the provider, so lone surrogates survive encoding
    return httpx.Response(status_code, content=json.dumps(payload).encode("ascii"), headers={"content-type": "application/json"})


class FakeProvider:
    """Stands in for the listing provider behind an httpx.MockTransport."""

    def __init__(self, lineup=None, programs=None):
        self.lineup = LINEUP if lineup is None else lineup
        self.programs = PROGRAMS if programs is None else programs
        self.requests: list[httpx.Request] = []
        self.grid_requests: list[list[str]] = []
        self.grid_windows: list[str] = []
        self.lineup_status = 200
        self.fail_batch_containing: str | None = None
        self.lineup_body: bytes | None = None
        self.grid_override = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = unquote(request.url.path).strip("/").split("/")
        # api/v1/lineup/{id}/channels | api/v1/lineup/{id}/grid/{start}/{end}/{ids}
        if parts[-1] == "channels":
            if self.lineup_body is not None:
                return httpx.Response(self.lineup_status, content=self.lineup_body)
            return _json_response(self.lineup_status, self.lineup)

        if "grid" in parts:
            station_ids = parts[-1].split(",")
            self.grid_requests.append(station_ids)
            self.grid_windows.append(parts[-3])
            if self.fail_batch_containing in station_ids:
                return httpx.Response(502, text="bad gateway")
            if self.grid_override is not None:
                return _json_response(200, self.grid_override(station_ids))
            return _json_response(200, [self.programs.get(sid, []) for sid in station_ids])

        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def provider():
    return FakeProvider()
