import asyncio

import httpx
import pytest

from conftest import REFERENCE_NOW, FakeProvider, make_settings
from tvguide.errors import MalformedResponse, UpstreamUnavailable
from tvguide.services.grid_service import fetch_day_grid, grid_url
from tvguide.utils.timezone import calculate_day_window


def _window(day_offset=0):
    return calculate_day_window(day_offset, REFERENCE_NOW, "America/Denver")


def _lineup(count):
    return [{"stationId": str(i), "channelNumber": str(i), "stationCallSign": f"K{i}"} for i in range(count)]


async def _fetch(provider, settings, station_ids, window=None, batch_size=20):
    async with provider.client() as client:
        return await fetch_day_grid(client, settings, station_ids, window or _window(), batch_size)


def test_grid_url_format(settings):
    url = grid_url(settings, _window(), ["100", "200"])
    assert url == (
        "https://provider.test/api/v1/lineup/TEST-LINEUP/grid/"
        "2024-03-01T04:00:00.000Z/2024-03-02T03:59:00.000Z/100,200"
    )


def test_grid_url_escapes_path_segments():
    settings = make_settings(lineup_id="USA/X Y")
    url = grid_url(settings, _window(), ["a/b", "c,d", "e?f"])
    assert url == (
        "https://provider.test/api/v1/lineup/USA%2FX%20Y/grid/"
        "2024-03-01T04:00:00.000Z/2024-03-02T03:59:00.000Z/a%2Fb,c%2Cd,e%3Ff"
    )


def test_batches_reassembled_in_lineup_order(settings):
    station_ids = [str(i) for i in range(45)]
    programs = {sid: [{"title": f"show {sid}", "startTime": "2024-03-01T05:00:00Z", "runTime": 30}] for sid in station_ids}
    provider = FakeProvider(lineup=_lineup(45), programs=programs)

    grid = asyncio.run(_fetch(provider, settings, station_ids))

    assert len(grid) == 45
    assert [slot[0]["title"] for slot in grid] == [f"show {sid}" for sid in station_ids]
    assert sorted(len(batch) for batch in provider.grid_requests) == [5, 20, 20]


def test_order_is_batch_order_not_completion_order(settings):
    station_ids = [str(i) for i in range(41)]

    async def handler(request):
        ids = request.url.path.rsplit("/", 1)[-1].split(",")
        # First batch answers last
        if "0" in ids:
            await asyncio.sleep(0.05)
        return httpx.Response(200, json=[[{"title": sid, "startTime": "2024-03-01T05:00:00Z", "runTime": 1}] for sid in ids])

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_day_grid(client, settings, station_ids, _window())

    grid = asyncio.run(run())
    assert [slot[0]["title"] for slot in grid] == station_ids


def test_short_batch_response_padded_with_empty_slots(settings):
    provider = FakeProvider()
    provider.grid_override = lambda ids: [[]]
    grid = asyncio.run(_fetch(provider, settings, ["100", "200", "300"]))
    assert grid == [[], None, None]


def test_long_batch_response_is_malformed(settings):
    provider = FakeProvider()
    provider.grid_override = lambda ids: [[] for _ in range(len(ids) + 1)]
    with pytest.raises(MalformedResponse):
        asyncio.run(_fetch(provider, settings, ["100", "200"]))


def test_non_array_batch_is_malformed(settings):
    provider = FakeProvider()
    provider.grid_override = lambda ids: {"error": "nope"}
    with pytest.raises(MalformedResponse):
        asyncio.run(_fetch(provider, settings, ["100"]))


def test_one_failed_batch_fails_the_day(settings):
    station_ids = [str(i) for i in range(60)]
    provider = FakeProvider(lineup=_lineup(60), programs={})
    provider.fail_batch_containing = "25"

    with pytest.raises(UpstreamUnavailable):
        asyncio.run(_fetch(provider, settings, station_ids))


def test_timeout_is_upstream_unavailable(settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_day_grid(client, settings, ["100"], _window())

    with pytest.raises(UpstreamUnavailable) as exc_info:
        asyncio.run(run())
    assert exc_info.value.reason == "timeout"


def test_empty_lineup_makes_no_requests(settings, provider):
    assert asyncio.run(_fetch(provider, settings, [])) == []
    assert provider.requests == []
