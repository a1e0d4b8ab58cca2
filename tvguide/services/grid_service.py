"""
Grid Service

Fetches one day of guide data for the whole lineup. Station ids are split into
batches, all batches of the day are requested concurrently, and the responses
are stitched back together in batch order so slot i belongs to channel i.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from urllib.parse import quote

import httpx

from tvguide.config import CHANNEL_BATCH_SIZE, CustomSettings
from tvguide.errors import InternalAssemblyError, MalformedResponse
from tvguide.services.fetch_types import GridResult
from tvguide.services.upstream_client import expect_list, fetch_json
from tvguide.utils.batching import chunk_channels
from tvguide.utils.logging_helpers import sanitize_url_for_logging
from tvguide.utils.timezone import DayWindow, format_api_timestamp


logger = logging.getLogger(__name__)


def grid_url(settings: CustomSettings, window: DayWindow, station_ids: Sequence[str]) -> str:
    # ids are escaped individually so ',' stays the list separator
    return (
        f"{settings.api_base}/lineup/{quote(settings.lineup_id, safe='')}/grid/"
        f"{format_api_timestamp(window.start_utc)}/{format_api_timestamp(window.end_utc)}/"
        f"{','.join(quote(station_id, safe='') for station_id in station_ids)}"
    )


async def fetch_day_grid(
    client: httpx.AsyncClient,
    settings: CustomSettings,
    station_ids: Sequence[str],
    window: DayWindow,
    batch_size: int = CHANNEL_BATCH_SIZE,
) -> GridResult:
    """
    Fetch program arrays for every station for one day window

    Args:
        client: Shared HTTP client
        settings: Application settings
        station_ids: Station ids in lineup order
        window: Day window to query
        batch_size: Station ids per request

    Returns:
        Grid result aligned index-for-index with station_ids

    Raises:
        UpstreamUnavailable: If any batch request fails
        MalformedResponse: If any batch body has the wrong shape
        InternalAssemblyError: If the stitched result does not match the lineup length
    """
    batches = chunk_channels(station_ids, batch_size)
    if not batches:
        return []

    logger.debug(
        f"Day {window.day_offset}: window {window.start_utc.isoformat()} -> {window.end_utc.isoformat()}, "
        f"{len(batches)} batch(es)"
    )

    tasks = [
        asyncio.create_task(_fetch_batch(client, settings, window, index, batch))
        for index, batch in enumerate(batches, start=1)
    ]

    try:
        # gather keeps submission order, which is batch order
        batch_results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    grid: GridResult = []
    for slots in batch_results:
        grid.extend(slots)

    if len(grid) != len(station_ids):
        raise InternalAssemblyError(
            f"Day {window.day_offset}: grid has {len(grid)} slots for {len(station_ids)} channels"
        )

    return grid


async def _fetch_batch(
    client: httpx.AsyncClient,
    settings: CustomSettings,
    window: DayWindow,
    index: int,
    batch: list[str],
) -> GridResult:
    """Fetch one batch and normalize it to exactly len(batch) slots"""
    url = grid_url(settings, window, batch)
    payload = expect_list(await fetch_json(client, url), url, "grid batch")

    if len(payload) > len(batch):
        raise MalformedResponse(
            sanitize_url_for_logging(url),
            f"batch {index} returned {len(payload)} entries for {len(batch)} stations",
        )

    if len(payload) < len(batch):
        logger.warning(
            f"  [Batch {index}] returned {len(payload)} entries for {len(batch)} stations; "
            f"treating missing entries as empty"
        )
        payload = payload + [None] * (len(batch) - len(payload))

    logger.debug(f"  [Batch {index}] {len(batch)} stations received")
    return payload
