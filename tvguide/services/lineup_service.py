"""
Lineup Service

Fetches the channel lineup from the provider and assigns each station a
stable, XML-safe XMLTV channel id.
"""
import logging
import re
from collections.abc import Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from tvguide.config import CustomSettings
from tvguide.errors import MalformedResponse
from tvguide.profiles import OutputProfile
from tvguide.schemas import LineupChannel
from tvguide.services.fetch_types import Lineup
from tvguide.services.upstream_client import expect_list, fetch_json
from tvguide.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def lineup_url(settings: CustomSettings) -> str:
    return f"{settings.api_base}/lineup/{quote(settings.lineup_id, safe='')}/channels"


async def fetch_lineup(
    client: httpx.AsyncClient,
    settings: CustomSettings,
    profile: OutputProfile
) -> Lineup:
    """
    Fetch the lineup channels and build the channel id map

    Args:
        client: Shared HTTP client
        settings: Application settings
        profile: Output profile (channel id source and prefix)

    Returns:
        Lineup with channels in provider order and their XMLTV ids

    Raises:
        UpstreamUnavailable: If the provider request fails
        MalformedResponse: If the body is not an array of channel records
    """
    url = lineup_url(settings)
    logger.info(f"Fetching lineup {settings.lineup_id}")

    payload = expect_list(await fetch_json(client, url), url, "lineup")
    channels = parse_lineup_channels(payload, url)
    channel_ids = build_channel_id_map(channels, profile)

    logger.info(f"Lineup {settings.lineup_id}: {len(channels)} channels ({len(channel_ids)} distinct stations)")
    logger.debug(f"  Channel IDs (first 5): {list(channel_ids.values())[:5]}")

    return Lineup(lineup_id=settings.lineup_id, channels=channels, channel_ids=channel_ids)


def parse_lineup_channels(payload: list, url: str) -> list[LineupChannel]:
    """Validate raw lineup records into LineupChannel models"""
    channels = []
    for index, record in enumerate(payload):
        if not isinstance(record, dict):
            raise MalformedResponse(
                sanitize_url_for_logging(url),
                f"lineup record {index} is {type(record).__name__}, expected object",
            )
        try:
            channels.append(LineupChannel.model_validate(record))
        except ValidationError as e:
            raise MalformedResponse(
                sanitize_url_for_logging(url),
                f"lineup record {index} invalid: {e.error_count()} error(s), first: {e.errors()[0]['msg']}",
            ) from e
    return channels


def _sanitize_id_token(value: str) -> str:
    return _UNSAFE_ID_CHARS.sub("_", value.strip())


def build_channel_id_map(channels: Sequence[LineupChannel], profile: OutputProfile) -> dict[str, str]:
    """
    Map each station id to a distinct, XML-safe channel id

    The id is the profile prefix plus the sanitized station id or channel
    number. A station listed more than once keeps its first id; two stations
    that sanitize to the same id get numeric suffixes ('-2', '-3', ...).

    Args:
        channels: Lineup channels in provider order
        profile: Output profile

    Returns:
        Dictionary of station_id -> xmltv channel id
    """
    channel_ids: dict[str, str] = {}
    used: set[str] = set()

    for channel in channels:
        if channel.station_id in channel_ids:
            logger.debug(f"Station {channel.station_id} listed more than once in lineup")
            continue

        source = channel.station_id
        if profile.id_source == "channel_number" and channel.channel_number.strip():
            source = channel.channel_number

        base_id = f"{profile.id_prefix}{_sanitize_id_token(source)}"
        candidate = base_id
        suffix = 2
        while candidate in used:
            candidate = f"{base_id}-{suffix}"
            suffix += 1

        if candidate != base_id:
            logger.warning(f"Channel id {base_id} already in use, station {channel.station_id} mapped to {candidate}")

        channel_ids[channel.station_id] = candidate
        used.add(candidate)

    return channel_ids
