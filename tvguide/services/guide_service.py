"""
Guide Build Service

Coordinates lineup fetching, per-day grid fetching and XMLTV assembly for one
request. The document is built completely in memory and serialized once; any
failure aborts the build and nothing is returned.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from tvguide.config import CHANNEL_BATCH_SIZE, CustomSettings
from tvguide.profiles import OutputProfile
from tvguide.services.grid_service import fetch_day_grid
from tvguide.services.lineup_service import fetch_lineup
from tvguide.services.xmltv_builder_service import XMLTVDocumentBuilder
from tvguide.utils.batching import chunk_channels
from tvguide.utils.logging_helpers import (
    log_build_summary,
    log_day_processing,
    log_section_end,
    log_section_start,
)
from tvguide.utils.timezone import calculate_day_window, clamp_days, get_zone


logger = logging.getLogger(__name__)


class GuideState(enum.Enum):
    START = "start"
    LINEUP_FETCHED = "lineup_fetched"
    DAY_FETCHED = "day_fetched"
    SERIALIZED = "serialized"
    RESPONDED = "responded"
    FAILED = "failed"


# Allowed transitions; FAILED is reachable from every non-terminal state
_TRANSITIONS: dict[GuideState, set[GuideState]] = {
    GuideState.START: {GuideState.LINEUP_FETCHED},
    GuideState.LINEUP_FETCHED: {GuideState.DAY_FETCHED, GuideState.SERIALIZED},
    GuideState.DAY_FETCHED: {GuideState.DAY_FETCHED, GuideState.SERIALIZED},
    GuideState.SERIALIZED: {GuideState.RESPONDED},
    GuideState.RESPONDED: set(),
    GuideState.FAILED: set(),
}


@dataclass(slots=True)
class BuildContext:
    started_at: datetime
    days: int
    timezone: str
    source_data_url: str | None = None


@dataclass(slots=True)
class GuideDocument:
    """Serialized guide ready to be sent to the client."""
    content: bytes
    encoding: str
    filename: str
    channels: int
    programmes: int
    days: int = 0
    day_programmes: list[int] = field(default_factory=list)

    @property
    def media_type(self) -> str:
        return f"application/xml; charset={self.encoding.lower()}"


class GuideBuildPipeline:
    """Builds one XMLTV document; a new instance is used per request."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: CustomSettings,
        profile: OutputProfile | None = None,
        *,
        source_data_url: str | None = None,
        now: datetime | None = None,
        batch_size: int = CHANNEL_BATCH_SIZE,
    ) -> None:
        self.client = client
        self.settings = settings
        self.profile = profile or settings.output_profile()
        self.batch_size = batch_size
        self.context = BuildContext(
            started_at=(now or datetime.now(timezone.utc)).astimezone(timezone.utc),
            days=clamp_days(settings.days),
            timezone=settings.timezone,
            source_data_url=source_data_url,
        )
        self.state = GuideState.START
        self.history: list[GuideState] = [GuideState.START]

    def _transition(self, new_state: GuideState) -> None:
        if new_state is not GuideState.FAILED and new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid guide state transition {self.state.name} -> {new_state.name}")
        self.state = new_state
        self.history.append(new_state)

    def reached(self, state: GuideState) -> bool:
        return state in self.history

    async def run(self) -> GuideDocument:
        """
        Build and serialize the guide

        Returns:
            GuideDocument with the serialized XMLTV body

        Raises:
            GuideError: If any upstream fetch or assembly step fails
        """
        try:
            return await self._build()
        except BaseException:
            self._transition(GuideState.FAILED)
            raise

    async def _build(self) -> GuideDocument:
        context = self.context
        logger.info(
            "Building guide: lineup=%s, days=%s, timezone=%s, profile=%s",
            self.settings.lineup_id,
            context.days,
            context.timezone,
            self.profile.name,
        )

        builder = self._create_builder()

        log_section_start(logger, "lineup fetch")
        lineup = await fetch_lineup(self.client, self.settings, self.profile)
        builder.add_channels(lineup)
        self._transition(GuideState.LINEUP_FETCHED)
        log_section_end(logger, "lineup fetch")

        station_ids = lineup.station_ids
        batches = len(chunk_channels(station_ids, self.batch_size))
        day_programmes: list[int] = []

        for day_offset in range(context.days):
            window = calculate_day_window(day_offset, context.started_at, context.timezone)
            log_day_processing(logger, day_offset, context.days, batches)

            grid = await fetch_day_grid(self.client, self.settings, station_ids, window, self.batch_size)
            added = builder.add_programmes(lineup, grid, window.display_zone)
            day_programmes.append(added)
            self._transition(GuideState.DAY_FETCHED)

            logger.info(f"  Day {day_offset + 1}: {added} programmes")

        content = builder.serialize()
        self._transition(GuideState.SERIALIZED)

        document = GuideDocument(
            content=content,
            encoding=self.profile.encoding,
            filename=self._filename(),
            channels=builder.channel_count,
            programmes=builder.programme_count,
            days=context.days,
            day_programmes=day_programmes,
        )
        log_build_summary(
            logger,
            document.channels,
            document.programmes,
            len(content),
            days=document.days,
            day_programmes=document.day_programmes,
        )
        logger.debug("Generated XML sample: %s...", content[:500].decode(self.profile.encoding, errors="replace"))
        return document

    def mark_responded(self) -> None:
        self._transition(GuideState.RESPONDED)

    def _create_builder(self) -> XMLTVDocumentBuilder:
        return XMLTVDocumentBuilder(
            self.profile,
            provider_base_url=self.settings.provider_base_url,
            title_fallback=self.settings.title_fallback,
            root_attributes={
                "generator-info-name": self.settings.generator_info_name,
                "generator-info-url": self.settings.generator_info_url,
                "source-info-name": self.settings.source_info_name,
                "source-info-url": self.settings.provider_base_url,
                "source-data-url": self.context.source_data_url or "",
            },
        )

    def _filename(self) -> str:
        local_date = self.context.started_at.astimezone(get_zone(self.context.timezone))
        return f"tvguide-{local_date.strftime('%Y%m%d')}.xml"

