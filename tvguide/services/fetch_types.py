"""
Shared dataclasses used across the guide build pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tvguide.schemas import LineupChannel


# One slot per lineup channel; None or a non-list slot means no programs
GridSlot = Any
GridResult = list[GridSlot]


@dataclass(slots=True)
class Lineup:
    """Channels of one lineup plus their generated XMLTV ids."""
    lineup_id: str
    channels: list[LineupChannel]
    channel_ids: dict[str, str] = field(default_factory=dict)

    @property
    def station_ids(self) -> list[str]:
        return [channel.station_id for channel in self.channels]

    def xmltv_id(self, channel: LineupChannel) -> str:
        return self.channel_ids[channel.station_id]


__all__ = ["Lineup", "GridResult", "GridSlot"]
