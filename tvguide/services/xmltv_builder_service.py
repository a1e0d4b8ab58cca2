"""
XMLTV Builder Service

Assembles the XMLTV document: <channel> elements for the lineup followed by
<programme> elements for every day of grid data.
"""
from __future__ import annotations

from datetime import tzinfo
from urllib.parse import urljoin
import logging
import re

from lxml import etree # type: ignore
from pydantic import ValidationError

from tvguide.errors import InternalAssemblyError, MalformedResponse
from tvguide.profiles import OutputProfile
from tvguide.schemas import LineupChannel, ProgramEntry
from tvguide.services.fetch_types import GridResult, Lineup
from tvguide.utils.timezone import format_xmltv_time, program_times

logger = logging.getLogger(__name__)

LANG = "en"

TYPE_CATEGORIES = {
    "M": "movie",
    "N": "news",
    "S": "sports",
}

FLAG_KIDS = "EI"
FLAG_HD = "HD"
FLAG_STEREO = "Stereo"
FLAG_NEW = "New"

# Characters not allowed in XML 1.0 documents, plus lone surrogates that cannot be encoded
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class XMLTVDocumentBuilder:
    """In-memory XMLTV document owned by a single guide build."""

    def __init__(
        self,
        profile: OutputProfile,
        *,
        provider_base_url: str,
        title_fallback: str = "No Title",
        root_attributes: dict[str, str] | None = None,
    ) -> None:
        self.profile = profile
        self.provider_base_url = provider_base_url
        self.title_fallback = title_fallback
        self.root = etree.Element("tv")
        for name, value in (root_attributes or {}).items():
            if value:
                self.root.set(name, value)
        self.channel_count = 0
        self.programme_count = 0
        self._channel_ids: set[str] = set()

    def add_channels(self, lineup: Lineup) -> None:
        """Emit one <channel> per distinct station, in lineup order"""
        if self.programme_count:
            raise InternalAssemblyError("channels must be added before any programme")

        for channel in lineup.channels:
            channel_id = lineup.xmltv_id(channel)
            if channel_id in self._channel_ids:
                continue
            self._add_channel(channel, channel_id)
            self._channel_ids.add(channel_id)
            self.channel_count += 1

    def _add_channel(self, channel: LineupChannel, channel_id: str) -> None:
        channel_el = etree.SubElement(self.root, "channel", id=channel_id)

        for name in self._display_names(channel):
            etree.SubElement(channel_el, "display-name").text = _clean_text(name)

        if channel.logo:
            icon_el = etree.SubElement(channel_el, "icon", src=_clean_text(urljoin(self.provider_base_url + "/", channel.logo)))
            if self.profile.icon_size:
                width, height = self.profile.icon_size
                icon_el.set("width", str(width))
                icon_el.set("height", str(height))

    def _display_names(self, channel: LineupChannel) -> list[str]:
        values = {
            "callsign": channel.station_call_sign,
            "label": f"Channel {channel.channel_number}" if channel.channel_number else "",
            "number": channel.channel_number,
        }
        names = [values[token] for token in self.profile.display_name_order if values[token]]
        # XMLTV requires at least one display-name
        return names or [channel.station_id]

    def add_programmes(self, lineup: Lineup, grid: GridResult, zone: tzinfo) -> int:
        """
        Emit programmes for one day of grid data

        Args:
            lineup: Lineup the grid was fetched for
            grid: Program arrays aligned index-for-index with lineup.channels
            zone: Display timezone for programme times

        Returns:
            Number of programmes added

        Raises:
            InternalAssemblyError: If the grid is not aligned with the lineup
            MalformedResponse: If a program record has the wrong shape
        """
        if len(grid) != len(lineup.channels):
            raise InternalAssemblyError(
                f"grid has {len(grid)} slots for {len(lineup.channels)} channels"
            )

        added = 0
        seen_stations: set[str] = set()
        for channel, programs in zip(lineup.channels, grid):
            # Repeated stations carry the same programs as their first listing
            if channel.station_id in seen_stations:
                continue
            seen_stations.add(channel.station_id)

            if not isinstance(programs, list):
                continue

            channel_id = lineup.xmltv_id(channel)
            if channel_id not in self._channel_ids:
                raise InternalAssemblyError(f"programme references unknown channel {channel_id}")

            for index, record in enumerate(programs):
                program = _parse_program(record, channel, index)
                self._add_programme(program, channel_id, zone)
                added += 1

        self.programme_count += added
        return added

    def _add_programme(self, program: ProgramEntry, channel_id: str, zone: tzinfo) -> None:
        start, stop = program_times(program.start_time, program.run_time, zone)
        convention = self.profile.offset_convention

        programme_el = etree.SubElement(
            self.root,
            "programme",
            start=format_xmltv_time(start, convention),
            stop=format_xmltv_time(stop, convention),
            channel=channel_id,
        )

        _text_element(programme_el, "title", program.title or self.title_fallback)
        if program.subtitle:
            _text_element(programme_el, "sub-title", program.subtitle)
        if program.description:
            _text_element(programme_el, "desc", program.description)

        category = TYPE_CATEGORIES.get(program.program_type or "")
        if category:
            _text_element(programme_el, "category", category)

        if program.has_flag(FLAG_KIDS):
            _text_element(programme_el, "category", "kids")
        if program.has_flag(FLAG_HD):
            video_el = etree.SubElement(programme_el, "video")
            etree.SubElement(video_el, "quality").text = "HDTV"
        if program.has_flag(FLAG_STEREO):
            audio_el = etree.SubElement(programme_el, "audio")
            etree.SubElement(audio_el, "stereo").text = "stereo"
        if program.has_flag(FLAG_NEW):
            etree.SubElement(programme_el, "new")

    def serialize(self) -> bytes:
        """Serialize the document with an XML declaration in the profile encoding"""
        etree.indent(self.root, space="  ")
        return etree.tostring(
            self.root,
            xml_declaration=True,
            encoding=self.profile.encoding,
            pretty_print=True,
        )


def _text_element(parent: etree._Element, tag: str, text: str) -> etree._Element:
    element = etree.SubElement(parent, tag, lang=LANG)
    element.text = _clean_text(text)
    return element


def _clean_text(value: str) -> str:
    return _INVALID_XML_CHARS.sub("", value)


def _parse_program(record, channel: LineupChannel, index: int) -> ProgramEntry:
    """Validate one raw program record"""
    source = f"grid[{channel.station_id}][{index}]"
    if not isinstance(record, dict):
        raise MalformedResponse(source, f"program is {type(record).__name__}, expected object")
    try:
        return ProgramEntry.model_validate(record)
    except ValidationError as e:
        raise MalformedResponse(
            source,
            f"{e.error_count()} error(s), first: {e.errors()[0]['loc']} {e.errors()[0]['msg']}",
        ) from e
