"""
XMLTV output profiles

A profile bundles the formatting choices that differ between the two lineup
conventions in use: where channel ids come from, how display names are ordered,
the document encoding and how programme offsets are written.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal


IdSource = Literal["station_id", "channel_number"]
OffsetConvention = Literal["utc", "local"]

# Display-name tokens: call sign, "Channel N" label, bare channel number
DISPLAY_NAME_TOKENS = ("callsign", "label", "number")
OFFSET_CONVENTIONS = ("utc", "local")
SUPPORTED_ENCODINGS = ("UTF-8", "ISO-8859-1")


@dataclass(frozen=True, slots=True)
class OutputProfile:
    """Formatting options applied by the XMLTV assembler."""
    name: str
    id_source: IdSource
    id_prefix: str
    display_name_order: tuple[str, ...]
    encoding: str
    offset_convention: OffsetConvention
    icon_size: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        if not self.display_name_order:
            raise ValueError("display_name_order must contain at least one entry")
        unknown = [token for token in self.display_name_order if token not in DISPLAY_NAME_TOKENS]
        if unknown:
            raise ValueError(f"Unknown display-name tokens: {unknown}")
        if self.offset_convention not in OFFSET_CONVENTIONS:
            raise ValueError(f"offset_convention must be one of {OFFSET_CONVENTIONS}")
        if self.encoding not in SUPPORTED_ENCODINGS:
            raise ValueError(f"encoding must be one of {SUPPORTED_ENCODINGS}")


STANDARD_PROFILE = OutputProfile(
    name="standard",
    id_source="station_id",
    id_prefix="ch",
    display_name_order=("callsign", "label", "number"),
    encoding="UTF-8",
    offset_convention="utc",
    icon_size=(360, 270),
)

LEGACY_PROFILE = OutputProfile(
    name="legacy",
    id_source="channel_number",
    id_prefix="",
    display_name_order=("callsign", "number"),
    encoding="ISO-8859-1",
    offset_convention="local",
)

PROFILES: dict[str, OutputProfile] = {
    STANDARD_PROFILE.name: STANDARD_PROFILE,
    LEGACY_PROFILE.name: LEGACY_PROFILE,
}


def parse_display_name_order(value: str) -> tuple[str, ...]:
    """Parse a comma-separated display-name order such as 'callsign,number'."""
    return tuple(token.strip().lower() for token in value.split(",") if token.strip())


def resolve_profile(
    name: str,
    *,
    id_prefix: str | None = None,
    display_name_order: str | None = None,
    encoding: str | None = None,
    offset_convention: str | None = None,
) -> OutputProfile:
    """
    Look up a named profile and apply per-deployment overrides

    Args:
        name: Profile name ('standard' or 'legacy')
        id_prefix: Optional channel id prefix override
        display_name_order: Optional comma-separated display-name order override
        encoding: Optional document encoding override
        offset_convention: Optional 'utc'/'local' override

    Returns:
        Resolved OutputProfile

    Raises:
        ValueError: If the profile name or an override is not recognized
    """
    try:
        profile = PROFILES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown XMLTV profile '{name}'. Must be one of {sorted(PROFILES)}") from None

    overrides: dict = {}
    if id_prefix is not None:
        overrides["id_prefix"] = id_prefix
    if display_name_order:
        overrides["display_name_order"] = parse_display_name_order(display_name_order)
    if encoding:
        overrides["encoding"] = encoding.upper()
    if offset_convention:
        overrides["offset_convention"] = offset_convention.lower()

    return replace(profile, **overrides) if overrides else profile


__all__ = [
    "OutputProfile",
    "STANDARD_PROFILE",
    "LEGACY_PROFILE",
    "PROFILES",
    "resolve_profile",
    "parse_display_name_order",
]
