from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tvguide.utils.timezone import parse_iso8601_to_utc, DateFormatError


class ProviderModel(BaseModel):
    """Base for provider payload records (camelCase on the wire)"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class LineupChannel(ProviderModel):
    """Channel record from the lineup endpoint"""
    station_id: str = Field(..., alias="stationId", description="Provider-internal station id")
    channel_number: str = Field("", alias="channelNumber", description="Human-facing channel number")
    station_call_sign: str = Field("", alias="stationCallSign", description="Station call sign")
    logo: str | None = Field(None, description="Logo path relative to the provider site")

    @field_validator("station_id", "channel_number", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        """Provider sends ids as strings or numbers"""
        if isinstance(v, bool):
            raise ValueError("identifier must be a string or number")
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("station_id")
    @classmethod
    def validate_station_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("stationId must not be empty")
        return v

    @field_validator("channel_number", "station_call_sign", mode="before")
    @classmethod
    def null_to_empty(cls, v):
        return "" if v is None else v


class ProgramEntry(ProviderModel):
    """Program record from the grid endpoint"""
    title: str | None = None
    subtitle: str | None = None
    description: str | None = None
    start_time: datetime = Field(..., alias="startTime", description="ISO8601 UTC start time")
    run_time: float = Field(..., alias="runTime", ge=0, description="Duration in minutes")
    program_type: str | None = Field(None, alias="type", description="M, N, S or other")
    flags: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("start_time", mode="before")
    @classmethod
    def validate_start_time(cls, v):
        """Parse with the centralized ISO8601 parser"""
        if isinstance(v, datetime):
            return v
        if not isinstance(v, str):
            raise ValueError("startTime must be an ISO8601 string")
        try:
            return parse_iso8601_to_utc(v)
        except DateFormatError as e:
            raise ValueError(str(e)) from e

    @field_validator("flags", mode="before")
    @classmethod
    def normalize_flags(cls, v):
        """Absent flags are the empty set"""
        if v is None:
            return frozenset()
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(str(flag) for flag in v if flag is not None)
        raise ValueError("flags must be an array of strings")

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags


class HealthResponse(BaseModel):
    """Health check payload"""
    status: str
    lineup_id: str
    timezone: str
    days: int
    profile: str
