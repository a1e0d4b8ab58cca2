import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tvguide.profiles import OutputProfile, resolve_profile


logger = logging.getLogger(__name__)

# Provider does not serve guide data further ahead than this
MAX_GUIDE_DAYS = 8
# Station ids per grid request
CHANNEL_BATCH_SIZE = 20


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    lineup_id: str = "USA-OTA84321"
    timezone: str = "America/Denver"
    days: int = MAX_GUIDE_DAYS

    provider_base_url: str = "https://www.tvtv.us"
    provider_api_path: str = "/api/v1"
    upstream_timeout_sec: float = 30.0
    user_agent: str = "tvtv2xmltv/0.1.0"

    xmltv_profile: str = "standard"
    xmltv_id_prefix: str | None = None
    xmltv_display_name_order: str | None = None
    xmltv_encoding: str | None = None
    xmltv_offset_convention: str | None = None

    title_fallback: str = "No Title"
    generator_info_name: str = "tvtv2xmltv"
    generator_info_url: str = "https://github.com/tvtv2xmltv/tvtv2xmltv"
    source_info_name: str = "TVTV"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("lineup_id")
    @classmethod
    def validate_lineup_id(cls, value: str) -> str:
        """Validate lineup id is present."""
        value = value.strip()
        if not value:
            raise ValueError("lineup_id must not be empty")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Validate timezone is a known IANA zone."""
        if value == "UTC":
            return value
        try:
            ZoneInfo(value)
            return value
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"Invalid timezone: {value}. Must be a valid IANA timezone (e.g., 'America/Denver') or 'UTC'"
            ) from exc

    @field_validator("days")
    @classmethod
    def validate_days(cls, value: int) -> int:
        """Clamp day count to what the provider serves."""
        if value < 1:
            raise ValueError("days must be >= 1")
        if value > MAX_GUIDE_DAYS:
            logger.warning(
                "Requested %s days of guide data; provider serves at most %s, clamping",
                value,
                MAX_GUIDE_DAYS,
            )
            return MAX_GUIDE_DAYS
        return value

    @field_validator("provider_base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Validate provider URL is HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"provider_base_url must be HTTP/HTTPS: {value}")
        return value.rstrip("/")

    @field_validator("provider_api_path")
    @classmethod
    def validate_api_path(cls, value: str) -> str:
        """Normalize API path to '/segment' form."""
        value = value.strip().strip("/")
        return f"/{value}" if value else ""

    @field_validator("upstream_timeout_sec")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Validate upstream timeout (seconds)."""
        if value <= 0:
            raise ValueError("upstream_timeout_sec must be > 0")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_profile(self):
        """Validate the XMLTV profile and its overrides resolve."""
        self.output_profile()
        return self

    def output_profile(self) -> OutputProfile:
        """Resolve the configured XMLTV output profile."""
        return resolve_profile(
            self.xmltv_profile,
            id_prefix=self.xmltv_id_prefix,
            display_name_order=self.xmltv_display_name_order,
            encoding=self.xmltv_encoding,
            offset_convention=self.xmltv_offset_convention,
        )

    @property
    def api_base(self) -> str:
        """Provider API root, e.g. https://www.tvtv.us/api/v1"""
        return f"{self.provider_base_url}{self.provider_api_path}"

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        profile = self.output_profile()
        logger.info("Configuration loaded:")
        logger.info("  Lineup: %s", self.lineup_id)
        logger.info("  Timezone: %s", self.timezone)
        logger.info("  Days: %s", self.days)
        logger.info("  Provider API: %s", self.api_base)
        logger.info("  Upstream Timeout: %ss", self.upstream_timeout_sec)
        logger.info(
            "  XMLTV Profile: %s (encoding=%s, offsets=%s, id prefix=%r)",
            profile.name,
            profile.encoding,
            profile.offset_convention,
            profile.id_prefix,
        )


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
