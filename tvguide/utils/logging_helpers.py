"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from collections.abc import Sequence


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """
    Log the start of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being started
    """
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """
    Log the end of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being ended
    """
    logger.info(f"Completed: {section_name}")


def log_day_processing(logger: logging.Logger, day_offset: int, total: int, batches: int) -> None:
    """
    Log day window processing header.

    Args:
        logger: Logger instance
        day_offset: Current day offset (0-based)
        total: Total number of days
        batches: Number of grid batches for the day
    """
    logger.info(f"Fetching guide day {day_offset + 1}/{total} ({batches} batch(es))")


def log_request(logger: logging.Logger, method: str, path: str, status_code: int, duration_ms: int) -> None:
    """Log one access line per handled request."""
    logger.info(f"{method} {path} {status_code} - {duration_ms}ms")


def log_build_summary(
    logger: logging.Logger,
    channels_count: int,
    programmes_count: int,
    size_bytes: int,
    days: int = 0,
    day_programmes: Sequence[int] = ()
) -> None:
    """
    Log guide build summary.

    Args:
        logger: Logger instance
        channels_count: Number of emitted channels
        programmes_count: Number of emitted programmes
        size_bytes: Serialized document size
        days: Number of guide days fetched
        day_programmes: Programmes added per day, in day order
    """
    per_day = ", ".join(str(count) for count in day_programmes) or "-"
    logger.info(
        f"Guide built - Days: {days}, Channels: {channels_count}, Programmes: {programmes_count} "
        f"(per day: {per_day}), Size: {size_bytes / 1024:.1f} KB"
    )


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest.split("/", 1)[0]:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url
