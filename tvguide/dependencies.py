"""
FastAPI dependency providers

Settings, output profile and the shared HTTP client are provided through
dependencies so tests can swap them with `app.dependency_overrides`.
"""
import logging
from typing import Annotated

import httpx
from fastapi import Depends, Request

from tvguide.config import CustomSettings, settings
from tvguide.profiles import OutputProfile


logger = logging.getLogger(__name__)


def get_settings() -> CustomSettings:
    """Return the process-wide settings loaded at startup."""
    return settings


def get_output_profile(
    app_settings: Annotated[CustomSettings, Depends(get_settings)]
) -> OutputProfile:
    """Resolve the XMLTV output profile for the configured deployment."""
    return app_settings.output_profile()


def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Return the shared upstream HTTP client created in the app lifespan.

    Raises:
        RuntimeError: If the lifespan has not initialized the client
    """
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client not initialized. Is the application lifespan running?")
    return client


SettingsDep = Annotated[CustomSettings, Depends(get_settings)]
ProfileDep = Annotated[OutputProfile, Depends(get_output_profile)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]
