import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response

from tvguide.dependencies import HttpClientDep, ProfileDep, SettingsDep
from tvguide.schemas import HealthResponse
from tvguide.services import GuideBuildPipeline


logger = logging.getLogger(__name__)

main_router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@main_router.get("/xmltv")
async def get_xmltv(
    request: Request,
    client: HttpClientDep,
    app_settings: SettingsDep,
    profile: ProfileDep,
) -> Response:
    """
    Generate the XMLTV guide for the configured lineup

    Fetches the lineup and every day of grid data from the provider on each
    request. Failures raise GuideError, which the application turns into a 500.
    """
    logger.info("Generating XMLTV data...")
    pipeline = GuideBuildPipeline(
        client,
        app_settings,
        profile,
        source_data_url=str(request.url),
    )
    document = await pipeline.run()

    response = Response(
        content=document.content,
        media_type=document.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{document.filename}"',
            **NO_CACHE_HEADERS,
        },
    )
    pipeline.mark_responded()
    return response


@main_router.get("/health", response_model=HealthResponse)
async def health_check(app_settings: SettingsDep, profile: ProfileDep) -> HealthResponse:
    """Health check endpoint"""
    return HealthResponse(
        status="ok",
        lineup_id=app_settings.lineup_id,
        timezone=app_settings.timezone,
        days=app_settings.days,
        profile=profile.name,
    )
