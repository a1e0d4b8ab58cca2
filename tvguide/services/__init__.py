"""
Services package for the tvtv2xmltv service

This package contains all business logic and service layer components.
"""
from tvguide.services.guide_service import GuideBuildPipeline, GuideDocument, GuideState
from tvguide.services.lineup_service import fetch_lineup, build_channel_id_map
from tvguide.services.grid_service import fetch_day_grid
from tvguide.services.xmltv_builder_service import XMLTVDocumentBuilder
from tvguide.services.upstream_client import create_http_client

__all__ = [
    'GuideBuildPipeline',
    'GuideDocument',
    'GuideState',
    'fetch_lineup',
    'build_channel_id_map',
    'fetch_day_grid',
    'XMLTVDocumentBuilder',
    'create_http_client',
]
