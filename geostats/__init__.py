# geostats/__init__.py
"""
Per-user GeoGuessr game statistics.

Games are ingested into a per-user workbook (Games, Rounds, Country
Recognition tables) and folded into map x mode statistics and per-country
recognition reports on every save.
"""

from .errors import GeoStatsError, NotFoundError, UpstreamError, ValidationError
from .game_mode import ModeRestrictions, classify_mode, mode_slug
from .service import GeoStatsService

__all__ = [
    'GeoStatsError',
    'NotFoundError',
    'UpstreamError',
    'ValidationError',
    'ModeRestrictions',
    'classify_mode',
    'mode_slug',
    'GeoStatsService',
]
