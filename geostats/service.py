"""
geostats/service.py
===================
Public entry points. Every call returns a JSON-ready envelope:

  {"success": True, ...}  or  {"success": False, "error": "<message>"}

No exception escapes these methods.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from geostats.aggregator import fold, summarize
from geostats.database import WorkbookStore
from geostats.errors import ValidationError
from geostats.exporter import export_sheet
from geostats.geocoder import Geocoder, default_geocoder
from geostats.ingest import GameIngestor, load_history
from geostats.renderer import Renderer

logger = logging.getLogger(__name__)

API_MESSAGE = "GeoGuessr Stats API is running"


def _error(exc: Exception) -> Dict[str, Any]:
    return {"success": False, "error": str(exc) or type(exc).__name__}


class GeoStatsService:
    def __init__(
        self,
        store: Optional[WorkbookStore] = None,
        geocoder: Optional[Geocoder] = None,
        renderer: Optional[Renderer] = None,
    ):
        self.store = store or WorkbookStore()
        self.ingestor = GameIngestor(self.store, geocoder or default_geocoder(), renderer=renderer)

    def health(self) -> Dict[str, Any]:
        return {
            "success": True,
            "message": API_MESSAGE,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def submit(self, user_id: Any, game_data: Any) -> Dict[str, Any]:
        """Save one game for a user and refresh their statistics."""
        try:
            if user_id is None or str(user_id).strip() == "":
                raise ValidationError('Missing "userId"')
            result = self.ingestor.ingest(str(user_id).strip(), game_data)
            return {
                "success": True,
                "message": "Game already saved" if result.duplicate else "Game saved successfully",
                "duplicate": result.duplicate,
                "spreadsheetUrl": Path(result.workbook_location).resolve().as_uri(),
            }
        except Exception as exc:
            logger.exception("Failed to save game for user %s", user_id)
            return _error(exc)

    def statistics(self, user_id: Any, detailed: bool = True) -> Dict[str, Any]:
        """Map x mode summaries for a user, recomputed from their history."""
        try:
            with self.store.open_user_workbook(user_id) as workbook:
                stats = fold(load_history(workbook), detailed=detailed)
            maps = []
            for stat in stats.values():
                summary = summarize(stat, detailed=detailed)
                summary["countries"] = {
                    country.upper(): country_stat.encountered
                    for country, country_stat in stat.countries.items()
                }
                maps.append(summary)
            return {"success": True, "userId": str(user_id), "maps": maps}
        except Exception as exc:
            logger.warning("Statistics for user %s failed: %s", user_id, exc)
            return _error(exc)

    def export(self, sheet_name: Optional[str], user_id: Any = None) -> Dict[str, Any]:
        """Export one table as CSV from a user's workbook, or from the default workbook."""
        try:
            if not sheet_name:
                raise ValidationError('Missing "sheet" parameter')
            if user_id:
                workbook = self.store.open_user_workbook(user_id)
            else:
                workbook = self.store.open_workbook()
            with workbook:
                text = export_sheet(workbook, sheet_name)
            return {"success": True, "sheet": sheet_name, "csv": text}
        except Exception as exc:
            logger.warning("Export of '%s' failed: %s", sheet_name, exc)
            return _error(exc)
