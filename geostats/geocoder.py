# geostats/geocoder.py

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from typing import Any, Dict, Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import reverse_geocoder

from geostats import settings
from geostats.errors import UpstreamError

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def country_code(self, lat: float, lng: float) -> str:
        """Lower-case ISO country code for a coordinate, or "unknown"."""
        ...


class GoogleGeocoder:
    """Reverse geocoding through the Google Maps Geocoding API.

    country_code() never raises: any transport, HTTP or payload problem
    degrades to "unknown" and is logged.
    """

    HEADERS = {
        "Accept": "application/json",
        "User-Agent": "geostats/1.0",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        base_url: str = settings.GEOCODE_URL,
    ):
        self.api_key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key
        self.timeout_seconds = settings.GEOCODER_TIMEOUT if timeout_seconds is None else timeout_seconds
        self.base_url = base_url

    def _get_json(self, url: str) -> Dict[str, Any]:
        req = Request(url, headers=self.HEADERS, method="GET")
        try:
            with urlopen(req, timeout=self.timeout_seconds) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            raise UpstreamError(f"Geocoder returned HTTP {exc.code}") from exc
        except URLError as exc:
            raise UpstreamError(f"Geocoder unreachable: {exc.reason}") from exc
        except (OSError, HTTPException) as exc:
            raise UpstreamError(f"Geocoder connection failed: {exc!r}") from exc
        except (ValueError, UnicodeDecodeError) as exc:
            raise UpstreamError(f"Geocoder returned invalid JSON: {exc}") from exc

    def _lookup_url(self, lat: float, lng: float) -> str:
        query = urlencode({
            "latlng": f"{lat},{lng}",
            "result_type": "country",
            "key": self.api_key,
        })
        return f"{self.base_url}?{query}"

    @staticmethod
    def parse_country(payload: Dict[str, Any]) -> Optional[str]:
        """Return the country short name from the first geocoding result."""
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list) or not results:
            return None
        first = results[0]
        if not isinstance(first, dict):
            return None
        components = first.get("address_components")
        if not isinstance(components, list):
            return None
        for component in components:
            if not isinstance(component, dict):
                continue
            if "country" in (component.get("types") or []):
                short_name = component.get("short_name")
                if short_name:
                    return str(short_name).lower()
        return None

    def country_code(self, lat: float, lng: float) -> str:
        if not self.api_key:
            logger.debug("No geocoding API key configured; %s,%s -> unknown", lat, lng)
            return settings.UNKNOWN_COUNTRY
        try:
            payload = self._get_json(self._lookup_url(lat, lng))
        except UpstreamError as exc:
            logger.warning("Geocoding error for %s,%s: %s", lat, lng, exc)
            return settings.UNKNOWN_COUNTRY

        status = payload.get("status") if isinstance(payload, dict) else None
        if status not in (None, "OK"):
            if status != "ZERO_RESULTS":
                logger.warning("Geocoding status %s for %s,%s", status, lat, lng)
            return settings.UNKNOWN_COUNTRY

        return self.parse_country(payload) or settings.UNKNOWN_COUNTRY


class OfflineGeocoder:
    """Nearest-populated-place lookup from the bundled GeoNames dataset.

    Results are cached per rounded coordinate; failures degrade to "unknown".
    """

    def __init__(self, precision: int = 4):
        self.precision = precision
        self._cache: Dict[tuple, str] = {}

    def country_code(self, lat: float, lng: float) -> str:
        try:
            key = (round(float(lat), self.precision), round(float(lng), self.precision))
            if key in self._cache:
                return self._cache[key]
            res = reverse_geocoder.search(key, mode=1)
            code = str(res[0].get("cc") or "").lower() if res else ""
        except Exception as exc:
            logger.warning("Offline geocoding error for %s,%s: %s", lat, lng, exc)
            return settings.UNKNOWN_COUNTRY
        code = code or settings.UNKNOWN_COUNTRY
        self._cache[key] = code
        return code


def default_geocoder() -> Geocoder:
    """Geocoder selected by GEOSTATS_GEOCODER ("google", "offline" or "auto")."""
    backend = settings.GEOCODER_BACKEND
    if backend == "google" or (backend == "auto" and settings.GOOGLE_MAPS_API_KEY):
        return GoogleGeocoder()
    return OfflineGeocoder()
