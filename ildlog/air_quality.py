"""
Ambient air quality lookup.

Fetches the current US AQI for a location from the Open-Meteo air quality API so
that it can be attached to a patient's daily log. The lookup is best effort: any
failure is logged and reported as None, and the log is submitted without it.
"""
# ildlog/air_quality.py

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Optional

from ildlog import config

logger = logging.getLogger(__name__)


def fetch_aqi(latitude: float, longitude: float, timeout: Optional[float] = None) -> Optional[int]:
    """Fetches the current US AQI for a location.

    Args:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        timeout: Request timeout in seconds; defaults to `config.AQI_TIMEOUT_SECONDS`.

    Returns:
        The AQI as an integer, or None if it could not be fetched.
    """
    query = urllib.parse.urlencode({"latitude": latitude, "longitude": longitude, "current": "us_aqi"})
    req = urllib.request.Request(f"{config.AQI_URL}?{query}", headers={"Accept": "application/json"})
    try:
        with urllib.request.urlopen(req, timeout=timeout or config.AQI_TIMEOUT_SECONDS) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
    except (urllib.error.URLError, TimeoutError, OSError, ValueError) as e:
        logger.warning("Could not fetch air quality for (%s, %s): %s", latitude, longitude, e)
        return None

    value = (payload.get("current") or {}).get("us_aqi") if isinstance(payload, dict) else None
    if value is None:
        logger.warning("Air quality response had no current us_aqi value")
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        logger.warning("Air quality value %r is not a number", value)
        return None


def aqi_category(aqi: Optional[int]) -> str:
    """Returns the US AQI category for display."""
    if aqi is None:
        return "Unavailable"
    if aqi <= 50:
        return "Good"
    if aqi <= 100:
        return "Moderate"
    if aqi <= 150:
        return "Unhealthy for Sensitive Groups"
    return "Unhealthy"
