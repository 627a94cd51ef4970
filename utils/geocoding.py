"""
Geocoding utilities for turning free-text addresses into coordinates
"""

import logging
import requests
from functools import partial
from typing import Dict, Optional

from utils.error_handling import UpstreamError, ErrorHandler

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

# Returned when an address cannot be resolved. Never a real location.
UNRESOLVED = {'latitude': 0.0, 'longitude': 0.0}


class GeocodingError(UpstreamError):
    default_message = 'Geocoding failed'


def is_unresolved(coordinates: Optional[Dict[str, float]]) -> bool:
    """True for a missing result or the (0, 0) sentinel"""
    if not coordinates:
        return True
    return coordinates.get('latitude') == 0 and coordinates.get('longitude') == 0


def lookup_coordinates(address: str, api_key: Optional[str], timeout: float = 5) -> Dict[str, float]:
    """
    Resolve an address through the Google Geocoding API

    Args:
        address: Free-text address or zipcode
        api_key: Google Maps API key
        timeout: Request timeout in seconds

    Returns:
        Dictionary with 'latitude' and 'longitude'

    Raises:
        GeocodingError: missing key, empty address, HTTP failure or no result
    """
    if not api_key:
        raise GeocodingError('Google Maps API key is not configured')
    if not address or not address.strip():
        raise GeocodingError('Empty or invalid address provided for geocoding')

    try:
        response = requests.get(
            GOOGLE_GEOCODE_URL,
            params={'address': address.strip(), 'key': api_key},
            timeout=timeout,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        raise GeocodingError(
            f"Geocoding API error: {ErrorHandler.handle_network_error(e, 'Geocoding')}"
        ) from e
    except ValueError as e:
        raise GeocodingError('Geocoding API returned an invalid response') from e

    status = data.get('status')
    results = data.get('results') or []
    if status != 'OK' or not results:
        raise GeocodingError(f"Geocoding failed: {status or 'Unknown error'}")

    location = results[0]['geometry']['location']
    return {'latitude': location['lat'], 'longitude': location['lng']}


def geocode_address(address: str, api_key: Optional[str], timeout: float = 5) -> Dict[str, float]:
    """
    Resolve an address, absorbing every failure into the UNRESOLVED sentinel

    Callers must check is_unresolved() before treating the result as a location.
    """
    try:
        return lookup_coordinates(address, api_key, timeout=timeout)
    except GeocodingError as e:
        logger.warning(f"Geocoding '{address}' failed: {e.message}")
        return dict(UNRESOLVED)


def format_address(address: Optional[Dict[str, str]]) -> str:
    """Join a structured address into a single line suitable for geocoding"""
    if not address:
        return ''
    parts = [str(address.get(key) or '') for key in ('street', 'city', 'state', 'zip')]
    return ', '.join(part.strip() for part in parts if part.strip())


def configured_lookup(config):
    """lookup_coordinates bound to the app's key and timeout, safe to call outside an app context"""
    return partial(lookup_coordinates, api_key=config.get('GOOGLE_MAPS_API_KEY'),
                   timeout=config.get('GEOCODE_TIMEOUT', 5))


def configured_geocoder(config):
    return partial(geocode_address, api_key=config.get('GOOGLE_MAPS_API_KEY'),
                   timeout=config.get('GEOCODE_TIMEOUT', 5))
