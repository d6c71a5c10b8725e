#Purpose: The geocoding "adapter/client".
#Sole responsibility: talk to an OpenRouteService-style geocoder via HTTP and
#return normalized outputs.
#Encapsulates geocoder-specific details:
#URL construction (/geocode/search)
#api key / country boundary parameters
#timeouts and error handling
#parsing response JSON ([lon, lat] GeoJSON) into our (lat, lon) shape
#It should not contain delivery rules.

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

import requests
from dotenv import load_dotenv

# Read geocoder settings from environment
# Example in .env:
# GEOCODER_BASE_URL=https://api.openrouteservice.org
# GEOCODER_API_KEY=...
# GEOCODER_COUNTRY=BE
load_dotenv()

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class GeocodingError(Exception):
    """Custom exception for geocoding client errors."""
    pass


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    label: Optional[str] = None

    @property
    def coordinates(self) -> LatLon:
        return (self.latitude, self.longitude)


class GeocodingClient:
    """
    Geocoding Adapter / Client

    Sole responsibility:
    - Talk to the geocoder via HTTP
    - Convert GeoJSON (lon, lat) -> internal (lat, lon)
    - Return normalized outputs
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 country: Optional[str] = None, timeout: int = 5):
        self.base_url = base_url or os.getenv("GEOCODER_BASE_URL")
        self.api_key = api_key or os.getenv("GEOCODER_API_KEY")
        self.country = country or os.getenv("GEOCODER_COUNTRY", "BE")
        self.timeout = timeout #the time to wait for a response before giving up

        if not self.base_url:
            raise ValueError("Geocoder base URL not set. Please set GEOCODER_BASE_URL in the .env file.")
        if not self.api_key:
            raise ValueError("Geocoder API key not set. Please set GEOCODER_API_KEY in the .env file.")

    def geocode(self, address: str) -> GeocodeResult:
        """
        calls the /geocode/search endpoint and returns the best match.
        """
        if not address or not address.strip():
            raise ValueError("address is required")

        url = f"{self.base_url.rstrip('/')}/geocode/search"
        try:
            response = requests.get(
                url,
                params={
                    "api_key": self.api_key,
                    "text": address,
                    "boundary.country": self.country,
                    "size": 1,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GeocodingError(f"Geocoder unreachable: {exc}") from exc

        if response.status_code != 200:
            logger.error("Geocode error %s: %s", response.status_code, response.text)
            raise GeocodingError(f"Geocoder error: HTTP {response.status_code}")

        data = response.json()
        features = data.get("features") or []
        if not features:
            raise GeocodingError(f"Address not found: {address}")

        feature = features[0] #take the best match (size=1)
        longitude, latitude = feature["geometry"]["coordinates"][:2]

        #Normalize output to internal format
        return GeocodeResult(
            latitude=float(latitude),
            longitude=float(longitude),
            label=feature.get("properties", {}).get("label"),
        )
