#Marks routing as a package.
#Re-exports clean public APIs (haversine_km, check_deliverable, GeocodingClient)
#so other modules import from routing without knowing internal file names.
#No business logic.

from .geo import LatLon, centroid, estimate_travel_minutes, haversine_km, travel_minutes_between
from .geocoding_client import GeocodeResult, GeocodingClient, GeocodingError
from .zones import DeliveryQuote, check_deliverable

__all__ = [
           "LatLon",
           "haversine_km",
             "estimate_travel_minutes",
             "travel_minutes_between",
             "centroid",
             "check_deliverable",
             "DeliveryQuote",
             "GeocodingClient",
             "GeocodingError",
             "GeocodeResult",
             ]
