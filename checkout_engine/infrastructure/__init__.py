"""Infrastructure layer - configuration, logging, HTTP clients."""

from checkout_engine.infrastructure.commerce_client import CommerceClient
from checkout_engine.infrastructure.config import Settings, settings
from checkout_engine.infrastructure.geocoder import GeocodeResult, NominatimGeocoder
from checkout_engine.infrastructure.logging import configure_logging

__all__ = [
    "CommerceClient",
    "GeocodeResult",
    "NominatimGeocoder",
    "Settings",
    "configure_logging",
    "settings",
]
