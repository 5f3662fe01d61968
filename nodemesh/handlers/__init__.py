"""
Category handlers. Each resolves to a display string and never lets an
upstream exception escape.
"""

from .base import LocationNotFoundError, UpstreamError, build_http_client
from .general import GeneralHandler
from .news import NewsHandler
from .weather import WeatherHandler

__all__ = [
    "GeneralHandler",
    "LocationNotFoundError",
    "NewsHandler",
    "UpstreamError",
    "WeatherHandler",
    "build_http_client",
]
