from typing import Optional
from starlette.concurrency import run_in_threadpool
from geopy.geocoders import Nominatim
from geopy.exc import GeopyError
import hashlib
import logging

from app.core.config import settings
from app.core.redis import RedisClient, redis_client
from app.schemas.listing import Address, Coordinates
from app.utils.exceptions import GeocodingError, ValidationError

logger = logging.getLogger(__name__)


class GeocodingService:
    """Resolve free-text addresses to coordinates, cached in Redis"""

    def __init__(self, geocoder=None, cache: Optional[RedisClient] = None):
        self.geocoder = geocoder or Nominatim(
            user_agent=settings.GEOCODER_USER_AGENT,
            timeout=settings.GEOCODER_TIMEOUT_SECONDS
        )
        self.cache = cache or redis_client

    def _get_cache_key(self, query: str) -> str:
        digest = hashlib.sha1(query.lower().encode("utf-8")).hexdigest()
        return f"geocode:{digest}"

    async def geocode(self, address: Address) -> Coordinates:
        """Coordinates for an address; ValidationError when nothing matches"""
        query = address.one_line()
        cache_key = self._get_cache_key(query)

        cached = await self.cache.get_json(cache_key)
        if cached:
            return Coordinates(**cached)

        try:
            # geopy geocoders are blocking
            location = await run_in_threadpool(self.geocoder.geocode, query)
        except GeopyError as e:
            logger.warning("Geocoding failed for %r: %s", query, e)
            raise GeocodingError("Geocoding service is unavailable")

        if location is None:
            raise ValidationError("Address could not be located")

        coordinates = Coordinates(latitude=location.latitude, longitude=location.longitude)
        await self.cache.set_json(
            cache_key,
            coordinates.model_dump(),
            expire=settings.GEOCODE_CACHE_TTL_SECONDS
        )
        return coordinates


geocoding_service = GeocodingService()


async def get_geocoder() -> GeocodingService:
    """Dependency to get the geocoding service"""
    return geocoding_service
