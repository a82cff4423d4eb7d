import logging
import math

import redis.asyncio as redis

from .matching.filters import norm
from .matching.pipeline import MatchingPipeline

logger = logging.getLogger(__name__)

KM_PER_DEG_LAT = 111.0


def grid_cell(lat: float, lon: float, grid_deg: float) -> tuple[int, int]:
    """Integer (row, col) of the grid cell holding a coordinate."""
    return int(math.floor(lat / grid_deg)), int(math.floor(lon / grid_deg))


def cells_within(lat: float, lon: float, radius_km: float, grid_deg: float) -> list[tuple[int, int]]:
    """
    Every grid cell touching the lat/lon box around a circle. A superset of
    the cells the circle itself touches.
    """
    d_lat = radius_km / KM_PER_DEG_LAT
    # longitude degrees shrink towards the poles; clamp so the box stays finite
    d_lon = radius_km / (KM_PER_DEG_LAT * max(abs(math.cos(math.radians(lat))), 0.01))

    row_min, col_min = grid_cell(lat - d_lat, lon - d_lon, grid_deg)
    row_max, col_max = grid_cell(lat + d_lat, lon + d_lon, grid_deg)
    return [
        (row, col)
        for row in range(row_min, row_max + 1)
        for col in range(col_min, col_max + 1)
    ]


def cell_index_key(row: int, col: int) -> str:
    return f"match-index:{row}:{col}"


class MatchCache:
    """
    Short-lived cache of /api/psw/available results.

    Each cached answer is listed in an index set for the client's grid cell.
    A new worker drops the answers of every cell within ``max_radius_km`` of
    it. Searches wider than that reach are never cached, so no cached answer
    can miss a worker that should now appear in it.
    Redis failures are logged and read as a miss.
    """

    def __init__(self, client, ttl_seconds: int = 60, grid_deg: float = 0.05, max_radius_km: float = 50.0):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.grid_deg = grid_deg
        self.max_radius_km = max_radius_km

    @classmethod
    def from_url(cls, url: str | None, **kwargs):
        if not url:
            return cls(None, **kwargs)
        return cls(redis.from_url(url, decode_responses=True), **kwargs)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def cacheable(self, request) -> bool:
        return MatchingPipeline.effective_radius(request) <= self.max_radius_km

    def cache_key(self, request) -> str:
        row, col = grid_cell(request.location.latitude, request.location.longitude, self.grid_deg)
        prefs = request.preferences
        parts = [
            f"cell={row},{col}",
            f"r={request.radius_km:g}",
            f"d={request.date.isoformat()}",
            f"t={request.start_time}-{request.end_time}",
            f"s={norm(request.service_type)}",
        ]
        if prefs:
            certs = ",".join(sorted(norm(c) for c in prefs.certifications or []))
            parts.append(f"p={prefs.max_distance}|{prefs.min_rating}|{certs}")
        # ranking depends on the exact point, not just the cell
        parts.append(f"at={request.location.latitude:.5f},{request.location.longitude:.5f}")
        return "match:" + ":".join(parts)

    async def get(self, key: str) -> str | None:
        if not self.enabled:
            return None
        try:
            return await self.client.get(key)
        except Exception as e:
            logger.warning("match cache read failed: %s", e)
            return None

    async def set(self, key: str, value: str, request) -> bool:
        """Cache ``value`` and list it under the client's cell. False when skipped."""
        if not self.enabled:
            return False
        if not self.cacheable(request):
            logger.debug("not caching %s: radius beyond %s km", key, self.max_radius_km)
            return False

        row, col = grid_cell(request.location.latitude, request.location.longitude, self.grid_deg)
        index = cell_index_key(row, col)
        try:
            pipe = self.client.pipeline()
            pipe.set(key, value, ex=self.ttl_seconds)
            pipe.sadd(index, key)
            # outlive every key it lists
            pipe.expire(index, self.ttl_seconds + 5)
            await pipe.execute()
        except Exception as e:
            logger.warning("match cache write failed: %s", e)
            return False
        return True

    async def drop_cell(self, row: int, col: int) -> int:
        """Delete the answers listed for one cell and the index itself."""
        index = cell_index_key(row, col)
        keys = await self.client.smembers(index)
        if not keys:
            await self.client.delete(index)
            return 0

        pipe = self.client.pipeline()
        pipe.delete(*keys)
        pipe.delete(index)
        deleted, _ = await pipe.execute()
        return deleted if isinstance(deleted, int) else 0

    async def invalidate_for_psw(self, profile) -> int:
        """Drop cached answers for every client cell ``profile`` could be matched from."""
        if not self.enabled:
            return 0
        lat = profile.location.latitude
        lon = profile.location.longitude
        deleted = 0
        try:
            for row, col in cells_within(lat, lon, self.max_radius_km, self.grid_deg):
                deleted += await self.drop_cell(row, col)
        except Exception as e:
            logger.warning("match cache invalidation failed: %s", e)
        return deleted

    async def close(self):
        if self.client is not None:
            await self.client.aclose()
