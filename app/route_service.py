# app/route_service.py
import asyncio
import time
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

import config
from route_analyzer import analyze
from route_cache import RouteCache
from timeutils import to_dt, now_utc
from logging_config import get_logger

logger = get_logger("route_service", "route_service.log")

LOCK_TIMEOUT_SECONDS = 900      # a full prefetch can take minutes on long histories

_local_locks = {}


# =====================================================================
# One refresh per device at a time
# =====================================================================
@asynccontextmanager
async def device_lock(device_id: int):
    """
    Serialise cache refreshes for one device. Uses a redis lock when REDIS_URL
    is set (several API processes), else an in-process asyncio.Lock.
    """
    if config.REDIS_URL:
        r = aioredis.from_url(config.REDIS_URL)
        try:
            async with r.lock(f"traveldiary:refresh:{device_id}", timeout=LOCK_TIMEOUT_SECONDS):
                yield
        finally:
            await r.aclose()
        return

    lock = _local_locks.setdefault(device_id, asyncio.Lock())
    async with lock:
        yield


class RouteService:
    """
    Cache-first access to analyzed routes. An empty cache triggers a full
    prefetch from START_DATE; otherwise only fixes newer than the last cached
    one are fetched, analyzed with the carried-over distance, and upserted.

    Upstream errors propagate; nothing is written for a failed fetch.
    """

    def __init__(self, db, client, geocoder=None, stand_period_hours: float = None,
                 start_date: str = None):
        self.cache = RouteCache(db)
        self.client = client
        self.geocoder = geocoder
        self.stand_period_hours = stand_period_hours or config.STAND_PERIOD
        self.start_date = start_date or config.START_DATE

    async def get_route_data(self, device_id: int, start, end):
        await self.refresh(device_id)
        return await self.cache.get_route_positions(device_id, start, end)

    async def get_standstill_periods(self, device_id: int):
        await self.refresh(device_id)
        return await self.cache.get_standstills(device_id)

    async def refresh(self, device_id: int):
        async with device_lock(device_id):
            if not await self.cache.has_cached_data(device_id):
                logger.info(f"No cached data for device {device_id}, triggering prefetch")
                await self._prefetch(device_id)
            else:
                await self._update(device_id)

    async def prefetch_route_data(self, device_id: int) -> dict:
        async with device_lock(device_id):
            return await self._prefetch(device_id)

    async def update_cache(self, device_id: int) -> int:
        async with device_lock(device_id):
            return await self._update(device_id)

    async def delete_prefetch(self, device_id: int) -> str:
        async with device_lock(device_id):
            await self.cache.clear(device_id)
        return f"Cache cleared for device {device_id}"

    # -----------------------------------------------------------------
    async def _prefetch(self, device_id: int) -> dict:
        started = time.perf_counter()
        now = now_utc()
        logger.info(f"Prefetching route data for device {device_id} from {self.start_date} to {now}")

        positions = await self.client.get_route(device_id, self.start_date, now)
        route, standstills = await analyze(positions, self.stand_period_hours, self.geocoder)

        await self.cache.upsert_positions(route, device_id)
        await self.cache.upsert_standstills(standstills, device_id)

        elapsed = time.perf_counter() - started
        logger.info(
            f"Prefetch complete: {len(route)} positions, {len(standstills)} standstills, {elapsed:.2f}s"
        )
        return {"records": len(route), "time": round(elapsed, 2)}

    async def _update(self, device_id: int) -> int:
        last = await self.cache.get_last_position(device_id)
        if not last:
            return 0

        now = now_utc()
        logger.info(f"Updating cache for device {device_id} from {last.fix_time} to {now}")

        fetched = await self.client.get_route(device_id, to_dt(last.fix_time), now)
        fresh = [p for p in fetched if p.id > last.id]
        if not fresh:
            logger.info("No new positions to add")
            return 0

        # the last cached fix anchors the delta so the step onto fresh[0] is counted
        route, standstills = await analyze(
            [last] + fresh, self.stand_period_hours, self.geocoder,
            carry_over_distance=last.total_distance,
        )
        route = route[1:]
        await self.cache.upsert_positions(route, device_id)
        await self.cache.upsert_standstills(standstills, device_id)

        logger.info(f"Added {len(route)} new positions, {len(standstills)} new standstills")
        return len(route)
