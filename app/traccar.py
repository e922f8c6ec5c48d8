import httpx
from tenacity import retry, wait_exponential_jitter, stop_after_attempt, retry_if_exception_type

import config
from schemas import Position, GeofenceEvent
from timeutils import to_iso
from logging_config import get_logger

logger = get_logger("traccar", "traccar.log")

# Traccar reports absurd trip distances for corrupt fixes
MAX_TRIP_DISTANCE = 1_000_000.0


class TraccarClient:
    """
    Thin async client for the Traccar REST API (HTTP basic auth).
    Transport errors are retried; HTTP status errors propagate to the caller.
    """

    def __init__(self, base_url: str = None, username: str = None, password: str = None,
                 timeout: float = None, transport=None):
        self.base_url = (base_url or config.TRACCAR_URL).rstrip("/")
        self.auth = (username if username is not None else config.TRACCAR_USER,
                     password if password is not None else config.TRACCAR_PASSWORD)
        self.timeout = timeout or config.TRACCAR_TIMEOUT
        self.transport = transport

    @retry(
        wait=wait_exponential_jitter(initial=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get(self, path: str, params: dict = None):
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=self.auth,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Accept": "application/json; charset=utf-8"},
        ) as client:
            try:
                response = await client.get(path, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                logger.error(f"Traccar API error ({path}): status={e.response.status_code}")
                raise
            except httpx.TransportError as e:
                logger.warning(f"Traccar API transport error ({path}): {e}")
                raise

    async def get_devices(self) -> list:
        return await self._get("/api/devices")

    async def get_geofences(self) -> list:
        return await self._get("/api/geofences")

    async def get_positions(self, position_id: int = None) -> list:
        params = {"id": position_id} if position_id else None
        return await self._get("/api/positions", params)

    async def get_route(self, device_id: int, start, end) -> list:
        """Route report for one device as Position records, corrupt fixes dropped."""
        logger.info(f"getRoute device:{device_id} from:{to_iso(start)} to:{to_iso(end)}")
        raw = await self._get(
            "/api/reports/route",
            {"deviceId": device_id, "from": to_iso(start), "to": to_iso(end)},
        )

        kept = [
            p for p in raw
            if float((p.get("attributes") or {}).get("distance") or 0) < MAX_TRIP_DISTANCE
        ]
        logger.info(f"loaded {len(raw)} positions, {len(raw) - len(kept)} filtered")
        return [Position.from_traccar(p) for p in kept]

    async def get_events(self, device_id: int, start, end) -> list:
        logger.info(f"getEvents device:{device_id} from:{to_iso(start)} to:{to_iso(end)}")
        raw = await self._get(
            "/api/reports/events",
            {"deviceId": device_id, "from": to_iso(start), "to": to_iso(end)},
        )
        return [GeofenceEvent.from_traccar(e) for e in raw]
