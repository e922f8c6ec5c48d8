import httpx

from config import GOOGLE_MAPS_API_KEY
from logging_config import get_logger

logger = get_logger("geocoder", "geocoder.log")

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def placeholder(lat: float, lng: float) -> dict:
    return {"country": "Unknown", "address": f"{lat:.6f}, {lng:.6f}"}


class Geocoder:
    """
    Google reverse geocoder. geocode() never raises: any failure (network,
    quota, no result) yields {"country": "Unknown", "address": "<lat>, <lng>"}.
    """

    def __init__(self, api_key: str = GOOGLE_MAPS_API_KEY, timeout: float = 10.0, transport=None):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def geocode(self, lat: float, lng: float) -> dict:
        if not self.api_key:
            logger.warning(f"No Google Maps API key configured, skipping geocode of {lat:.6f},{lng:.6f}")
            return placeholder(lat, lng)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    GEOCODE_URL,
                    params={"latlng": f"{lat},{lng}", "key": self.api_key},
                )
                response.raise_for_status()
                data = response.json()

            results = data.get("results") or []
            if data.get("status") == "OK" and results:
                result = results[0]
                country = next(
                    (c.get("long_name") for c in result.get("address_components", [])
                     if "country" in c.get("types", [])),
                    None,
                )
                return {
                    "country": country or "Unknown",
                    "address": result.get("formatted_address") or placeholder(lat, lng)["address"],
                }

            logger.warning(f"Geocode {lat:.6f},{lng:.6f} returned status={data.get('status')}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Reverse geocoding error for {lat:.6f},{lng:.6f}: {e}")

        return placeholder(lat, lng)
