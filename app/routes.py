import asyncio

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response

import config
import crud
import reports
from database import get_db
from geocoder import Geocoder
from geomath import bounds_of, center_of, zoom_for
from route_service import RouteService
from standstill_cleaner import clean, apply_adjustment, translate_country_name
from kml import generate_kml
from timeutils import to_dt, to_iso, to_iso8601
from traccar import TraccarClient
from travel_analyzer import TravelAnalyzer, TravelSettings
from logging_config import get_logger

router = APIRouter(prefix="/api")
logger = get_logger("api", "api.log")

DEFAULT_ZOOM = 10
SIDE_TRIP_COLOR = "#0088FF"
SIDE_TRIP_LINE_WEIGHT = 2


# ---------------------------------------------------
#                DEPENDENCIES
# ---------------------------------------------------
def get_traccar_client():
    return TraccarClient()


def get_geocoder():
    return Geocoder()


def get_travel_settings():
    return TravelSettings()


def get_route_service(db=Depends(get_db), client=Depends(get_traccar_client),
                      geocoder=Depends(get_geocoder)):
    return RouteService(db, client, geocoder)


# ---------------------------------------------------
#                REQUEST HELPERS
# ---------------------------------------------------
def _window(payload: dict):
    """deviceId/from/to from a request body, 400 when missing or malformed."""
    device_id, start, end = payload.get("deviceId"), payload.get("from"), payload.get("to")
    if not device_id or not start or not end:
        raise HTTPException(status_code=400, detail="Missing required parameters: deviceId, from, to")
    try:
        device_id, start, end = int(device_id), to_dt(start), to_dt(end)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid deviceId, from or to")
    if start is None or end is None:
        raise HTTPException(status_code=400, detail="from and to must be ISO-8601 strings")
    return device_id, start, end


def _device_or_default(device_id):
    if device_id is None:
        return config.TRACCAR_DEVICE_ID
    try:
        return int(device_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid deviceId")


def _mask(value) -> str:
    return "••••••••" if value else ""


# ---------------------------------------------------
#                ROUTE / MAP
# ---------------------------------------------------
@router.post("/route")
async def route(payload: dict, service: RouteService = Depends(get_route_service)):
    device_id, start, end = _window(payload)
    positions = await service.get_route_data(device_id, start, end)
    return [p.to_dict() for p in positions]


@router.post("/plotmaps")
async def plotmaps(payload: dict, service: RouteService = Depends(get_route_service),
                   db=Depends(get_db)):
    device_id, start, end = _window(payload)

    await service.refresh(device_id)
    positions = await service.cache.get_route_positions(device_id, start, end)

    if not positions:
        return {
            "bounds": bounds_of([]).to_dict(),
            "center": center_of(bounds_of([])).to_dict(),
            "zoom": DEFAULT_ZOOM,
            "distance": 0,
            "polyline": [],
            "locations": [],
        }

    bounds = bounds_of(positions)
    standstills = clean(await service.cache.get_standstills(device_id), start, end)
    adjustments = await crud.get_standstill_adjustments(db)

    locations = []
    for s in standstills:
        s = apply_adjustment(s, adjustments.get(s.key))
        country = translate_country_name(s.country)
        locations.append({
            "key": s.key,
            "lat": s.latitude,
            "lng": s.longitude,
            "title": country,
            "von": to_iso(s.von),
            "bis": to_iso(s.bis),
            "period": s.period,
            "country": country,
            "address": s.address,
        })

    for poi in await crud.get_manual_pois(db, device_id):
        if start <= to_dt(poi.timestamp) <= end:
            country = translate_country_name(poi.country or "")
            locations.append({
                "key": poi.poi_key,
                "lat": poi.latitude,
                "lng": poi.longitude,
                "title": country,
                "von": poi.timestamp,
                "bis": poi.timestamp,
                "period": 0,
                "country": country,
                "address": poi.address or "",
                "isPOI": True,
                "poiId": poi.id,
            })

    return {
        "bounds": bounds.to_dict(),
        "center": center_of(bounds).to_dict(),
        "zoom": zoom_for(bounds),
        "distance": positions[-1].total_distance,
        "polyline": [{"lat": p.latitude, "lng": p.longitude} for p in positions],
        "locations": locations,
    }


@router.post("/download.kml")
async def download_kml(payload: dict, service: RouteService = Depends(get_route_service)):
    device_id, start, end = _window(payload)
    positions = await service.get_route_data(device_id, start, end)
    if not positions:
        raise HTTPException(status_code=404, detail="No route data found for specified period")

    name = payload.get("name") or f"Route_{payload['from']}_{payload['to']}"
    return Response(
        content=generate_kml(positions, name),
        media_type="application/vnd.google-earth.kml+xml",
        headers={"Content-Disposition": f'attachment; filename="{name}.kml"'},
    )


@router.post("/side-trips")
async def side_trips(payload: dict, client: TraccarClient = Depends(get_traccar_client)):
    start, end, device_ids = payload.get("from"), payload.get("to"), payload.get("deviceIds")
    if not start or not end or not device_ids:
        raise HTTPException(status_code=400, detail="Missing required parameters: from, to, deviceIds")

    try:
        start, end = to_iso8601(start), to_iso8601(end)
    except (TypeError, ValueError, AttributeError):
        raise HTTPException(status_code=400, detail="from and to must be dates")

    try:
        if not isinstance(device_ids, list):
            raise TypeError(device_ids)
        device_ids = [int(d) for d in device_ids]
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="deviceIds must be integers")

    try:
        names = {d["id"]: d.get("name") for d in await client.get_devices()}
    except httpx.HTTPError as e:
        logger.warning(f"Could not load device names for side trips: {e}")
        names = {}

    async def fetch(device_id):
        try:
            positions = await client.get_route(device_id, start, end)
        except Exception as e:
            # one device must not fail the others
            logger.exception(f"Side trip for device {device_id} failed: {e}")
            return None
        if not positions:
            logger.info(f"No positions found for device {device_id}")
            return None
        return {
            "deviceId": device_id,
            "deviceName": names.get(device_id) or f"Device {device_id}",
            "color": SIDE_TRIP_COLOR,
            "lineWeight": SIDE_TRIP_LINE_WEIGHT,
            "path": [{"lat": p.latitude, "lng": p.longitude} for p in positions],
            "isMainDevice": False,
        }

    results = await asyncio.gather(*(fetch(d) for d in device_ids))
    polylines = [r for r in results if r is not None]
    logger.info(f"Side trips: {len(polylines)}/{len(device_ids)} devices loaded")
    return {"success": True, "polylines": polylines}


# ---------------------------------------------------
#                TRAVELS / EVENTS
# ---------------------------------------------------
async def _detect_travels(payload, service, client, db, settings):
    device_id, start, end = _window(payload)
    events = await client.get_events(device_id, start, end)
    standstills = await service.get_standstill_periods(device_id)
    patches = await crud.load_patch_map(db)
    return TravelAnalyzer(settings, patches).analyze_travels(events, standstills)


@router.post("/travels")
async def travels(payload: dict, service: RouteService = Depends(get_route_service),
                  client: TraccarClient = Depends(get_traccar_client), db=Depends(get_db),
                  settings: TravelSettings = Depends(get_travel_settings)):
    found = await _detect_travels(payload, service, client, db, settings)
    return [t.to_dict() for t in found]


@router.post("/events")
async def events(payload: dict, client: TraccarClient = Depends(get_traccar_client)):
    device_id, start, end = _window(payload)
    return [e.to_dict() for e in await client.get_events(device_id, start, end)]


@router.post("/reports/travels.csv")
async def travels_csv(payload: dict, service: RouteService = Depends(get_route_service),
                      client: TraccarClient = Depends(get_traccar_client), db=Depends(get_db),
                      settings: TravelSettings = Depends(get_travel_settings)):
    found = await _detect_travels(payload, service, client, db, settings)
    return Response(content=reports.travels_to_df(found).to_csv(index=False), media_type="text/csv")


@router.post("/reports/export")
async def export_annotations(db=Depends(get_db)):
    return {
        "success": True,
        "files": [
            await reports.export_travel_patches(db),
            await reports.export_standstill_adjustments(db),
        ],
    }


# ---------------------------------------------------
#                TRACCAR PASSTHROUGH / CACHE
# ---------------------------------------------------
@router.get("/devices")
async def devices(client: TraccarClient = Depends(get_traccar_client)):
    return await client.get_devices()


@router.get("/geofences")
async def geofences(client: TraccarClient = Depends(get_traccar_client)):
    return {"success": True, "geofences": await client.get_geofences()}


@router.get("/positions")
async def positions(position_id: int = Query(None, alias="id"),
                    client: TraccarClient = Depends(get_traccar_client)):
    """Latest fix per device, or one position by id."""
    return await client.get_positions(position_id)


@router.get("/cache-status")
async def cache_status(deviceId: str = None, service: RouteService = Depends(get_route_service)):
    device_id = _device_or_default(deviceId)
    return {"success": True, "hasCache": await service.cache.has_cached_data(device_id), "deviceId": device_id}


@router.get("/prefetchroute")
async def prefetch_route(deviceId: str = None, service: RouteService = Depends(get_route_service)):
    return await service.prefetch_route_data(_device_or_default(deviceId))


@router.get("/delprefetch")
async def delete_prefetch(deviceId: str = None, service: RouteService = Depends(get_route_service)):
    return {"message": await service.delete_prefetch(_device_or_default(deviceId))}


@router.get("/settings")
async def settings():
    return {
        "success": True,
        "settings": {
            "traccarUrl": config.TRACCAR_URL,
            "traccarUser": config.TRACCAR_USER,
            "traccarPassword": _mask(config.TRACCAR_PASSWORD),
            "traccarDeviceId": config.TRACCAR_DEVICE_ID,
            "googleMapsApiKey": _mask(config.GOOGLE_MAPS_API_KEY),
            "homeLatitude": config.HOME_LATITUDE,
            "homeLongitude": config.HOME_LONGITUDE,
            "homeGeofenceId": config.HOME_GEOFENCE_ID,
            "eventMinGap": config.EVENT_MIN_GAP,
            "minDays": config.MIN_DAYS,
            "maxDays": config.MAX_DAYS,
            "standPeriod": config.STAND_PERIOD,
            "startDate": config.START_DATE,
        },
    }


# ---------------------------------------------------
#                TRAVEL PATCHES
# ---------------------------------------------------
@router.get("/travel-patches")
async def list_travel_patches(db=Depends(get_db)):
    return {"success": True, "patches": [crud.travel_patch_dict(r) for r in await crud.get_travel_patches(db)]}


@router.post("/travel-patches")
async def save_travel_patch(payload: dict, db=Depends(get_db)):
    address_key = payload.get("addressKey")
    if not address_key:
        raise HTTPException(status_code=400, detail="addressKey is required")
    try:
        await crud.upsert_travel_patch(db, address_key, payload.get("title"), payload.get("fromDate"),
                                       payload.get("toDate"), payload.get("exclude", False))
    except ValueError:
        raise HTTPException(status_code=400, detail="fromDate/toDate must be ISO-8601")
    return {"success": True}


@router.delete("/travel-patches/{address_key:path}")
async def remove_travel_patch(address_key: str, db=Depends(get_db)):
    if not await crud.delete_travel_patch(db, address_key):
        raise HTTPException(status_code=404, detail="Travel patch not found")
    return {"success": True}


# ---------------------------------------------------
#                STANDSTILL ADJUSTMENTS
# ---------------------------------------------------
@router.get("/standstill-adjustments")
async def get_adjustment(key: str = None, db=Depends(get_db)):
    if not key:
        raise HTTPException(status_code=400, detail="Standstill key is required")
    row = await crud.get_standstill_adjustment(db, key)
    adjustment = crud.adjustment_dict(row) if row else {
        "standstill_key": key, "start_adjustment_minutes": 0, "end_adjustment_minutes": 0,
    }
    return {"success": True, "adjustment": adjustment}


@router.post("/standstill-adjustments")
async def save_adjustment(payload: dict, db=Depends(get_db)):
    key = payload.get("standstillKey")
    if not key:
        raise HTTPException(status_code=400, detail="Standstill key is required")
    try:
        await crud.upsert_standstill_adjustment(db, key, payload.get("startAdjustmentMinutes") or 0,
                                                payload.get("endAdjustmentMinutes") or 0)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Adjustments must be whole minutes")
    return {"success": True, "message": "Standstill adjustment saved successfully"}


@router.delete("/standstill-adjustments/{key}")
async def remove_adjustment(key: str, db=Depends(get_db)):
    if not await crud.delete_standstill_adjustment(db, key):
        raise HTTPException(status_code=404, detail="Standstill adjustment not found")
    return {"success": True}


# ---------------------------------------------------
#                MANUAL POIS
# ---------------------------------------------------
@router.get("/manual-pois")
async def list_manual_pois(deviceId: str = None, db=Depends(get_db)):
    device_id = _device_or_default(deviceId) if deviceId else None
    return {"success": True, "pois": [crud.manual_poi_dict(r) for r in await crud.get_manual_pois(db, device_id)]}


@router.post("/manual-pois")
async def save_manual_poi(payload: dict, db=Depends(get_db)):
    required = ("lat", "lng", "timestamp", "deviceId", "key")
    if any(payload.get(k) in (None, "") for k in required):
        raise HTTPException(status_code=400, detail="Missing required fields: lat, lng, timestamp, deviceId, key")
    try:
        poi_id = await crud.upsert_manual_poi(
            db, payload["key"], payload["lat"], payload["lng"], payload["timestamp"],
            payload["deviceId"], payload.get("address"), payload.get("country"),
        )
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid POI fields")
    return {"success": True, "poiId": poi_id}


@router.delete("/manual-pois/{poi_id}")
async def remove_manual_poi(poi_id: int, db=Depends(get_db)):
    if not await crud.delete_manual_poi(db, poi_id):
        raise HTTPException(status_code=404, detail="POI not found")
    return {"success": True}
