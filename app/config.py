import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL   = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/traveldiary.db")
REDIS_URL      = os.getenv("REDIS_URL")

TRACCAR_URL      = os.getenv("TRACCAR_URL", "http://localhost:8082")
TRACCAR_USER     = os.getenv("TRACCAR_USER", "")
TRACCAR_PASSWORD = os.getenv("TRACCAR_PASSWORD", "")
TRACCAR_DEVICE_ID = int(os.getenv("TRACCAR_DEVICE_ID", 0))
TRACCAR_TIMEOUT  = float(os.getenv("TRACCAR_TIMEOUT", 100))

GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")

HOME_LATITUDE    = float(os.getenv("HOME_LATITUDE", 0))
HOME_LONGITUDE   = float(os.getenv("HOME_LONGITUDE", 0))
HOME_GEOFENCE_ID = int(os.getenv("HOME_GEOFENCE_ID", 1))

EVENT_MIN_GAP  = int(os.getenv("EVENT_MIN_GAP", 60))
MIN_DAYS       = int(os.getenv("MIN_DAYS", 2))
MAX_DAYS       = int(os.getenv("MAX_DAYS", 170))
STAND_PERIOD   = int(os.getenv("STAND_PERIOD", 12))
START_DATE     = os.getenv("START_DATE", "2019-03-01T00:00:00Z")

REPORT_TIMEZONE = os.getenv("REPORT_TIMEZONE", "Europe/Berlin")
REPORT_DIR      = os.getenv("REPORT_DIR", "reports")
