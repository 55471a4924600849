import os

# Database for the dashboard tables (visitor stats, flights, profiles, ...)
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///tourism.db")

# Dashboard front end origin allowed by CORS
FRONTEND_ORIGIN = os.environ.get("FRONTEND_ORIGIN", "http://localhost:5173")

# Third-party flight search endpoint used by the arrivals sync
FLIGHT_API_URL = os.environ.get(
    "FLIGHT_API_URL",
    "https://flight-api.example.com/v1/arrivals",
)
FLIGHT_API_KEY = os.environ.get("FLIGHT_API_KEY", "")
FLIGHT_API_AIRPORT = os.environ.get("FLIGHT_API_AIRPORT", "LGK")
FLIGHT_API_TIMEOUT_SEC = float(os.environ.get("FLIGHT_API_TIMEOUT_SEC", "20"))

# "Today" for syncs and default reads is computed in this timezone
DASHBOARD_TZ = os.environ.get("DASHBOARD_TZ", "Asia/Kuala_Lumpur")

FLIGHT_CACHE_SECONDS = int(os.environ.get("FLIGHT_CACHE_SECONDS", "60"))
