import logging
import os
import secrets

from dotenv import load_dotenv

# --- Load env ---
load_dotenv()


def require(name: str) -> str:
    val = os.getenv(name)
    if not val:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return val


STATION_ENV = os.getenv("STATION_ENV", "development")

# --- Flask secret ---
# A random key invalidates every station session on restart; production must pin one.
if STATION_ENV == "production":
    FLASK_SECRET_KEY = require("FLASK_SECRET_KEY")
else:
    FLASK_SECRET_KEY = os.getenv("FLASK_SECRET_KEY") or secrets.token_hex(16)

# Backend services (vote service hosts voters, elections, candidates and votes)
BACKEND_API_URL = os.getenv("BACKEND_API_URL", "http://localhost:8080/vote/api/v1").rstrip("/")
RESULTS_API_URL = os.getenv("RESULTS_API_URL", "http://localhost:8080/result/api/v1").rstrip("/")

# Seconds before an outbound backend call is abandoned
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# Success screen countdown before the station resets
AUTO_RESET_SECONDS = int(os.getenv("AUTO_RESET_SECONDS", "5"))

# Placeholder the registration service returns for voters without a district
DISTRICT_PLACEHOLDER = "District Not Available"

STATION_HOST = os.getenv("STATION_HOST", "localhost")
STATION_PORT = int(os.getenv("STATION_PORT", "3000"))

# Development backend (mock_backend.py)
MOCK_BACKEND_DB_URL = os.getenv("MOCK_BACKEND_DB_URL", "sqlite://")
MOCK_BACKEND_PORT = int(os.getenv("MOCK_BACKEND_PORT", "8080"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Route all module loggers to stderr at the configured level"""
    logging.basicConfig(level=level, format=LOG_FORMAT)
