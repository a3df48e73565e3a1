# File: backend/carmarket/core/config.py

import os
import re
from dotenv import load_dotenv

load_dotenv()  # If using a .env file


def _parse_duration(value: str) -> int:
    """
    Convert "604800", "7d", "12h", "30m" or "45s" into seconds.
    """
    match = re.fullmatch(r"\s*(\d+)\s*([dhms]?)\s*", value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = int(match.group(1)), match.group(2)
    return amount * {"d": 86400, "h": 3600, "m": 60, "s": 1, "": 1}[unit]


# ------------------
# Database settings
# ------------------
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "car_marketplace")

# ------------------
# HTTP
# ------------------
API_PREFIX = os.getenv("API_PREFIX", "/api")
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")

# Listing pagination. The page size is capped so one request can't pull the whole collection.
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "10"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))

# ------------------
# JWT Auth
# ------------------
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "supersecretkey")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_IN = _parse_duration(os.getenv("JWT_EXPIRES_IN", "7d"))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# ------------------
# Email (SMTP)
# ------------------
EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASS = os.getenv("EMAIL_PASS", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", EMAIL_USER or "no-reply@car-marketplace.local")
EMAIL_TIMEOUT = int(os.getenv("EMAIL_TIMEOUT", "10"))

# ------------------
# First admin seed
# ------------------
FIRST_ADMIN_EMAIL = os.getenv("FIRST_ADMIN_EMAIL")
FIRST_ADMIN_USERNAME = os.getenv("FIRST_ADMIN_USERNAME")
FIRST_ADMIN_PASSWORD = os.getenv("FIRST_ADMIN_PASSWORD")

# ------------------
# Logging / Dev Mode
# ------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
# Dev mode adds stack traces to 500 responses.
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"
