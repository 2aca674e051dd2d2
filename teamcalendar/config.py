import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./teamcalendar.db")

# Server
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

# All API routes live under this prefix; the front end calls /api/...
API_PREFIX = os.getenv("API_PREFIX", "/api")

# Front end bundle served from this directory when it exists
STATIC_DIR = os.getenv(
    "STATIC_DIR", str(Path(__file__).resolve().parent.parent / "public")
)

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

# Per-(employee, date) write serialization
# "memory" = in-process locks (single worker), "redis" = shared locks across workers
LOCK_BACKEND = os.getenv("LOCK_BACKEND", "memory").lower()
LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "5"))
# Upper bound a Redis lock may be held before it expires on its own
LOCK_LEASE_SECONDS = float(os.getenv("LOCK_LEASE_SECONDS", "30"))
REDIS_URL = os.getenv("REDIS_URL")
