import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Empty means the in-memory SQLite database is used
DATABASE_URL = os.getenv("DATABASE_URL", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Redis cache (optional). Without a URL the cache is disabled.
REDIS_URL = os.getenv("REDIS_URL", "")
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "600"))

# HTTP
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

# CSV import
CSV_MAX_FILE_SIZE_MB = int(os.getenv("CSV_MAX_FILE_SIZE_MB", "50"))
CSV_MAX_FILE_SIZE = CSV_MAX_FILE_SIZE_MB * 1024 * 1024
CSV_IMPORT_BATCH_SIZE = int(os.getenv("CSV_IMPORT_BATCH_SIZE", "50"))
# Register unknown user / staff names as new master rows during import
AUTO_REGISTER_NAMES = os.getenv("AUTO_REGISTER_NAMES", "true").lower() == "true"

# Pattern linking defaults
LINKING_AUTO_ENABLED = os.getenv("LINKING_AUTO_ENABLED", "true").lower() == "true"
LINKING_CONFIDENCE_THRESHOLD = float(os.getenv("LINKING_CONFIDENCE_THRESHOLD", "0.7"))

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"
