import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv(".env")

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "taskboard")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

TASKS_DEFAULT_LIMIT = int(os.getenv("TASKS_DEFAULT_LIMIT", "100"))

RECONCILE_ATTEMPTS = max(1, int(os.getenv("RECONCILE_ATTEMPTS", "3")))
RECONCILE_BACKOFF = float(os.getenv("RECONCILE_BACKOFF", "0.05"))  # seconds, times attempt number
SERIALIZE_WRITES = os.getenv("SERIALIZE_WRITES", "true").lower() in ("1", "true", "yes")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
