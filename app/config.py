import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Falls back to a local SQLite file so the API can boot without Postgres
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./detailbook.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Frontend base URL (CORS + security headers)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Scheduling
# Candidate slot starts advance by this many minutes inside a weekly window
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "30"))
# Minimum length of a booking's service address
MIN_ADDRESS_LENGTH = int(os.getenv("MIN_ADDRESS_LENGTH", "10"))
MAX_ADDRESS_LENGTH = int(os.getenv("MAX_ADDRESS_LENGTH", "500"))

# Store timeouts - a statement exceeding this surfaces as StoreUnavailable (Postgres only)
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

# Public slot lookup rate limiting
SLOTS_RATE_LIMIT = int(os.getenv("SLOTS_RATE_LIMIT", "60"))
SLOTS_RATE_WINDOW_SECONDS = int(os.getenv("SLOTS_RATE_WINDOW_SECONDS", "60"))
