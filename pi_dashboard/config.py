"""
Application configuration settings.
"""
import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env file if it exists (for local development)
env_file = BASE_DIR / ".env"
if env_file.exists():
    with open(env_file) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ.setdefault(key.strip(), value.strip())

# Database - Support both SQLite (local) and PostgreSQL (production)
DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_PATH = BASE_DIR / "pi_dashboard.db"

# Determine if using PostgreSQL
USE_POSTGRES = DATABASE_URL.startswith("postgres")

# Hosted providers hand out postgres:// but psycopg2 needs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Override store backend: "database", "memory" or "remote"
STORE_BACKEND = os.getenv("STORE_BACKEND", "database").strip().lower()

# Remote key-value binding
REMOTE_STORE_URL = os.getenv("REMOTE_STORE_URL", "").rstrip("/")
REMOTE_MAX_RETRIES = int(os.getenv("REMOTE_MAX_RETRIES", "3"))
REMOTE_BACKOFF_SECONDS = float(os.getenv("REMOTE_BACKOFF_SECONDS", "0.5"))
REMOTE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "10"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Caller identification header (no authentication in this service)
UNIT_HEADER = "X-Unit-Id"

# Dashboard boards
BOARD_ACCOMPLISHMENT = "accomplishment"
BOARD_TARGET = "target"
BOARDS = [BOARD_ACCOMPLISHMENT, BOARD_TARGET]

# Reporting calendar
MONTHS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
MONTHS_PER_YEAR = len(MONTHS)
REPORTING_YEARS = ["2023", "2024", "2025", "2026"]
DEFAULT_YEAR = "2026"

# Placeholder labels for rows created at runtime
NEW_ACTIVITY_NAME = "New Activity"
NEW_INDICATOR_NAME = "New Indicator"
NEW_TEMPLATE_TITLE = "New Performance Indicator"
