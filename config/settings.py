"""Centralized configuration management."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Admin identities (Discord user IDs), loaded once per process
ADMIN_DISCORD_IDS = frozenset(
    admin_id.strip()
    for admin_id in os.getenv("ADMIN_DISCORD_IDS", "").split(",")
    if admin_id.strip()
)

# Header carrying the verified caller identity from the upstream auth proxy
IDENTITY_HEADER = os.getenv("IDENTITY_HEADER", "X-Discord-Id")

# Flask Settings
FLASK_PORT = int(os.getenv("FLASK_PORT", "8002"))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "false").lower() == "true"
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Database
DEFAULT_DB_PATH = DATA_DIR / "whitelist.db"
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")

# Legacy JSON files written by the previous implementation
LEGACY_APPLICATIONS_FILE = DATA_DIR / "applications.json"
LEGACY_ARCHIVE_FILE = DATA_DIR / "archived_applications.json"
