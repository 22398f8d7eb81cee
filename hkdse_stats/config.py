import os
from dotenv import load_dotenv

load_dotenv()

# Source data / generated imports
CSV_DIR = os.getenv("HKDSE_CSV_DIR", "data/csv")
OUTPUT_DIR = os.getenv("HKDSE_OUTPUT_DIR", "database/imports")
DEFAULT_YEAR = int(os.getenv("HKDSE_YEAR", "2024"))

# Dialect used when rendering INSERT literals (sqlite, postgresql, mysql)
SQL_DIALECT = os.getenv("HKDSE_SQL_DIALECT", "sqlite")

# SQLite database
DATABASE_PATH = os.getenv("HKDSE_DATABASE_PATH", "hkdse_stats.db")
DATABASE_URL = f"sqlite+aiosqlite:///{DATABASE_PATH}"
SYNC_DATABASE_URL = f"sqlite:///{DATABASE_PATH}"

# Server
PORT = int(os.getenv("PORT", "8787"))
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
VERSION = "1.0.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
