"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "cassems")
DB_USER: str = os.getenv("DB_USER", "cassems_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = (
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# ── Connection Pool ───────────────────────────────────────
DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "5"))
DB_CONNECT_TIMEOUT: int = int(os.getenv("DB_CONNECT_TIMEOUT", "30"))
DB_ACQUIRE_TIMEOUT: float = float(os.getenv("DB_ACQUIRE_TIMEOUT", "30"))
DB_IDLE_TIMEOUT: float = float(os.getenv("DB_IDLE_TIMEOUT", "600"))
DB_STATEMENT_TIMEOUT_MS: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "30000"))

# Pool creation: total liveness-probe attempts and the pause between them
DB_POOL_INIT_ATTEMPTS: int = int(os.getenv("DB_POOL_INIT_ATTEMPTS", "3"))
DB_POOL_INIT_DELAY_SECONDS: float = float(os.getenv("DB_POOL_INIT_DELAY_SECONDS", "2"))

# ── Query Retry ───────────────────────────────────────────
DB_QUERY_MAX_RETRIES: int = int(os.getenv("DB_QUERY_MAX_RETRIES", "2"))
DB_QUERY_RETRY_DELAY_SECONDS: float = float(os.getenv("DB_QUERY_RETRY_DELAY_SECONDS", "1"))

# ── Documents ─────────────────────────────────────────────
DOCUMENTS_UPLOAD_DIR: str = os.getenv(
    "DOCUMENTS_UPLOAD_DIR",
    os.path.join(os.getcwd(), "uploads", "documentos"),
)

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
