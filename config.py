import os

from dotenv import load_dotenv

load_dotenv()

# --- File uploads (sheet music) ---

ALLOWED_MIME_PREFIXES = ("application/pdf", "image/")
# Max upload: 20 MB (Flask will 413 if exceeded)
MAX_CONTENT_LENGTH = 20 * 1024 * 1024

# Single-user app: every request acts as this user
DEFAULT_USER_ID = 1
DEFAULT_USERNAME = os.getenv("DEFAULT_USERNAME", "demo")
DEFAULT_PASSWORD = os.getenv("DEFAULT_PASSWORD", "password")

# Viewer defaults for a fresh settings row
DEFAULT_SETTINGS = {
    "dark_mode": False,
    "default_zoom": 100,
    "default_scroll_speed": 5,
    "default_brightness": 100,
}


def _normalize_db_url(url):
    # Render/Railway sometimes prefix with postgres:// – SQLAlchemy accepts postgresql://
    if not url:
        return None
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+psycopg" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


# Database config (unset -> in-memory store)
SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.environ.get("DATABASE_URL"))
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql" if SQLALCHEMY_DATABASE_URI else "memory")
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "").lower() in ("1", "true", "yes")

# Other configs
FLASK_SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
