"""
Central configuration — reads from .env file.

Per-product size chart settings (enabled flag, button text, image) live in the
database and are managed through settings_store.py; this module only holds the
process-wide knobs that are fixed for the lifetime of the server.
"""
import os
import secrets
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Storage ───────────────────────────────────────────────────────────────────
# SQLite file and log file both live here, so one Docker volume mount
# (./data:/app/data) keeps everything.
DATA_DIR: Path = Path(os.getenv("DATA_DIR", "data"))

# ── Web server ────────────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8080"))

# Public origin of this server, used to build the ajax_url handed to pages,
# e.g. https://shop.example.com
PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "").strip().rstrip("/")

# ── Media library ─────────────────────────────────────────────────────────────
# Uploaded chart images are served from here, e.g. https://cdn.example/img
MEDIA_BASE_URL: str = os.getenv("MEDIA_BASE_URL", "/media").strip().rstrip("/")

# ── Anti-forgery tokens ───────────────────────────────────────────────────────
# Set NONCE_SECRET in production. Without it a random secret is generated per
# process and every outstanding token dies on restart.
NONCE_SECRET: str = os.getenv("NONCE_SECRET", "").strip() or secrets.token_hex(32)
NONCE_LIFETIME_SECS: int = int(os.getenv("NONCE_LIFETIME_SECS", "86400"))
SESSION_COOKIE: str = os.getenv("SESSION_COOKIE", "size_chart_session")

# ── Storefront behaviour ──────────────────────────────────────────────────────
DEFAULT_BUTTON_TEXT: str = os.getenv("DEFAULT_BUTTON_TEXT", "Size Chart")

# Upper bound on a single chart lookup made by the page-side controller
LOOKUP_TIMEOUT_SECS: float = float(os.getenv("LOOKUP_TIMEOUT_SECS", "10"))
