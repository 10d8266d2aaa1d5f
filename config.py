"""Application configuration — environment variables and derived constants.

Loads ``BOT_TOKEN`` and the router settings from the environment via
``python-dotenv``.  All values are resolved at import time so other
modules can ``from config import …`` without repeated lookups.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import BotFrameworkLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

logger = BotFrameworkLogger.get_logger()


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_bool(raw: str | None, default: bool = False) -> bool:
    """Interpret ``1/true/yes/on`` (any case) as ``True``; empty means *default*."""
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(raw: str | None, default: int) -> int:
    """Parse *raw* as an int, falling back to *default* on empty or invalid input."""
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer in environment, using default", extra={"raw_value": raw, "default": default})
        return default


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
BASE_URL: str = os.environ.get("BOT_API_URL") or f"https://api.telegram.org/bot{BOT_TOKEN or ''}"
LOG_LEVEL: str = (os.environ.get("LOG_LEVEL") or "INFO").upper()
POLL_TIMEOUT: int = _parse_int(os.environ.get("POLL_TIMEOUT"), 30)
HANDLERS_DB_PATH: str | None = os.environ.get("HANDLERS_DB_PATH") or None
REPORT_UNHANDLED: bool = _parse_bool(os.environ.get("REPORT_UNHANDLED"))
ERROR_REPLIES: bool = _parse_bool(os.environ.get("ERROR_REPLIES"), default=True)


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — BOT_TOKEN is set, BASE_URL ready")
else:
    logger.warning("Config loaded — BOT_TOKEN is NOT set")

if HANDLERS_DB_PATH:
    logger.info("Persistent handler storage enabled", extra={"db_path": HANDLERS_DB_PATH})

logger.info(
    "Router settings",
    extra={
        "log_level": LOG_LEVEL,
        "poll_timeout": POLL_TIMEOUT,
        "report_unhandled": REPORT_UNHANDLED,
        "error_replies": ERROR_REPLIES,
    },
)
