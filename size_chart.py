"""
size_chart.py — the chart lookup service.

Given a product id and the anti-forgery token the page was rendered with,
returns the URL of the product's size chart image (full rendition) or a
structured failure. Read-only and idempotent: every call re-reads the
settings and re-resolves the image, nothing is cached.

Check order matters:
  1. token        → Invalid("bad token")        (before any data access)
  2. product id   → Invalid("bad product id")
  3. image ref    → NotFound("no size chart image found")
  4. resolve URL  → NotFound(...) when the attachment is gone
Storage errors become TransientFailure so a broken DB never breaks the page.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Union

from database import MAX_INTEGER
from media_library import FULL, MediaLibrary
from nonces import NonceManager
from settings_store import ProductSettingsStore

logger = logging.getLogger(__name__)

LOOKUP_ACTION = "get_size_chart"
NONCE_ACTION  = "size_chart_nonce"

BAD_TOKEN      = "bad token"
BAD_PRODUCT_ID = "bad product id"
NO_IMAGE       = "no size chart image found"
UNAVAILABLE    = "storage unavailable"
TIMEOUT        = "timeout"

# What the shopper is shown for each internal reason
_MESSAGES = {
    BAD_TOKEN:      "Security check failed. Please reload the page and try again.",
    BAD_PRODUCT_ID: "Invalid product ID",
    NO_IMAGE:       "No size chart image found",
    UNAVAILABLE:    "The size chart is temporarily unavailable. Please try again.",
    TIMEOUT:        "The size chart took too long to load. Please try again.",
}


# ── Request / result types ────────────────────────────────────────────────────

@dataclass(frozen=True)
class LookupRequest:
    product_id: int
    token: str
    session_id: str = ""


@dataclass(frozen=True)
class Found:
    image_url: str


@dataclass(frozen=True)
class NotFound:
    reason: str

    @property
    def message(self) -> str:
        return _MESSAGES.get(self.reason, self.reason)


@dataclass(frozen=True)
class Invalid:
    reason: str

    @property
    def message(self) -> str:
        return _MESSAGES.get(self.reason, self.reason)


@dataclass(frozen=True)
class TransientFailure:
    """Network or storage trouble. Unlike Invalid, safe to retry."""
    reason: str

    @property
    def message(self) -> str:
        return _MESSAGES.get(self.reason, self.reason)


LookupResult = Union[Found, NotFound, Invalid, TransientFailure]


_INT_RE = re.compile(r"^[+-]?\d+$")


def parse_product_id(raw: Any) -> int:
    """
    Parse a string-encoded product id. Missing or non-numeric input becomes 0
    and negative numbers stay negative, so validation can reject both.
    Numbers beyond the storage integer range also become 0.
    """
    if raw is None:
        return 0
    text = str(raw).strip()
    if not _INT_RE.match(text):
        return 0
    number = int(text)
    return number if abs(number) <= MAX_INTEGER else 0


def is_valid_product_id(product_id: int) -> bool:
    return 0 < product_id <= MAX_INTEGER


def parse_lookup_request(form: Mapping[str, Any], session_id: str = "") -> LookupRequest:
    """Build a LookupRequest from raw form fields. Never raises."""
    return LookupRequest(
        product_id=parse_product_id(form.get("product_id")),
        token=str(form.get("nonce") or ""),
        session_id=session_id,
    )


# ── Wire format ───────────────────────────────────────────────────────────────

def to_payload(result: LookupResult) -> tuple[int, dict]:
    """
    Serialize a result to (HTTP status, JSON body). The body shape is the one
    existing storefront scripts expect; only the status code varies.
    """
    if isinstance(result, Found):
        return 200, {"success": True, "data": {"image_url": result.image_url}}
    if isinstance(result, Invalid):
        status = 403 if result.reason == BAD_TOKEN else 400
    elif isinstance(result, TransientFailure):
        status = 503
    else:
        status = 200
    return status, {"success": False, "data": {"message": result.message}}


# ── Service ───────────────────────────────────────────────────────────────────

class ChartLookupService:

    def __init__(
        self,
        settings: ProductSettingsStore,
        media: MediaLibrary,
        nonces: NonceManager,
    ) -> None:
        self.settings = settings
        self.media    = media
        self.nonces   = nonces

    def issue_token(self, session_id: str) -> str:
        """Token to embed in a page rendered for this session."""
        return self.nonces.create(NONCE_ACTION, session_id)

    async def lookup(self, request: LookupRequest) -> LookupResult:
        if not self.nonces.verify(request.token, NONCE_ACTION, request.session_id):
            logger.warning(
                "Rejected size chart lookup with bad token (product_id=%r)",
                request.product_id,
            )
            return Invalid(BAD_TOKEN)

        if not is_valid_product_id(request.product_id):
            return Invalid(BAD_PRODUCT_ID)

        try:
            cfg = await self.settings.get_config(request.product_id)
            if not cfg.has_image:
                return NotFound(NO_IMAGE)
            url = await self.media.resolve_url(cfg.image_ref, FULL)
        except Exception as exc:
            logger.error(
                "Size chart lookup failed for product %d: %s",
                request.product_id, exc, exc_info=True,
            )
            return TransientFailure(UNAVAILABLE)

        if not url:
            logger.info(
                "Product %d points at missing attachment %s",
                request.product_id, cfg.image_ref,
            )
            return NotFound(NO_IMAGE)

        return Found(url)

    async def handle_lookup_request(
        self,
        form: Mapping[str, Any],
        session_id: str = "",
    ) -> tuple[int, dict]:
        """Parse a raw ajax form, run the lookup and return (status, payload)."""
        action = form.get("action")
        if action != LOOKUP_ACTION:
            logger.debug("Ignoring ajax call with unknown action %r", action)
            return 400, {"success": False, "data": {"message": "Unknown action"}}
        result = await self.lookup(parse_lookup_request(form, session_id))
        return to_payload(result)
