"""
lookup_client.py — page-side caller of the /ajax endpoint.

Turns the JSON envelope back into a LookupResult. The HTTP status decides
which failure kind a {"success": false} body maps to:
  400 / 403  → Invalid
  5xx        → TransientFailure
  otherwise  → NotFound
Transport errors and bodies that aren't the expected envelope are
TransientFailure too, a timeout is NotFound("timeout"); never an exception.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

import config
from size_chart import (
    BAD_PRODUCT_ID, BAD_TOKEN, LOOKUP_ACTION, NO_IMAGE, TIMEOUT, UNAVAILABLE,
    Found, Invalid, LookupResult, NotFound, TransientFailure,
)

logger = logging.getLogger(__name__)


class SizeChartClient:

    def __init__(
        self,
        ajax_url: str,
        nonce: str,
        session_id: str = "",
        timeout: Optional[float] = None,
    ) -> None:
        self.ajax_url   = ajax_url
        self.nonce      = nonce
        self.session_id = session_id
        self._timeout   = aiohttp.ClientTimeout(total=timeout or config.LOOKUP_TIMEOUT_SECS)

    async def lookup(self, product_id: int) -> LookupResult:
        data = {
            "action":     LOOKUP_ACTION,
            "product_id": str(product_id),
            "nonce":      self.nonce,
        }
        cookies = {config.SESSION_COOKIE: self.session_id} if self.session_id else None
        try:
            async with aiohttp.ClientSession(cookies=cookies) as session:
                async with session.post(self.ajax_url, data=data, timeout=self._timeout) as resp:
                    status = resp.status
                    body   = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            logger.warning("Size chart lookup for product %s timed out", product_id)
            return NotFound(TIMEOUT)
        except (aiohttp.ClientError, ValueError) as exc:
            logger.warning("Size chart lookup for product %s failed: %s", product_id, exc)
            return TransientFailure(UNAVAILABLE)
        return decode_response(status, body)


def decode_response(status: int, body) -> LookupResult:
    if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
        logger.warning("Unexpected size chart response (HTTP %d): %r", status, body)
        return TransientFailure(UNAVAILABLE)

    data = body["data"]
    if body.get("success") and data.get("image_url"):
        return Found(data["image_url"])

    message = str(data.get("message") or "")
    if status >= 500:
        return TransientFailure(message or UNAVAILABLE)
    if status in (400, 403):
        return Invalid(message or (BAD_TOKEN if status == 403 else BAD_PRODUCT_ID))
    return NotFound(message or NO_IMAGE)
