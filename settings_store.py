"""
settings_store.py — per-product size chart settings.

Each product carries three meta records:
  _enable_size_chart        "yes" / "no"
  _size_chart_button_text   label shown on the storefront button
  _size_chart_image_id      media attachment id ("0" or missing = no image)

Everything is stored as strings in the DB and cast to the right type on read,
the same way bot settings used to be.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from bs4 import BeautifulSoup

import config
import database as db

logger = logging.getLogger(__name__)

ENABLE_KEY       = "_enable_size_chart"
BUTTON_TEXT_KEY  = "_size_chart_button_text"
IMAGE_ID_KEY     = "_size_chart_image_id"

# ── Meta definitions ──────────────────────────────────────────────────────────
# Each entry: key → (default, type, label)
# type: "str" | "int" | "yesno"

META_FIELDS: dict[str, dict] = {
    ENABLE_KEY: {
        "default": "no",
        "type": "yesno",
        "label": "Enable Size Chart",
    },
    BUTTON_TEXT_KEY: {
        "default": "",
        "type": "str",
        "label": "Size Chart Button Text",
    },
    IMAGE_ID_KEY: {
        "default": "0",
        "type": "int",
        "label": "Size Chart Image",
    },
}


def _cast(raw: str, typ: str) -> Any:
    if typ == "yesno":
        return raw.strip().lower() == "yes"
    if typ == "int":
        return int(raw.strip() or "0")
    return raw.strip()


_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")
_SPACE_RE = re.compile(r"\s+")


def sanitize_text(value: str) -> str:
    """
    Reduce free-form admin input to a single plain-text line. Tags are
    stripped, script and style blocks go with their contents, then percent
    encoded octets, control characters and runs of whitespace are removed.
    """
    soup = BeautifulSoup(value, "lxml")
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = _OCTET_RE.sub("", soup.get_text())
    text = "".join(ch for ch in text if ch.isprintable() or ch.isspace())
    return _SPACE_RE.sub(" ", text).strip()


def absint(value: Any) -> int:
    """
    Absolute integer value of a form field. Anything non-numeric, and anything
    too large to be a row id, is 0.
    """
    try:
        number = abs(int(str(value).strip()))
    except (TypeError, ValueError):
        return 0
    return number if number <= db.MAX_INTEGER else 0


# ── Typed view of the meta records ────────────────────────────────────────────

@dataclass
class ProductChartConfig:
    product_id: int
    enabled: bool = False
    button_label: str = ""
    image_ref: Optional[int] = None

    @property
    def button_text(self) -> str:
        """Configured label, or the default when the admin left it empty."""
        return self.button_label or config.DEFAULT_BUTTON_TEXT

    @property
    def has_image(self) -> bool:
        return self.image_ref is not None


class ProductSettingsStore:
    """Read/write access to product meta, backed by database.py."""

    async def get_meta(self, product_id: int, key: str) -> Optional[str]:
        if key not in META_FIELDS:
            raise KeyError(f"Unknown size chart meta key: {key}")
        return await db.get_product_meta(product_id, key)

    async def set_meta(self, product_id: int, key: str, value: str) -> None:
        meta = META_FIELDS.get(key)
        if meta is None:
            raise KeyError(f"Unknown size chart meta key: {key}")
        _cast(value, meta["type"])  # raises ValueError on bad input
        await db.set_product_meta(product_id, key, value)

    async def delete_meta(self, product_id: int, key: str) -> bool:
        if key not in META_FIELDS:
            raise KeyError(f"Unknown size chart meta key: {key}")
        return await db.delete_product_meta(product_id, key)

    async def get_config(self, product_id: int) -> ProductChartConfig:
        """Load all three meta records at once and cast them."""
        raw = await db.get_all_product_meta(product_id)
        values = {}
        for key, meta in META_FIELDS.items():
            try:
                values[key] = _cast(raw.get(key, meta["default"]), meta["type"])
            except ValueError:
                logger.warning(
                    "settings_store: product %d has malformed %s=%r, using default",
                    product_id, key, raw.get(key),
                )
                values[key] = _cast(meta["default"], meta["type"])

        image_id = values[IMAGE_ID_KEY]
        return ProductChartConfig(
            product_id=product_id,
            enabled=values[ENABLE_KEY],
            button_label=values[BUTTON_TEXT_KEY],
            image_ref=image_id if 0 < image_id <= db.MAX_INTEGER else None,
        )

    async def save_fields(self, product_id: int, form: Mapping[str, Any]) -> ProductChartConfig:
        """
        Persist the admin form for one product.

        The enable checkbox is only submitted when ticked, so its absence
        means "no". Label and image are only written when present in the form.
        """
        enabled = "yes" if ENABLE_KEY in form else "no"
        await db.set_product_meta(product_id, ENABLE_KEY, enabled)

        if BUTTON_TEXT_KEY in form:
            label = sanitize_text(str(form[BUTTON_TEXT_KEY]))
            await db.set_product_meta(product_id, BUTTON_TEXT_KEY, label)

        if IMAGE_ID_KEY in form:
            image_id = absint(form[IMAGE_ID_KEY])
            await db.set_product_meta(product_id, IMAGE_ID_KEY, str(image_id))

        logger.info("settings_store: saved size chart settings for product %d", product_id)
        return await self.get_config(product_id)
