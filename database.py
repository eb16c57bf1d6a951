"""
database.py — async SQLite persistence via aiosqlite.

Tables:
  product_meta       — per-product key/value records (size chart settings)
  media_attachments  — uploaded files known to the media library

The DB file is created automatically on first run.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

import config

logger = logging.getLogger(__name__)

_DATA_DIR = config.DATA_DIR
_DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = str(_DATA_DIR / "size_chart.db")
_lock = asyncio.Lock()          # serialise schema creation

MAX_INTEGER = 2**63 - 1         # largest value SQLite stores as INTEGER


# ── Data models ───────────────────────────────────────────────────────────────

@dataclass
class MediaAttachment:
    id: int
    file_name: str              # path relative to MEDIA_BASE_URL, e.g. "2024/05/tees.png"
    mime_type: str
    width: int                  # pixels, 0 when unknown
    height: int
    uploaded_at: datetime


# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS product_meta (
    product_id  INTEGER NOT NULL,
    meta_key    TEXT    NOT NULL,
    meta_value  TEXT    NOT NULL DEFAULT '',
    updated_at  TEXT    NOT NULL,
    PRIMARY KEY (product_id, meta_key)
);

CREATE TABLE IF NOT EXISTS media_attachments (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    file_name   TEXT    NOT NULL,
    mime_type   TEXT    NOT NULL DEFAULT 'image/jpeg',
    width       INTEGER NOT NULL DEFAULT 0,
    height      INTEGER NOT NULL DEFAULT 0,
    uploaded_at TEXT    NOT NULL
);
"""


async def init_db() -> None:
    """Create tables if they don't exist. Safe to call multiple times."""
    async with _lock:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.executescript(_SCHEMA)
            await db.commit()
    logger.info("Database initialised at %s", DB_PATH)


# ── Product meta operations ───────────────────────────────────────────────────

async def get_product_meta(product_id: int, meta_key: str) -> Optional[str]:
    """Return the stored value for (product_id, meta_key), or None if never set."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT meta_value FROM product_meta WHERE product_id = ? AND meta_key = ?",
            (product_id, meta_key),
        ) as cur:
            row = await cur.fetchone()
            return row[0] if row else None


async def get_all_product_meta(product_id: int) -> dict[str, str]:
    """Return every meta record of a product as {meta_key: meta_value}."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT meta_key, meta_value FROM product_meta WHERE product_id = ?",
            (product_id,),
        ) as cur:
            rows = await cur.fetchall()
    return {r[0]: r[1] for r in rows}


async def set_product_meta(product_id: int, meta_key: str, meta_value: str) -> None:
    """Insert or replace a meta record."""
    now = datetime.now(timezone.utc).isoformat()
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT INTO product_meta (product_id, meta_key, meta_value, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(product_id, meta_key) DO UPDATE SET
                 meta_value=excluded.meta_value,
                 updated_at=excluded.updated_at""",
            (product_id, meta_key, meta_value, now),
        )
        await db.commit()


async def delete_product_meta(product_id: int, meta_key: str) -> bool:
    """Remove a meta record. Returns True if a row was deleted."""
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(
            "DELETE FROM product_meta WHERE product_id = ? AND meta_key = ?",
            (product_id, meta_key),
        )
        await db.commit()
        return cursor.rowcount > 0


# ── Media attachments ─────────────────────────────────────────────────────────

def _row_to_attachment(r) -> MediaAttachment:
    return MediaAttachment(
        id=r["id"],
        file_name=r["file_name"],
        mime_type=r["mime_type"],
        width=r["width"],
        height=r["height"],
        uploaded_at=datetime.fromisoformat(r["uploaded_at"]),
    )


async def add_attachment(
    file_name: str,
    mime_type: str = "image/jpeg",
    width: int = 0,
    height: int = 0,
) -> MediaAttachment:
    """Register an uploaded file and return the stored record."""
    now = datetime.now(timezone.utc).isoformat()
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            """INSERT INTO media_attachments (file_name, mime_type, width, height, uploaded_at)
               VALUES (?, ?, ?, ?, ?)""",
            (file_name, mime_type, width, height, now),
        )
        await db.commit()
        async with db.execute(
            "SELECT * FROM media_attachments WHERE id = ?", (cursor.lastrowid,)
        ) as cur:
            r = await cur.fetchone()
    return _row_to_attachment(r)


async def get_attachment(attachment_id: int) -> Optional[MediaAttachment]:
    """Return the attachment with this id, or None if it doesn't exist."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM media_attachments WHERE id = ?", (attachment_id,)
        ) as cur:
            r = await cur.fetchone()
    return _row_to_attachment(r) if r else None


async def delete_attachment(attachment_id: int) -> bool:
    """
    Delete an attachment. Product meta pointing at it is left untouched, so
    references may dangle afterwards; readers must cope with that.
    """
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(
            "DELETE FROM media_attachments WHERE id = ?", (attachment_id,)
        )
        await db.commit()
        return cursor.rowcount > 0
