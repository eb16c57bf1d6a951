"""
Tests for media_library.py.

Covers:
  - resolve_url(): full rendition, thumbnail naming, small images, unknown
    renditions, empty / dangling references
  - externally hosted attachments keep their origin
"""
from __future__ import annotations

import pytest
import pytest_asyncio

import database as db
from media_library import FULL, THUMBNAIL, MediaLibrary


@pytest_asyncio.fixture(autouse=True)
async def init_db(tmp_data_dir):
    await db.init_db()


@pytest.mark.asyncio
class TestResolveUrl:
    async def test_full_rendition(self, media):
        att = await media.add("42.jpg", width=1200, height=900)
        assert await media.resolve_url(att.id, FULL) == "https://cdn.example/img/42.jpg"

    async def test_default_rendition_is_full(self, media):
        att = await media.add("42.jpg")
        assert await media.resolve_url(att.id) == "https://cdn.example/img/42.jpg"

    async def test_thumbnail_of_large_image(self, media):
        att = await media.add("2024/05/tees.png", "image/png", 1200, 900)
        url = await media.resolve_url(att.id, THUMBNAIL)
        assert url == "https://cdn.example/img/2024/05/tees-150x150.png"

    async def test_thumbnail_of_small_image_is_original(self, media):
        att = await media.add("icon.png", "image/png", 100, 80)
        url = await media.resolve_url(att.id, THUMBNAIL)
        assert url == "https://cdn.example/img/icon.png"

    async def test_unknown_rendition_falls_back_to_full(self, media):
        att = await media.add("42.jpg", width=1200, height=900)
        assert await media.resolve_url(att.id, "huge") == "https://cdn.example/img/42.jpg"

    async def test_empty_reference(self, media):
        assert await media.resolve_url(None) is None
        assert await media.resolve_url(0) is None

    async def test_dangling_reference(self, media):
        att = await media.add("42.jpg")
        await media.remove(att.id)
        assert await media.resolve_url(att.id) is None

    async def test_external_attachment_keeps_origin(self):
        library = MediaLibrary(base_url="/media")
        att = await library.add("https://other.example/uploads/chart.jpg", width=800, height=800)
        assert await library.resolve_url(att.id) == "https://other.example/uploads/chart.jpg"
        assert await library.resolve_url(att.id, THUMBNAIL) == (
            "https://other.example/uploads/chart-150x150.jpg"
        )

    async def test_trailing_slash_in_base_url(self):
        library = MediaLibrary(base_url="https://cdn.example/img/")
        att = await library.add("42.jpg")
        assert await library.resolve_url(att.id) == "https://cdn.example/img/42.jpg"
