"""
media_library.py — turns an attachment id into a public URL.

Renditions:
  full       → the file exactly as uploaded
  thumbnail  → <stem>-150x150<ext>, generated at upload time for any image
               larger than 150×150; smaller images serve the original

Unknown rendition names fall back to "full".
"""
from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Optional

import config
import database as db

logger = logging.getLogger(__name__)

FULL      = "full"
THUMBNAIL = "thumbnail"

RENDITION_SIZES: dict[str, tuple[int, int]] = {
    THUMBNAIL: (150, 150),
}


class MediaLibrary:

    def __init__(self, base_url: Optional[str] = None) -> None:
        self._base_url = (base_url if base_url is not None else config.MEDIA_BASE_URL).rstrip("/")

    async def add(
        self,
        file_name: str,
        mime_type: str = "image/jpeg",
        width: int = 0,
        height: int = 0,
    ) -> db.MediaAttachment:
        attachment = await db.add_attachment(file_name, mime_type, width, height)
        logger.info("media: stored attachment %d (%s)", attachment.id, file_name)
        return attachment

    async def remove(self, image_ref: int) -> bool:
        return await db.delete_attachment(image_ref)

    async def resolve_url(self, image_ref: Optional[int], rendition: str = FULL) -> Optional[str]:
        """
        Return the URL of image_ref at the given rendition, or None when the
        reference is empty or points at an attachment that no longer exists.
        """
        if not image_ref or not 0 < image_ref <= db.MAX_INTEGER:
            return None
        attachment = await db.get_attachment(image_ref)
        if attachment is None:
            logger.debug("media: attachment %d not found", image_ref)
            return None
        return self._url_for(attachment.file_name, self._rendition_file(attachment, rendition))

    def _rendition_file(self, attachment: db.MediaAttachment, rendition: str) -> str:
        size = RENDITION_SIZES.get(rendition)
        if size is None:
            return attachment.file_name
        w, h = size
        if attachment.width <= w and attachment.height <= h:
            return attachment.file_name
        path = PurePosixPath(attachment.file_name)
        return str(path.with_name(f"{path.stem}-{w}x{h}{path.suffix}"))

    def _url_for(self, original: str, file_name: str) -> str:
        if original.startswith(("http://", "https://")):
            # Externally hosted attachment: keep its origin, swap the file part.
            return original.rsplit("/", 1)[0] + "/" + file_name.rsplit("/", 1)[-1]
        return f"{self._base_url}/{file_name.lstrip('/')}"
