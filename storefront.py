"""
storefront.py — lifecycle functions the host application calls directly.

  on_settings_saved(...)      admin submitted the product form
  render_button(...)          product page is being rendered
  render_product_fragment(...) button + script data for one page view
  handle_lookup_request(...)  ajax call from the page

There is no hook registry: whoever owns the page calls these.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

import markup
from media_library import FULL, MediaLibrary
from settings_store import ProductChartConfig, ProductSettingsStore
from size_chart import ChartLookupService, is_valid_product_id

logger = logging.getLogger(__name__)


async def on_settings_saved(
    settings: ProductSettingsStore,
    product_id: int,
    form: Mapping[str, Any],
) -> ProductChartConfig:
    return await settings.save_fields(product_id, form)


async def render_button(
    settings: ProductSettingsStore,
    media: MediaLibrary,
    product_id: int,
) -> str:
    """
    Button HTML for a product, or "" when it must not appear: disabled, no
    image attached, or the attached image can no longer be resolved.
    """
    if not is_valid_product_id(product_id):
        return ""
    cfg = await settings.get_config(product_id)
    if not cfg.enabled or not cfg.has_image:
        return ""
    if not await media.resolve_url(cfg.image_ref, FULL):
        logger.info("Hiding size chart button for product %d: image %s is gone",
                    product_id, cfg.image_ref)
        return ""
    return markup.chart_button(product_id, cfg.button_text)


async def render_product_fragment(
    service: ChartLookupService,
    product_id: int,
    session_id: str,
    ajax_url: str,
) -> str:
    """
    Everything the product page needs: the button and the script data. When
    there is no button the script data is left out too.
    """
    button = await render_button(service.settings, service.media, product_id)
    if not button:
        return ""
    return button + markup.script_data(ajax_url, service.issue_token(session_id))


async def handle_lookup_request(
    service: ChartLookupService,
    form: Mapping[str, Any],
    session_id: str,
) -> tuple[int, dict]:
    return await service.handle_lookup_request(form, session_id)
