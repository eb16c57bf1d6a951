"""
markup.py — HTML snippets for the storefront.

All text that ends up in the product page goes through esc() first; nothing
in here touches the database.
"""
from __future__ import annotations

import html
import json

MODAL_ID       = "size-chart-modal"
MODAL_CLASS    = "size-chart-modal"
CONTENT_CLASS  = "size-chart-modal-content"
CLOSE_CLASS    = "size-chart-close"
IMAGE_CLASS    = "size-chart-image"
BUTTON_CLASS   = "size-chart-button"
SCRIPT_DATA_VAR = "sizeChartData"


def esc(text: str) -> str:
    """Escape text for use in HTML element content or a quoted attribute."""
    return html.escape(str(text), quote=True)


def chart_button(product_id: int, text: str) -> str:
    return (
        f'<button type="button" class="button {BUTTON_CLASS}" '
        f'data-product-id="{esc(product_id)}">{esc(text)}</button>'
    )


def script_data(ajax_url: str, nonce: str) -> str:
    """Inline <script> exposing the endpoint and token to the page."""
    payload = json.dumps({"ajax_url": ajax_url, "nonce": nonce})
    # "</" inside a script block would end it early
    payload = payload.replace("</", "<\\/")
    return f"<script>var {SCRIPT_DATA_VAR} = {payload};</script>"
