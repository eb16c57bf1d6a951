"""
chart_server.py — aiohttp front for the size chart lookup.

Endpoints:
  POST /ajax                              → action=get_size_chart lookup (JSON)
  GET  /products/{product_id}/size-chart  → button + script data fragment (HTML)
  GET  /health                            → plain-text health check

Sessions are a random id in a cookie (config.SESSION_COOKIE). The fragment
endpoint hands one out when the browser has none; tokens embedded in the
fragment are bound to it, so a lookup without the same cookie is rejected.
"""
from __future__ import annotations

import logging
import secrets

from aiohttp import web

import config
import storefront
from size_chart import ChartLookupService, is_valid_product_id, parse_product_id

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("size_chart_service", ChartLookupService)


def _session_id(request: web.Request) -> str:
    return request.cookies.get(config.SESSION_COOKIE, "")


def _ajax_url(request: web.Request) -> str:
    base = config.PUBLIC_BASE_URL or f"{request.scheme}://{request.host}"
    return f"{base}/ajax"


# ── Request handlers ───────────────────────────────────────────────────────────

async def handle_ajax(request: web.Request) -> web.Response:
    """Size chart lookup. Response body shape is the same for every outcome."""
    service = request.app[SERVICE_KEY]
    form    = await request.post()
    status, payload = await storefront.handle_lookup_request(
        service, form, _session_id(request),
    )
    return web.json_response(payload, status=status)


async def handle_product_fragment(request: web.Request) -> web.Response:
    product_id = parse_product_id(request.match_info["product_id"])
    if not is_valid_product_id(product_id):
        raise web.HTTPNotFound(text="Unknown product.", content_type="text/plain")

    service = request.app[SERVICE_KEY]
    session = _session_id(request)
    new_session = not session
    if new_session:
        session = secrets.token_urlsafe(24)

    body = await storefront.render_product_fragment(
        service, product_id, session, _ajax_url(request),
    )
    response = web.Response(text=body, content_type="text/html")
    if new_session:
        response.set_cookie(
            config.SESSION_COOKIE, session,
            httponly=True, samesite="Lax", max_age=config.NONCE_LIFETIME_SECS,
        )
    return response


async def handle_health(request: web.Request) -> web.Response:
    """Plain 200 OK for uptime monitors."""
    return web.Response(text="OK", content_type="text/plain")


# ── App factory ────────────────────────────────────────────────────────────────

def build_web_app(service: ChartLookupService) -> web.Application:
    app = web.Application()
    app[SERVICE_KEY] = service
    app.router.add_get("/health",                          handle_health)
    app.router.add_post("/ajax",                           handle_ajax)
    app.router.add_get("/products/{product_id}/size-chart", handle_product_fragment)
    return app


async def start_server(service: ChartLookupService) -> web.AppRunner:
    """Start the web server. Returns runner so caller can shut it down cleanly."""
    app    = build_web_app(service)
    runner = web.AppRunner(app, access_log=logger)
    await runner.setup()
    site = web.TCPSite(runner, config.SERVER_HOST, config.SERVER_PORT)
    await site.start()
    logger.info(
        "Size chart server listening on %s:%d  (media: %s)",
        config.SERVER_HOST, config.SERVER_PORT, config.MEDIA_BASE_URL,
    )
    return runner
