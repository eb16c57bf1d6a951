"""
Tests for chart_server.py — the aiohttp front.

Covers:
  - GET /health
  - GET /products/{id}/size-chart: issues session cookie, renders button +
    script data, empty when the product has no chart, 404 for bad ids
  - POST /ajax: success / not found / bad token / bad product id / unknown
    action, always the same JSON envelope
  - full page flow: fragment → token → lookup with the same cookie
"""
from __future__ import annotations

import re

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

import chart_server
import config
import database as db
from settings_store import ENABLE_KEY, IMAGE_ID_KEY

SESSION = "sess-test"


@pytest_asyncio.fixture(autouse=True)
async def init_db(tmp_data_dir):
    await db.init_db()


@pytest_asyncio.fixture
async def client(service):
    app = chart_server.build_web_app(service)
    async with TestClient(TestServer(app)) as client:
        yield client


@pytest_asyncio.fixture
async def product_42(media):
    att = await media.add("42.jpg", width=1000, height=1000)
    await db.set_product_meta(42, ENABLE_KEY, "yes")
    await db.set_product_meta(42, IMAGE_ID_KEY, str(att.id))
    return 42


def _with_session(client: TestClient, session: str = SESSION) -> None:
    client.session.cookie_jar.update_cookies({config.SESSION_COOKIE: session})


@pytest.mark.asyncio
class TestHealth:
    async def test_ok(self, client):
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.text() == "OK"


@pytest.mark.asyncio
class TestProductFragment:
    async def test_sets_session_cookie(self, client, product_42):
        resp = await client.get("/products/42/size-chart")
        assert resp.status == 200
        assert config.SESSION_COOKIE in resp.cookies

    async def test_reuses_existing_session(self, client, product_42):
        _with_session(client)
        resp = await client.get("/products/42/size-chart")
        assert config.SESSION_COOKIE not in resp.cookies

    async def test_renders_button_and_script_data(self, client, product_42):
        resp = await client.get("/products/42/size-chart")
        html = await resp.text()
        assert 'data-product-id="42"' in html
        assert "var sizeChartData" in html
        assert "/ajax" in html

    async def test_empty_when_no_chart(self, client):
        await db.set_product_meta(99, ENABLE_KEY, "yes")
        resp = await client.get("/products/99/size-chart")
        assert resp.status == 200
        assert await resp.text() == ""

    async def test_bad_product_id_is_404(self, client):
        resp = await client.get("/products/abc/size-chart")
        assert resp.status == 404

    async def test_oversized_product_id_is_404(self, client):
        resp = await client.get("/products/100000000000000000000/size-chart")
        assert resp.status == 404


@pytest.mark.asyncio
class TestAjax:
    async def test_success(self, client, service, product_42):
        _with_session(client)
        resp = await client.post("/ajax", data={
            "action": "get_size_chart",
            "product_id": "42",
            "nonce": service.issue_token(SESSION),
        })
        assert resp.status == 200
        assert await resp.json() == {
            "success": True,
            "data": {"image_url": "https://cdn.example/img/42.jpg"},
        }

    async def test_no_image(self, client, service):
        _with_session(client)
        await db.set_product_meta(99, ENABLE_KEY, "yes")
        resp = await client.post("/ajax", data={
            "action": "get_size_chart",
            "product_id": "99",
            "nonce": service.issue_token(SESSION),
        })
        assert resp.status == 200
        assert await resp.json() == {
            "success": False,
            "data": {"message": "No size chart image found"},
        }

    async def test_product_id_zero(self, client, service):
        _with_session(client)
        resp = await client.post("/ajax", data={
            "action": "get_size_chart",
            "product_id": "0",
            "nonce": service.issue_token(SESSION),
        })
        assert resp.status == 400
        body = await resp.json()
        assert body["success"] is False
        assert body["data"]["message"] == "Invalid product ID"

    async def test_bad_token(self, client, product_42):
        _with_session(client)
        resp = await client.post("/ajax", data={
            "action": "get_size_chart",
            "product_id": "42",
            "nonce": "forged",
        })
        assert resp.status == 403
        body = await resp.json()
        assert body["success"] is False
        assert "message" in body["data"]

    async def test_token_without_session_cookie_rejected(self, client, service, product_42):
        resp = await client.post("/ajax", data={
            "action": "get_size_chart",
            "product_id": "42",
            "nonce": service.issue_token(SESSION),
        })
        assert resp.status == 403

    async def test_unknown_action(self, client, service):
        _with_session(client)
        resp = await client.post("/ajax", data={
            "action": "nope",
            "product_id": "42",
            "nonce": service.issue_token(SESSION),
        })
        assert resp.status == 400
        assert (await resp.json())["success"] is False


@pytest.mark.asyncio
class TestPageFlow:
    async def test_fragment_token_works_for_lookup(self, client, product_42):
        resp = await client.get("/products/42/size-chart")
        html = await resp.text()
        nonce = re.search(r'"nonce": "([0-9a-f]+)"', html).group(1)

        # Session cookie issued above is sent back automatically
        resp = await client.post("/ajax", data={
            "action": "get_size_chart",
            "product_id": "42",
            "nonce": nonce,
        })
        assert resp.status == 200
        body = await resp.json()
        assert body["data"]["image_url"] == "https://cdn.example/img/42.jpg"
