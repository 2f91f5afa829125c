import logging
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from picallback.main import _assert_callback_secret, create_app
from picallback.services.signature import compute_signature


@pytest.mark.anyio("asyncio")
async def test_healthz(client):
    response = await client.get("/healthz")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["store_status"] == "ok"
    assert payload["signature_mode"] == "enforced"
    assert payload["secret_fingerprint"].startswith("sha256:")
    assert "test-pi-secret" not in response.text


@pytest.mark.anyio("asyncio")
async def test_healthz_reports_unconfigured_secret(make_client):
    async with await make_client(secret=None) as client:
        payload = (await client.get("/healthz")).json()

    assert payload["signature_mode"] == "unconfigured"
    assert payload["secret_fingerprint"] is None


@pytest.mark.anyio("asyncio")
async def test_lifespan_without_database_leaves_store_unavailable(settings):
    app = create_app(settings.model_copy(update={"database_url": None}))

    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            health = (await client.get("/healthz")).json()
            body = b'{"payment_id": "no-db"}'
            ack = await client.post(
                "/pi_callback",
                content=body,
                headers={"X-Signature": compute_signature(settings.pi_callback_secret, body)},
            )

    assert health["store_status"] == "unavailable"
    assert ack.status_code == 200
    assert app.state.pipeline is None


@pytest.mark.anyio("asyncio")
async def test_lifespan_builds_store_from_settings(settings):
    app = create_app(settings)

    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            health = (await client.get("/healthz")).json()

    assert health["store_status"] == "ok"


@pytest.mark.anyio("asyncio")
async def test_index_and_static_assets_are_served(client):
    index = await client.get("/")
    asset = await client.get("/static/index.html")

    assert index.status_code == 200
    assert "text/html" in index.headers["content-type"]
    assert asset.status_code == 200


@pytest.mark.anyio("asyncio")
async def test_index_missing_is_json_404(make_client, tmp_path):
    async with await make_client(STATIC_DIR=str(tmp_path / "nope")) as client:
        response = await client.get("/")

    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


@pytest.mark.anyio("asyncio")
async def test_metrics_endpoint_exposes_callback_counters(make_client):
    async with await make_client(PROMETHEUS_ENABLED=True) as client:
        response = await client.get("/metrics")

    assert response.status_code == 200
    assert "picallback_callbacks_total" in response.text
    assert "picallback_store_errors_total" in response.text


def test_missing_secret_is_an_error_outside_dev(caplog):
    caplog.set_level(logging.WARNING, logger="picallback.main")

    _assert_callback_secret(SimpleNamespace(pi_callback_secret=None, is_dev=False, app_env="prod"))

    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_missing_secret_is_a_warning_in_dev(caplog):
    caplog.set_level(logging.WARNING, logger="picallback.main")

    _assert_callback_secret(SimpleNamespace(pi_callback_secret=None, is_dev=True, app_env="dev"))

    assert [r.levelno for r in caplog.records] == [logging.WARNING]


def test_configured_secret_is_silent(caplog):
    caplog.set_level(logging.WARNING, logger="picallback.main")

    _assert_callback_secret(SimpleNamespace(pi_callback_secret="s", is_dev=False, app_env="prod"))

    assert caplog.records == []


def test_app_module_is_documented():
    import picallback.main

    assert picallback.main.__doc__
