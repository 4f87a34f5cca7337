import json

import httpx
import pytest

from ember_agents.integrations.ember import EmberGatewayClient, EmberGatewayError, EmberGatewaySettings

SETTINGS = EmberGatewaySettings(base_url="https://planner.test", api_key="secret")


def _client(handler):
    transport = httpx.MockTransport(handler)
    return EmberGatewayClient(
        SETTINGS,
        client=httpx.AsyncClient(base_url=SETTINGS.base_url, transport=transport),
    )


@pytest.mark.asyncio
async def test_catalog_is_parsed_into_token_chain_mapping():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json={
                "tokens": [
                    {"name": "WETH", "chains": ["Arbitrum", "Base", "Arbitrum"]},
                    {"name": " ", "chains": ["Base"]},
                    {"name": "ARB", "chains": ["Arbitrum", ""]},
                    "garbage",
                ]
            },
        )

    async with _client(handler) as client:
        catalog = await client.get_lending_catalog()

    assert catalog == {"WETH": ["Arbitrum", "Base"], "ARB": ["Arbitrum"]}
    assert seen == {"path": "/v1/lending/catalog", "auth": "Bearer secret"}


@pytest.mark.asyncio
async def test_plan_request_posts_body_with_idempotency_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        seen["idempotency"] = request.headers.get("Idempotency-Key")
        return httpx.Response(200, json={"transactions": [{"to": "0x1"}, "bad"]})

    async with _client(handler) as client:
        plans = await client.plan_lending_action("/v1/lending/borrow", {"tokenName": "WETH"})

    assert plans == [{"to": "0x1"}]
    assert seen["method"] == "POST"
    assert seen["body"] == {"tokenName": "WETH"}
    assert seen["idempotency"]


@pytest.mark.asyncio
async def test_error_status_raises_gateway_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"error": "unsupported token"})

    async with _client(handler) as client:
        with pytest.raises(EmberGatewayError) as excinfo:
            await client.plan_lending_action("/v1/lending/supply", {})

    assert excinfo.value.status_code == 422
    assert excinfo.value.payload == {"error": "unsupported token"}


def test_settings_require_base_url(monkeypatch):
    monkeypatch.delenv("EMBER_API_URL", raising=False)
    with pytest.raises(ValueError):
        EmberGatewaySettings.load()

    monkeypatch.setenv("EMBER_API_URL", "https://planner.test/")
    monkeypatch.setenv("EMBER_API_TIMEOUT", "3")
    settings = EmberGatewaySettings.load()

    assert settings.base_url == "https://planner.test"
    assert settings.request_timeout == 3.0
