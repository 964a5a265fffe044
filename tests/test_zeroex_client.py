from __future__ import annotations

import httpx
import pytest

from swapdesk_service.providers.zeroex import PRICE_PATH, QUOTE_PATH, ZeroExClient, ZeroExConfig, ZeroExError

USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
WETH = "0x4200000000000000000000000000000000000006"
TAKER = "0x1111111111111111111111111111111111111111"


def _client(handler, **config) -> ZeroExClient:
    cfg = ZeroExConfig(base_url="https://zeroex.test", api_key="test-key", **config)
    return ZeroExClient(cfg, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_fetch_price_sends_chain_and_amount_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"buyAmount": "1000000", "liquidityAvailable": True})

    client = _client(handler)
    payload = await client.fetch_price(sell_token=WETH, buy_token=USDC, sell_amount=10**18)
    await client.close()

    assert payload["buyAmount"] == "1000000"
    params = seen[0].url.params
    assert seen[0].url.path == PRICE_PATH
    assert params["chainId"] == "8453"
    assert params["sellToken"] == WETH
    assert params["buyToken"] == USDC
    assert params["sellAmount"] == str(10**18)
    assert params["slippageBps"] == "100"
    assert "taker" not in params


@pytest.mark.asyncio
async def test_fetch_quote_includes_taker_and_fee_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"buyAmount": "5", "transaction": {"to": "0x1", "data": "0x"}})

    client = _client(handler, fee_recipient=TAKER, fee_bps=15)
    await client.fetch_quote(sell_token=WETH, buy_token=USDC, sell_amount=1, taker=TAKER, slippage_bps=50)
    await client.close()

    params = seen[0].url.params
    assert seen[0].url.path == QUOTE_PATH
    assert params["taker"] == TAKER
    assert params["slippageBps"] == "50"
    assert params["integratorFeeRecipient"] == TAKER
    assert params["integratorFeeBps"] == "15"
    assert seen[0].headers["0x-api-key"] == "test-key"
    assert seen[0].headers["0x-version"] == "v2"


@pytest.mark.asyncio
async def test_fetch_quote_requires_taker() -> None:
    client = _client(lambda request: httpx.Response(200, json={}))

    with pytest.raises(ZeroExError):
        await client.fetch_quote(sell_token=WETH, buy_token=USDC, sell_amount=1, taker="")
    await client.close()


@pytest.mark.asyncio
async def test_error_response_surfaces_validation_reason() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"name": "INPUT_INVALID", "validationErrors": [{"field": "sellAmount", "description": "too small"}]},
        )

    client = _client(handler)
    with pytest.raises(ZeroExError) as excinfo:
        await client.fetch_price(sell_token=WETH, buy_token=USDC, sell_amount=1)
    await client.close()

    assert str(excinfo.value) == "too small"
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_error_response_without_json_uses_status() -> None:
    client = _client(lambda request: httpx.Response(503, text="upstream down"))

    with pytest.raises(ZeroExError, match="503"):
        await client.fetch_price(sell_token=WETH, buy_token=USDC, sell_amount=1)
    await client.close()
