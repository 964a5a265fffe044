from __future__ import annotations

import httpx
import pytest

from swapdesk_service.market_data.geckoterminal import (
    GeckoTerminalClient,
    GeckoTerminalConfig,
    GeckoTerminalError,
    parse_ohlcv_payload,
)

POOL = "0xABCDEF0000000000000000000000000000000001"


def _payload(rows):
    return {"data": {"attributes": {"ohlcv_list": rows}}}


def _client(handler) -> GeckoTerminalClient:
    config = GeckoTerminalConfig(base_url="https://gecko.test/api/v2", network="base")
    return GeckoTerminalClient(config, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_parse_ohlcv_payload_orders_and_skips_malformed_rows() -> None:
    rows = [
        [1_700_003_600, "2", "3", "1", "2.5", "100"],
        [1_700_000_000, 1, 2, 0.5, 1.5],
        ["bad-row"],
    ]

    candles = parse_ohlcv_payload(_payload(rows))

    assert [candle.time for candle in candles] == [1_700_000_000, 1_700_003_600]
    assert candles[0].volume is None
    assert candles[1].volume == 100.0


def test_parse_ohlcv_payload_handles_missing_data() -> None:
    assert parse_ohlcv_payload({}) == []
    assert parse_ohlcv_payload(None) == []


@pytest.mark.asyncio
async def test_fetch_ohlcv_builds_request_from_timeframe() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_payload([[1_700_000_000, 1, 1, 1, 1, 5]]))

    client = _client(handler)
    candles = await client.fetch_ohlcv(POOL, "4h", limit=50)
    await client.close()

    assert len(candles) == 1
    request = seen[0]
    assert request.url.path == f"/api/v2/networks/base/pools/{POOL.lower()}/ohlcv/hour"
    assert request.url.params["aggregate"] == "4"
    assert request.url.params["limit"] == "50"


@pytest.mark.asyncio
async def test_fetch_latest_returns_newest_candle() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["limit"] == "2"
        return httpx.Response(200, json=_payload([[200, 2, 2, 2, 2, 1], [100, 1, 1, 1, 1, 1]]))

    client = _client(handler)
    latest = await client.fetch_latest(POOL, "1m")
    await client.close()

    assert latest is not None
    assert latest.time == 200


@pytest.mark.asyncio
async def test_fetch_ohlcv_raises_on_error_status() -> None:
    client = _client(lambda request: httpx.Response(429, json={"errors": ["rate limited"]}))

    with pytest.raises(GeckoTerminalError):
        await client.fetch_ohlcv(POOL, "1h")
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [httpx.Response(200, text="rate limited"), httpx.Response(200, json=[[1, 2, 3]])],
)
async def test_fetch_ohlcv_rejects_non_object_body(response: httpx.Response) -> None:
    client = _client(lambda request: response)

    with pytest.raises(GeckoTerminalError):
        await client.fetch_ohlcv(POOL, "1h")
    await client.close()
