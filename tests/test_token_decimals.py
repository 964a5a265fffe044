from __future__ import annotations

import json

import httpx
import pytest

from swapdesk_service.config import Settings
from swapdesk_service.providers.trade_records import HttpTradeRecordStore, TradeRecordConfig, TradeRecordError
from swapdesk_service.swap import BalanceService, TokenDecimalsResolver, TradeRecord

from utils.fake_chain import NATIVE, USDC, WALLET, WETH, FakeRpc

CUSTOM_TOKEN = "0xabcdef0000000000000000000000000000000009"


@pytest.mark.asyncio
async def test_known_tokens_resolve_without_rpc() -> None:
    rpc = FakeRpc()
    resolver = TokenDecimalsResolver(rpc, settings=Settings())

    assert await resolver.resolve(USDC) == 6
    assert await resolver.resolve(WETH) == 18
    assert await resolver.resolve("0xcbB7C0000aB88B473b1f5aFd9ef808440eed33Bf") == 8
    assert rpc.calls == []


@pytest.mark.asyncio
async def test_unknown_token_reads_decimals_once() -> None:
    rpc = FakeRpc()
    rpc.token_decimals[CUSTOM_TOKEN] = 9
    resolver = TokenDecimalsResolver(rpc, settings=Settings())

    assert await resolver.resolve(CUSTOM_TOKEN) == 9
    assert await resolver.resolve("0x" + CUSTOM_TOKEN[2:].upper()) == 9
    assert len(rpc.calls) == 1
    assert resolver.cached(CUSTOM_TOKEN) == 9


@pytest.mark.asyncio
async def test_failed_decimals_call_defaults_to_18() -> None:
    rpc = FakeRpc()
    rpc.fail_calls = True
    resolver = TokenDecimalsResolver(rpc, settings=Settings())

    assert await resolver.resolve(CUSTOM_TOKEN) == 18
    rpc.fail_calls = False
    rpc.token_decimals[CUSTOM_TOKEN] = 6
    # The fallback stays cached for the lifetime of the resolver.
    assert await resolver.resolve(CUSTOM_TOKEN) == 18


@pytest.mark.asyncio
async def test_empty_decimals_result_defaults_to_18() -> None:
    resolver = TokenDecimalsResolver(FakeRpc(), settings=Settings())

    assert await resolver.resolve(CUSTOM_TOKEN) == 18


@pytest.mark.asyncio
async def test_balance_service_reads_native_and_erc20_balances() -> None:
    rpc = FakeRpc()
    rpc.native_balance = 5 * 10**17
    rpc.token_balances[USDC.lower()] = 1_000_000
    service = BalanceService(rpc, settings=Settings())

    native = await service.fetch(WALLET, NATIVE)
    token = await service.fetch(WALLET, USDC)

    assert native.amount == 5 * 10**17
    assert token.amount == 1_000_000
    assert rpc.calls[0] == (WALLET.lower(), "balance")
    assert rpc.calls[1][0] == USDC.lower()


def test_trade_record_payload_uses_camel_case_keys() -> None:
    record = TradeRecord(
        wallet_address=WALLET,
        sell_token=WETH,
        buy_token=USDC,
        pay_amount="1",
        receive_amount="2500.0000",
        transaction_hash="0xabc",
        block_number=10,
        gas_used=150_000,
        chain_id=8453,
    )

    payload = record.as_payload()

    assert payload["txHash"] == "0xabc"
    assert payload["inputToken"] == WETH
    assert payload["amountOut"] == "2500.0000"
    assert payload["gasUsed"] == "150000"
    assert payload["protocol"] == "0x"


@pytest.mark.asyncio
async def test_http_trade_record_store_posts_json() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(201, json={"ok": True})

    store = HttpTradeRecordStore(
        TradeRecordConfig(url="https://records.test/orders"),
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    await store.save({"txHash": "0xabc"})
    await store.close()

    assert seen == [{"txHash": "0xabc"}]


@pytest.mark.asyncio
async def test_http_trade_record_store_raises_on_error_status() -> None:
    store = HttpTradeRecordStore(
        TradeRecordConfig(url="https://records.test/orders"),
        httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))),
    )

    with pytest.raises(TradeRecordError):
        await store.save({"txHash": "0xabc"})
    await store.close()


def test_http_trade_record_store_requires_url() -> None:
    with pytest.raises(TradeRecordError):
        HttpTradeRecordStore(settings=Settings(trade_record_url=None))
