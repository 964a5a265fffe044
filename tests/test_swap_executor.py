from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from swapdesk_service.config import Settings
from swapdesk_service.metrics import get_swap_confirmation_latency_stats, reset_swap_confirmation_latency
from swapdesk_service.providers.erc20 import APPROVE_SELECTOR
from swapdesk_service.providers.rpc import JsonRpcClient, JsonRpcConfig, JsonRpcError, TransactionReceipt
from swapdesk_service.swap import (
    BalanceService,
    InsufficientBalanceError,
    InvalidAmountError,
    Quote,
    QuoteExpiredError,
    QuoteUnavailableError,
    SwapError,
    SwapExecutor,
    SwapInProgressError,
    TokenDecimalsResolver,
    TransactionRevertedError,
    UserRejectedError,
    WalletNotConnectedError,
)

from utils.fake_chain import (
    SPENDER,
    USDC,
    WALLET,
    WETH,
    FakeClock,
    FakeRpc,
    FakeSigner,
    FakeTradeStore,
    FakeZeroEx,
    quote_payload,
)

ONE_ETH = 10**18


class Harness:
    def __init__(self, *, store_fails: bool = False) -> None:
        self.settings = Settings()
        self.clock = FakeClock()
        self.rpc = FakeRpc()
        self.rpc.token_balances[WETH.lower()] = 2 * ONE_ETH
        self.zeroex = FakeZeroEx()
        self.signer = FakeSigner()
        self.store = FakeTradeStore(fail=store_fails)
        self.executor = SwapExecutor(
            self.zeroex,
            self.rpc,
            BalanceService(self.rpc, settings=self.settings),
            TokenDecimalsResolver(self.rpc, settings=self.settings),
            signer=self.signer,
            record_store=self.store,
            settings=self.settings,
            clock=self.clock,
        )

    def quote(self, *, sell_amount: int = ONE_ETH, ttl: float = 30.0) -> Quote:
        return Quote(
            sell_token=WETH,
            buy_token=USDC,
            pay_amount="1",
            receive_amount="2500.0000",
            sell_amount=sell_amount,
            buy_amount=2_500_000_000,
            expires_at=self.clock() + ttl,
        )


@pytest.mark.asyncio
async def test_successful_swap_refreshes_balances_and_saves_record() -> None:
    reset_swap_confirmation_latency()
    h = Harness()

    result = await h.executor.run(h.quote())

    assert result.receipt.succeeded
    assert result.approval_hash is None
    assert result.record_saved is True
    assert result.receive_amount == "2500.0000"
    assert [snapshot.token_address for snapshot in result.balances] == [WETH, USDC]
    assert len(h.signer.sent) == 1
    assert h.signer.sent[0]["data"] == "0xdeadbeef"
    assert h.signer.sent[0]["gas"] == 210_000
    record = h.store.records[0]
    assert record["txHash"] == result.transaction_hash
    assert record["walletAddress"] == WALLET
    assert record["chainId"] == 8453
    assert h.zeroex.quote_calls[0]["taker"] == WALLET
    assert h.zeroex.quote_calls[0]["slippage_bps"] == 100
    stats = get_swap_confirmation_latency_stats()
    assert stats is not None and stats["latest_tx"] == result.transaction_hash


@pytest.mark.asyncio
async def test_receipt_with_status_zero_is_reverted() -> None:
    h = Harness()
    original_wait = h.rpc.wait_for_receipt

    async def reverted_receipt(tx_hash: str, **kwargs) -> TransactionReceipt:
        await original_wait(tx_hash)
        return TransactionReceipt(transaction_hash=tx_hash, status=0, block_number=101)

    h.rpc.wait_for_receipt = reverted_receipt
    intent = await h.executor.confirm(h.quote())
    reads_before = h.rpc.balance_reads()

    with pytest.raises(TransactionRevertedError) as excinfo:
        await h.executor.execute(intent, h.quote())

    assert excinfo.value.tx_hash
    assert excinfo.value.status == 0
    # Only the pre-submission balance check ran; no post-swap refresh.
    assert h.rpc.balance_reads() == reads_before + 1
    assert h.store.records == []
    assert h.executor.in_flight is False


@pytest.mark.asyncio
async def test_receipt_without_status_is_reverted() -> None:
    h = Harness()

    async def unknown_status(tx_hash: str, **kwargs) -> TransactionReceipt:
        return TransactionReceipt(transaction_hash=tx_hash, status=None)

    h.rpc.wait_for_receipt = unknown_status

    with pytest.raises(TransactionRevertedError):
        await h.executor.run(h.quote())
    assert h.store.records == []


@pytest.mark.asyncio
async def test_allowance_issue_sends_approval_first() -> None:
    h = Harness()
    h.zeroex.quote_payloads = [quote_payload(spender=SPENDER)]

    result = await h.executor.run(h.quote())

    assert len(h.signer.sent) == 2
    approval, swap = h.signer.sent
    assert approval["to"] == WETH
    assert approval["data"].startswith(APPROVE_SELECTOR)
    assert approval["data"].endswith("f" * 64)
    assert swap["data"] == "0xdeadbeef"
    assert result.approval_hash is not None


@pytest.mark.asyncio
async def test_retry_after_failed_swap_skips_completed_approval() -> None:
    h = Harness()
    h.zeroex.quote_payloads = [quote_payload(spender=SPENDER), quote_payload()]
    original_send = h.signer.send_transaction
    calls = {"count": 0}

    async def send(transaction):
        calls["count"] += 1
        if calls["count"] == 2:
            raise JsonRpcError("nonce too low", code=-32000)
        return await original_send(transaction)

    h.signer.send_transaction = send

    with pytest.raises(SwapError):
        await h.executor.run(h.quote())
    result = await h.executor.run(h.quote())

    assert result.approval_hash is None
    assert [tx["data"][:10] for tx in h.signer.sent] == [APPROVE_SELECTOR, "0xdeadbeef"]


@pytest.mark.asyncio
async def test_insufficient_balance_blocks_before_quote() -> None:
    h = Harness()

    with pytest.raises(InsufficientBalanceError) as excinfo:
        await h.executor.run(h.quote(sell_amount=3 * ONE_ETH))

    assert excinfo.value.available == 2 * ONE_ETH
    assert excinfo.value.required == 3 * ONE_ETH
    assert h.zeroex.quote_calls == []
    assert h.signer.sent == []


@pytest.mark.asyncio
async def test_balance_is_rechecked_before_submission() -> None:
    h = Harness()
    intent = await h.executor.confirm(h.quote())
    h.rpc.token_balances[WETH.lower()] = 0

    with pytest.raises(InsufficientBalanceError):
        await h.executor.execute(intent, h.quote())
    assert h.zeroex.quote_calls == []


@pytest.mark.asyncio
async def test_user_rejection_is_reported() -> None:
    h = Harness()
    h.signer.error = JsonRpcError("User rejected the request.", code=4001)

    with pytest.raises(UserRejectedError):
        await h.executor.run(h.quote())
    assert h.store.records == []


@pytest.mark.asyncio
async def test_persistence_failure_does_not_mask_success() -> None:
    h = Harness(store_fails=True)

    result = await h.executor.run(h.quote())

    assert result.receipt.succeeded
    assert result.record_saved is False


@pytest.mark.asyncio
async def test_expired_quote_is_rejected() -> None:
    h = Harness()
    quote = h.quote(ttl=5)
    h.clock.advance(6)

    with pytest.raises(QuoteExpiredError):
        await h.executor.run(quote)


@pytest.mark.asyncio
async def test_quote_expiring_between_confirm_and_execute_is_rejected() -> None:
    h = Harness()
    quote = h.quote(ttl=5)
    intent = await h.executor.confirm(quote)
    h.clock.advance(10)

    with pytest.raises(QuoteExpiredError):
        await h.executor.execute(intent, quote)
    assert h.signer.sent == []


@pytest.mark.asyncio
async def test_missing_wallet_is_rejected() -> None:
    h = Harness()
    h.executor.connect(None)

    with pytest.raises(WalletNotConnectedError):
        await h.executor.run(h.quote())


@pytest.mark.asyncio
async def test_missing_or_invalid_quote_is_rejected() -> None:
    h = Harness()
    bad = h.quote()
    bad.receive_amount = "0"

    with pytest.raises(QuoteUnavailableError):
        await h.executor.run(None)
    with pytest.raises(InvalidAmountError):
        await h.executor.run(bad)


@pytest.mark.asyncio
async def test_firm_quote_failure_is_quote_unavailable() -> None:
    h = Harness()
    h.zeroex.error = FakeZeroEx.failure()

    with pytest.raises(QuoteUnavailableError):
        await h.executor.run(h.quote())


@pytest.mark.asyncio
async def test_concurrent_execution_is_rejected() -> None:
    h = Harness()
    h.signer.gate = asyncio.Event()
    intent = await h.executor.confirm(h.quote())

    first = asyncio.create_task(h.executor.execute(intent, h.quote()))
    await asyncio.sleep(0)
    with pytest.raises(SwapInProgressError):
        await h.executor.execute(intent, h.quote())

    h.signer.gate.set()
    result = await first
    assert result.receipt.succeeded


@pytest.mark.asyncio
async def test_garbled_receipt_response_surfaces_as_swap_error() -> None:
    settings = Settings()

    def node(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["method"] == "eth_call":
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": hex(2 * ONE_ETH)})
        return httpx.Response(200, text="<html>502 gateway</html>")

    config = JsonRpcConfig(url="https://rpc.test", receipt_poll_interval_seconds=0.0)
    rpc = JsonRpcClient(config, httpx.AsyncClient(transport=httpx.MockTransport(node)))
    signer = FakeSigner()
    executor = SwapExecutor(
        FakeZeroEx(),
        rpc,
        BalanceService(rpc, settings=settings),
        TokenDecimalsResolver(rpc, settings=settings),
        signer=signer,
        record_store=FakeTradeStore(),
        settings=settings,
        clock=FakeClock(),
    )
    quote = Harness().quote()

    with pytest.raises(SwapError):
        await executor.run(quote)
    assert len(signer.sent) == 1
    assert executor.in_flight is False
    await rpc.close()
