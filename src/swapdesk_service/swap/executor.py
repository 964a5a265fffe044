from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from ..config import Settings, get_settings
from ..metrics import record_swap_confirmation_latency
from ..observability import record_swap_metric
from ..providers.erc20 import encode_approve
from ..providers.rpc import JsonRpcClient, JsonRpcError, TransactionReceipt, WalletSigner
from ..providers.trade_records import TradeRecordError, TradeRecordStore
from ..providers.zeroex import ZeroExClient, ZeroExError
from .balances import BalanceService
from .errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    QuoteExpiredError,
    QuoteUnavailableError,
    SwapError,
    SwapInProgressError,
    TransactionRevertedError,
    UserRejectedError,
    WalletNotConnectedError,
)
from .models import BalanceSnapshot, Quote, SwapIntent, SwapResult, SwapTransaction, TradeRecord
from .tokens import TokenDecimalsResolver
from .units import format_token_amount, from_base_units, parse_amount

logger = logging.getLogger("swapdesk.swap.executor")


class SwapExecutor:
    """
    Submits a confirmed swap and waits for it to settle.

    One swap runs at a time per executor. The only success signal is a mined
    receipt with ``status == 1``; everything else surfaces as a ``SwapError``.
    Nothing is retried.
    """

    def __init__(
        self,
        zeroex: ZeroExClient,
        rpc: JsonRpcClient,
        balances: BalanceService,
        decimals: TokenDecimalsResolver,
        *,
        signer: WalletSigner | None = None,
        record_store: TradeRecordStore | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        self._zeroex = zeroex
        self._rpc = rpc
        self._balances = balances
        self._decimals = decimals
        self._signer = signer
        self._record_store = record_store
        self._clock = clock
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def connect(self, signer: WalletSigner | None) -> None:
        self._signer = signer

    async def confirm(self, quote: Quote | None, *, slippage_bps: int | None = None) -> SwapIntent:
        """Validate a quote against the connected wallet and return the intent to execute."""

        if quote is None:
            raise QuoteUnavailableError()
        if parse_amount(quote.pay_amount) is None or parse_amount(quote.receive_amount) is None:
            raise InvalidAmountError()
        if quote.sell_amount <= 0:
            raise InvalidAmountError()
        if quote.is_expired(self._clock()):
            raise QuoteExpiredError()
        signer = self._require_signer()
        await self._check_balance(signer.address, quote.sell_token, quote.sell_amount)
        return SwapIntent(
            sell_token=quote.sell_token,
            buy_token=quote.buy_token,
            sell_amount=quote.sell_amount,
            taker_address=signer.address,
            slippage_bps=slippage_bps if slippage_bps is not None else self._settings.default_slippage_bps,
        )

    async def execute(self, intent: SwapIntent, quote: Quote) -> SwapResult:
        if self._in_flight:
            raise SwapInProgressError()
        self._in_flight = True
        try:
            return await self._execute(intent, quote)
        finally:
            self._in_flight = False

    async def run(self, quote: Quote | None, *, slippage_bps: int | None = None) -> SwapResult:
        if quote is None:
            raise QuoteUnavailableError()
        intent = await self.confirm(quote, slippage_bps=slippage_bps)
        return await self.execute(intent, quote)

    async def _execute(self, intent: SwapIntent, quote: Quote) -> SwapResult:
        signer = self._require_signer()
        if quote.is_expired(self._clock()):
            raise QuoteExpiredError()
        await self._check_balance(signer.address, intent.sell_token, intent.sell_amount)

        transaction = await self._fetch_firm_quote(intent)
        approval_hash = None
        if transaction.allowance_spender:
            approval_hash = await self._approve(signer, intent.sell_token, transaction.allowance_spender)

        started = time.perf_counter()
        tx_hash = await self._send(signer, self._swap_payload(transaction), label="swap")
        logger.info("Swap submitted: %s (%s -> %s)", tx_hash, intent.sell_token, intent.buy_token)
        receipt = await self._wait(tx_hash)
        latency_ms = (time.perf_counter() - started) * 1000.0

        if not receipt.succeeded:
            record_swap_metric("reverted")
            logger.error("Swap %s reverted with status %s", tx_hash, receipt.status)
            raise TransactionRevertedError(tx_hash, receipt.status)

        record_swap_metric("success", latency_ms)
        record_swap_confirmation_latency(tx_hash, latency_ms)
        logger.info("Swap %s confirmed in block %s (%.0f ms)", tx_hash, receipt.block_number, latency_ms)

        receive_amount = await self._receive_amount(intent.buy_token, transaction.buy_amount, quote)
        balances = await self._refresh_balances(signer.address, intent)
        record = TradeRecord(
            wallet_address=signer.address,
            sell_token=intent.sell_token,
            buy_token=intent.buy_token,
            pay_amount=quote.pay_amount,
            receive_amount=receive_amount,
            transaction_hash=tx_hash,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
            chain_id=self._settings.chain_id,
        )
        record_saved = await self._save_record(record)
        return SwapResult(
            transaction_hash=tx_hash,
            receipt=receipt,
            pay_amount=quote.pay_amount,
            receive_amount=receive_amount,
            approval_hash=approval_hash,
            balances=balances,
            record_saved=record_saved,
        )

    def _require_signer(self) -> WalletSigner:
        if self._signer is None:
            raise WalletNotConnectedError()
        return self._signer

    async def _check_balance(self, wallet: str, token: str, required: int) -> None:
        try:
            snapshot = await self._balances.fetch(wallet, token)
        except (JsonRpcError, ValueError) as exc:
            raise SwapError(f"Unable to read balance of {token}: {exc}") from exc
        if snapshot.amount < required:
            raise InsufficientBalanceError(token, required, snapshot.amount)

    async def _fetch_firm_quote(self, intent: SwapIntent) -> SwapTransaction:
        try:
            payload = await self._zeroex.fetch_quote(
                sell_token=intent.sell_token,
                buy_token=intent.buy_token,
                sell_amount=intent.sell_amount,
                taker=intent.taker_address,
                slippage_bps=intent.slippage_bps,
            )
            return SwapTransaction.from_payload(payload)
        except (ZeroExError, httpx.HTTPError, KeyError, ValueError, TypeError) as exc:
            record_swap_metric("failed")
            logger.warning("Firm quote failed for %s -> %s: %s", intent.sell_token, intent.buy_token, exc)
            raise QuoteUnavailableError() from exc

    async def _approve(self, signer: WalletSigner, token: str, spender: str) -> str:
        logger.info("Approving %s to spend %s", spender, token)
        tx_hash = await self._send(signer, {"to": token, "data": encode_approve(spender)}, label="approval")
        receipt = await self._wait(tx_hash)
        if not receipt.succeeded:
            record_swap_metric("reverted")
            raise TransactionRevertedError(tx_hash, receipt.status)
        logger.info("Approval %s confirmed", tx_hash)
        return tx_hash

    async def _send(self, signer: WalletSigner, transaction: dict[str, Any], *, label: str) -> str:
        try:
            return await signer.send_transaction(transaction)
        except JsonRpcError as exc:
            if exc.is_user_rejection:
                record_swap_metric("rejected")
                logger.info("User rejected %s transaction", label)
                raise UserRejectedError() from exc
            record_swap_metric("failed")
            logger.error("Failed to send %s transaction: %s", label, exc)
            raise SwapError(str(exc)) from exc

    async def _wait(self, tx_hash: str) -> TransactionReceipt:
        try:
            return await self._rpc.wait_for_receipt(tx_hash)
        except JsonRpcError as exc:
            record_swap_metric("failed")
            logger.error("Failed waiting for receipt of %s: %s", tx_hash, exc)
            raise SwapError(f"Unable to confirm transaction {tx_hash}: {exc}") from exc

    @staticmethod
    def _swap_payload(transaction: SwapTransaction) -> dict[str, Any]:
        payload: dict[str, Any] = {"to": transaction.to, "data": transaction.data, "value": transaction.value}
        if transaction.gas is not None:
            payload["gas"] = transaction.gas
        return payload

    async def _receive_amount(self, buy_token: str, buy_amount: int, quote: Quote) -> str:
        if buy_amount <= 0:
            return quote.receive_amount
        decimals = await self._decimals.resolve(buy_token)
        return format_token_amount(from_base_units(buy_amount, decimals))

    async def _refresh_balances(self, wallet: str, intent: SwapIntent) -> list[BalanceSnapshot]:
        snapshots: list[BalanceSnapshot] = []
        for token in (intent.sell_token, intent.buy_token):
            try:
                snapshots.append(await self._balances.fetch(wallet, token))
            except (JsonRpcError, ValueError) as exc:
                logger.warning("Balance refresh failed for %s after swap: %s", token, exc)
        return snapshots

    async def _save_record(self, record: TradeRecord) -> bool:
        if self._record_store is None:
            return False
        try:
            await self._record_store.save(record.as_payload())
        except (TradeRecordError, httpx.HTTPError) as exc:
            logger.warning("Swap %s succeeded but the trade record was not saved: %s", record.transaction_hash, exc)
            return False
        return True


__all__ = ["SwapExecutor"]
