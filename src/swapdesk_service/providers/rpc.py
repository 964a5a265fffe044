from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger("swapdesk.providers.rpc")

USER_REJECTED_CODE = 4001


class JsonRpcError(RuntimeError):
    """Raised for transport failures and JSON-RPC error objects."""

    def __init__(self, message: str, *, code: int | str | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data

    @property
    def is_user_rejection(self) -> bool:
        return self.code in (USER_REJECTED_CODE, "ACTION_REJECTED")


@dataclass(slots=True)
class TransactionReceipt:
    transaction_hash: str
    status: int | None
    block_number: int | None = None
    gas_used: int | None = None
    from_address: str | None = None
    to_address: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "TransactionReceipt":
        return cls(
            transaction_hash=payload.get("transactionHash") or payload.get("hash") or "",
            status=_hex_to_int(payload.get("status")),
            block_number=_hex_to_int(payload.get("blockNumber")),
            gas_used=_hex_to_int(payload.get("gasUsed")),
            from_address=payload.get("from"),
            to_address=payload.get("to"),
        )


class WalletSigner(Protocol):
    """Anything able to sign and broadcast a transaction for a single address."""

    @property
    def address(self) -> str:
        ...

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        ...


@dataclass(slots=True)
class JsonRpcConfig:
    url: str
    timeout_seconds: float = 15.0
    receipt_poll_interval_seconds: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "JsonRpcConfig":
        return cls(
            url=settings.rpc_url,
            timeout_seconds=settings.rpc_timeout_seconds,
            receipt_poll_interval_seconds=settings.receipt_poll_interval_seconds,
        )


class JsonRpcClient:
    """Minimal Ethereum JSON-RPC client over httpx."""

    def __init__(
        self,
        config: JsonRpcConfig | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._config = config or JsonRpcConfig.from_settings(settings)
        self._client = client or httpx.AsyncClient(timeout=self._config.timeout_seconds)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self._config.url, json=payload)
        except httpx.HTTPError as exc:
            raise JsonRpcError(f"RPC {method} transport error: {exc}") from exc
        if response.status_code >= 400:
            raise JsonRpcError(f"RPC {method} failed with HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise JsonRpcError(f"RPC {method} returned a non-JSON response") from exc
        if not isinstance(body, dict):
            raise JsonRpcError(f"RPC {method} response was not a JSON object")
        error = body.get("error")
        if error and not isinstance(error, dict):
            raise JsonRpcError(str(error))
        if error:
            raise JsonRpcError(
                str(error.get("message") or f"RPC {method} failed"),
                code=error.get("code"),
                data=error.get("data"),
            )
        return body.get("result")

    async def eth_call(self, to: str, data: str) -> str:
        return await self.request("eth_call", [{"to": to, "data": data}, "latest"])

    async def get_balance(self, address: str) -> int:
        result = await self.request("eth_getBalance", [address, "latest"])
        return _hex_to_int(result) or 0

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        result = await self.request("eth_getTransactionReceipt", [tx_hash])
        if not result:
            return None
        return TransactionReceipt.from_rpc(result)

    async def wait_for_receipt(self, tx_hash: str, *, poll_interval: float | None = None) -> TransactionReceipt:
        """Poll until the transaction is mined. No timeout is applied here."""

        interval = poll_interval if poll_interval is not None else self._config.receipt_poll_interval_seconds
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            logger.debug("Receipt for %s not available yet; polling again in %.1fs", tx_hash, interval)
            await asyncio.sleep(interval)

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        return await self.request("eth_sendTransaction", [_encode_transaction(transaction)])

    async def close(self) -> None:
        await self._client.aclose()


class RpcWalletSigner:
    """Signer backed by an unlocked account on the connected node (``eth_sendTransaction``)."""

    def __init__(self, rpc: JsonRpcClient, address: str) -> None:
        self._rpc = rpc
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        return await self._rpc.send_transaction({"from": self._address, **transaction})


def _encode_transaction(transaction: dict[str, Any]) -> dict[str, Any]:
    encoded: dict[str, Any] = {}
    for key, value in transaction.items():
        if value is None:
            continue
        if isinstance(value, int) and not isinstance(value, bool):
            encoded[key] = hex(value)
        else:
            encoded[key] = value
    return encoded


def _hex_to_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value)
    if text in ("", "0x"):
        return 0
    try:
        return int(text, 16) if text.startswith("0x") else int(text)
    except ValueError:
        return None


__all__ = [
    "JsonRpcClient",
    "JsonRpcConfig",
    "JsonRpcError",
    "RpcWalletSigner",
    "TransactionReceipt",
    "WalletSigner",
    "USER_REJECTED_CODE",
]
