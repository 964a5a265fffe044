from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..providers.rpc import TransactionReceipt


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuoteState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    QUOTED = "quoted"
    EXPIRED = "expired"


@dataclass(slots=True)
class Quote:
    sell_token: str
    buy_token: str
    pay_amount: str
    receive_amount: str
    sell_amount: int
    buy_amount: int
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(slots=True)
class SwapIntent:
    sell_token: str
    buy_token: str
    sell_amount: int
    taker_address: str
    slippage_bps: int


@dataclass(slots=True)
class SwapTransaction:
    to: str
    data: str
    value: int
    gas: int | None
    buy_amount: int
    allowance_spender: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SwapTransaction":
        tx = payload.get("transaction") or payload
        allowance = (payload.get("issues") or {}).get("allowance") or {}
        gas = tx.get("gas")
        return cls(
            to=tx["to"],
            data=tx["data"],
            value=int(tx.get("value") or 0),
            gas=int(gas) if gas not in (None, "") else None,
            buy_amount=int(payload.get("buyAmount") or 0),
            allowance_spender=allowance.get("spender"),
        )


@dataclass(slots=True)
class BalanceSnapshot:
    wallet_address: str
    token_address: str
    amount: int


@dataclass(slots=True)
class TradeRecord:
    wallet_address: str
    sell_token: str
    buy_token: str
    pay_amount: str
    receive_amount: str
    transaction_hash: str
    block_number: int | None
    gas_used: int | None
    chain_id: int
    protocol: str = "0x"
    pair_address: str | None = None
    executed_at: datetime = field(default_factory=_utcnow)

    def as_payload(self) -> dict[str, Any]:
        return {
            "walletAddress": self.wallet_address,
            "inputToken": self.sell_token,
            "outputToken": self.buy_token,
            "amountIn": self.pay_amount,
            "amountOut": self.receive_amount,
            "txHash": self.transaction_hash,
            "blockNumber": self.block_number,
            "gasUsed": str(self.gas_used) if self.gas_used is not None else None,
            "chainId": self.chain_id,
            "protocol": self.protocol,
            "pairAddress": self.pair_address,
            "executedAt": self.executed_at.isoformat(),
        }


@dataclass(slots=True)
class SwapResult:
    transaction_hash: str
    receipt: TransactionReceipt
    pay_amount: str
    receive_amount: str
    approval_hash: str | None = None
    balances: list[BalanceSnapshot] = field(default_factory=list)
    record_saved: bool = False


__all__ = [
    "BalanceSnapshot",
    "Quote",
    "QuoteState",
    "SwapIntent",
    "SwapResult",
    "SwapTransaction",
    "TradeRecord",
    "TransactionReceipt",
]
