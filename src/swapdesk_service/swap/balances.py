from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..providers.erc20 import decode_uint, encode_balance_of
from ..providers.rpc import JsonRpcClient
from .models import BalanceSnapshot

logger = logging.getLogger("swapdesk.swap.balances")


class BalanceService:
    """Reads wallet balances on demand; nothing is cached."""

    def __init__(self, rpc: JsonRpcClient, *, settings: Settings | None = None) -> None:
        self._rpc = rpc
        self._settings = settings or get_settings()

    def is_native(self, token_address: str) -> bool:
        return token_address.lower() == self._settings.native_token_address.lower()

    async def fetch(self, wallet_address: str, token_address: str) -> BalanceSnapshot:
        if self.is_native(token_address):
            amount = await self._rpc.get_balance(wallet_address)
        else:
            result = await self._rpc.eth_call(token_address, encode_balance_of(wallet_address))
            amount = decode_uint(result)
        logger.debug("Balance of %s in %s: %s", wallet_address, token_address, amount)
        return BalanceSnapshot(wallet_address=wallet_address, token_address=token_address, amount=amount)


__all__ = ["BalanceService"]
