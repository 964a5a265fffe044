from __future__ import annotations

import logging

from .config import get_settings
from .market_data.geckoterminal import GeckoTerminalClient
from .providers.rpc import JsonRpcClient
from .providers.zeroex import ZeroExClient
from .swap.balances import BalanceService
from .swap.tokens import TokenDecimalsResolver

logger = logging.getLogger("swapdesk.clients")

_zeroex: ZeroExClient | None = None
_geckoterminal: GeckoTerminalClient | None = None
_rpc: JsonRpcClient | None = None
_decimals: TokenDecimalsResolver | None = None


def get_zeroex_client() -> ZeroExClient:
    global _zeroex
    if _zeroex is None:
        _zeroex = ZeroExClient(settings=get_settings())
    return _zeroex


def get_geckoterminal_client() -> GeckoTerminalClient:
    global _geckoterminal
    if _geckoterminal is None:
        _geckoterminal = GeckoTerminalClient(settings=get_settings())
    return _geckoterminal


def get_rpc_client() -> JsonRpcClient:
    global _rpc
    if _rpc is None:
        _rpc = JsonRpcClient(settings=get_settings())
    return _rpc


def get_decimals_resolver() -> TokenDecimalsResolver:
    global _decimals
    if _decimals is None:
        _decimals = TokenDecimalsResolver(get_rpc_client(), settings=get_settings())
    return _decimals


def get_balance_service() -> BalanceService:
    return BalanceService(get_rpc_client(), settings=get_settings())


async def close_clients() -> None:
    global _zeroex, _geckoterminal, _rpc, _decimals
    for client in (_zeroex, _geckoterminal, _rpc):
        if client is not None:
            await client.close()
    _zeroex = _geckoterminal = _rpc = None
    _decimals = None
    logger.debug("Shared HTTP clients closed")


__all__ = [
    "close_clients",
    "get_balance_service",
    "get_decimals_resolver",
    "get_geckoterminal_client",
    "get_rpc_client",
    "get_zeroex_client",
]
