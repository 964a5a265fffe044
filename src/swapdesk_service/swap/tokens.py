from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..providers.erc20 import decode_uint, encode_decimals
from ..providers.rpc import JsonRpcClient, JsonRpcError

logger = logging.getLogger("swapdesk.swap.tokens")


class TokenDecimalsResolver:
    """
    Resolves ERC-20 decimals from a known-token table, then ``decimals()``.

    Results (including the fallback for tokens whose call fails) are cached for
    the lifetime of the resolver and never evicted.
    """

    def __init__(self, rpc: JsonRpcClient, *, settings: Settings | None = None) -> None:
        self._rpc = rpc
        self._settings = settings or get_settings()
        self._default = self._settings.default_token_decimals
        self._known = {address.lower(): value for address, value in self._settings.known_token_decimals.items()}
        self._native = self._settings.native_token_address.lower()
        self._cache: dict[str, int] = {}

    def cached(self, token_address: str) -> int | None:
        return self._cache.get(token_address.lower())

    async def resolve(self, token_address: str) -> int:
        address = token_address.lower()
        if address in self._cache:
            return self._cache[address]
        if address == self._native:
            decimals = 18
        elif address in self._known:
            decimals = self._known[address]
        else:
            decimals = await self._fetch_on_chain(address)
        self._cache[address] = decimals
        return decimals

    async def _fetch_on_chain(self, address: str) -> int:
        try:
            result = await self._rpc.eth_call(address, encode_decimals())
            if not result or result == "0x":
                raise ValueError("empty decimals() result")
            decimals = decode_uint(result)
        except (JsonRpcError, ValueError) as exc:
            logger.warning("Failed to fetch decimals for %s, defaulting to %s: %s", address, self._default, exc)
            return self._default
        if decimals > 255:
            logger.warning("Implausible decimals %s for %s, defaulting to %s", decimals, address, self._default)
            return self._default
        logger.debug("Fetched decimals for %s: %s", address, decimals)
        return decimals


__all__ = ["TokenDecimalsResolver"]
