from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger("swapdesk.providers.zeroex")

PRICE_PATH = "/swap/allowance-holder/price"
QUOTE_PATH = "/swap/allowance-holder/quote"


class ZeroExError(RuntimeError):
    """Raised when the 0x API rejects a price or quote request."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(slots=True)
class ZeroExConfig:
    base_url: str
    chain_id: int = 8453
    api_key: str | None = None
    fee_recipient: str | None = None
    fee_bps: int | None = None
    timeout_seconds: float = 10.0
    default_slippage_bps: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> "ZeroExConfig":
        return cls(
            base_url=settings.zeroex_base_url.rstrip("/"),
            chain_id=settings.chain_id,
            api_key=settings.zeroex_api_key,
            fee_recipient=settings.zeroex_fee_recipient,
            fee_bps=settings.zeroex_fee_bps,
            timeout_seconds=settings.zeroex_timeout_seconds,
            default_slippage_bps=settings.default_slippage_bps,
        )


class ZeroExClient:
    """
    Client for the 0x allowance-holder swap API.

    ``fetch_price`` returns an indicative price (no taker required),
    ``fetch_quote`` returns a firm quote carrying the transaction to sign.
    """

    def __init__(
        self,
        config: ZeroExConfig | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._config = config or ZeroExConfig.from_settings(settings)
        self._headers = {"Accept": "application/json", "0x-version": "v2"}
        if self._config.api_key:
            self._headers["0x-api-key"] = self._config.api_key
        else:
            logger.warning("0x API key not configured; requests may be rate limited or rejected")
        self._client = client or httpx.AsyncClient(timeout=self._config.timeout_seconds)

    @property
    def chain_id(self) -> int:
        return self._config.chain_id

    async def fetch_price(
        self,
        *,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: str | None = None,
        slippage_bps: int | None = None,
    ) -> dict[str, Any]:
        params = self._build_params(sell_token, buy_token, sell_amount, taker, slippage_bps)
        return await self._get(PRICE_PATH, params, label="price")

    async def fetch_quote(
        self,
        *,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: str,
        slippage_bps: int | None = None,
    ) -> dict[str, Any]:
        if not taker:
            raise ZeroExError("A taker address is required for a firm quote")
        params = self._build_params(sell_token, buy_token, sell_amount, taker, slippage_bps)
        return await self._get(QUOTE_PATH, params, label="quote")

    async def close(self) -> None:
        await self._client.aclose()

    def _build_params(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: str | None,
        slippage_bps: int | None,
    ) -> dict[str, str]:
        params = {
            "chainId": str(self._config.chain_id),
            "sellToken": sell_token,
            "buyToken": buy_token,
            "sellAmount": str(sell_amount),
            "slippageBps": str(slippage_bps if slippage_bps is not None else self._config.default_slippage_bps),
        }
        if taker:
            params["taker"] = taker
        if self._config.fee_recipient and self._config.fee_bps:
            params["integratorFeeRecipient"] = self._config.fee_recipient
            params["integratorFeeBps"] = str(self._config.fee_bps)
        return params

    async def _get(self, path: str, params: dict[str, str], *, label: str) -> dict[str, Any]:
        logger.debug("0x %s request: %s", label, params)
        response = await self._client.get(f"{self._config.base_url}{path}", params=params, headers=self._headers)
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            reason = _error_reason(payload) or f"0x API error: {response.status_code}"
            logger.warning("0x %s request failed (%s): %s", label, response.status_code, reason)
            raise ZeroExError(reason, status_code=response.status_code, payload=payload)
        if not isinstance(payload, dict):
            raise ZeroExError(f"0x {label} response was not a JSON object", status_code=response.status_code)
        return payload


def _error_reason(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    if payload.get("reason"):
        return str(payload["reason"])
    errors = payload.get("validationErrors") or []
    if errors and isinstance(errors[0], dict) and errors[0].get("description"):
        return str(errors[0]["description"])
    if payload.get("error"):
        return str(payload["error"])
    return None


__all__ = ["ZeroExClient", "ZeroExConfig", "ZeroExError", "PRICE_PATH", "QUOTE_PATH"]
