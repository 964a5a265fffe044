from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..clients import get_balance_service, get_decimals_resolver, get_geckoterminal_client, get_zeroex_client
from ..config import Settings, get_settings
from ..indicators import IndicatorOverlay, IndicatorParams, IndicatorService
from ..market_data.geckoterminal import GeckoTerminalClient, GeckoTerminalError
from ..market_data.models import Candle
from ..market_data.timeframes import TIMEFRAMES
from ..metrics import get_swap_confirmation_latency_stats
from ..providers.rpc import JsonRpcError
from ..providers.zeroex import ZeroExClient, ZeroExError
from ..swap.balances import BalanceService
from ..swap.quote_flow import QuoteFlow
from ..swap.tokens import TokenDecimalsResolver
from ..swap.units import format_token_amount, from_base_units

router = APIRouter()


def _to_camel_case(snake_str: str) -> str:
    components = snake_str.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def _convert_keys_to_camel(data: Any) -> Any:
    if isinstance(data, dict):
        return {_to_camel_case(k): _convert_keys_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_convert_keys_to_camel(item) for item in data]
    return data


class CandlePayload(BaseModel):
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None


class IndicatorRequest(BaseModel):
    candles: list[CandlePayload]
    timeframe: str = "1d"
    moving_average_period: int = Field(default=20, ge=1)
    rsi_period: int = Field(default=14, ge=1)
    show_sma: bool = False
    show_ema: bool = False
    show_vwap: bool = False
    show_rsi: bool = False
    show_volume: bool = True
    y_axis_mode: str = "price"
    current_price: float | None = None
    current_market_cap: float | None = None


def _serialize_overlay(overlay: IndicatorOverlay) -> dict[str, Any]:
    return _convert_keys_to_camel(asdict(overlay))


def _require(value: str | None, name: str) -> str:
    if not value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Missing required parameter: {name}")
    return value


def _require_base_units(value: str | None, name: str) -> int:
    raw = _require(value, name)
    try:
        amount = int(raw)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{name} must be an integer") from exc
    if amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{name} must be positive")
    return amount


def _upstream_error(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get("/health", summary="Service health check")
def health(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    return {
        "service": settings.service_name,
        "status": "ok",
        "chainId": settings.chain_id,
        "time": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ohlcv", summary="Normalized OHLCV candles for a pool")
async def get_ohlcv(
    pool: str | None = None,
    tf: str = "1h",
    limit: int | None = Query(default=None, ge=1, le=1000),
    client: GeckoTerminalClient = Depends(get_geckoterminal_client),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    pool_address = _require(pool, "pool")
    if tf not in TIMEFRAMES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported timeframe: {tf}")
    try:
        candles = await client.fetch_ohlcv(pool_address, tf, limit=limit or settings.ohlcv_limit)
    except (GeckoTerminalError, httpx.HTTPError) as exc:
        raise _upstream_error(exc) from exc
    return {"pool": pool_address, "timeframe": tf, "candles": [candle.as_dict() for candle in candles]}


@router.post("/indicators", summary="Compute chart overlays for a candle series")
def compute_indicators(payload: IndicatorRequest) -> dict[str, Any]:
    if payload.y_axis_mode not in ("price", "marketCap"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="yAxisMode must be price or marketCap")
    candles = [Candle(**candle.model_dump()) for candle in payload.candles]
    params = IndicatorParams(**payload.model_dump(exclude={"candles"}))
    overlay = IndicatorService().compute(candles, params)
    return _serialize_overlay(overlay)


@router.get("/price", summary="Indicative 0x price (proxy)")
async def get_price(
    sell_token: str | None = Query(default=None, alias="sellToken"),
    buy_token: str | None = Query(default=None, alias="buyToken"),
    sell_amount: str | None = Query(default=None, alias="sellAmount"),
    taker: str | None = None,
    client: ZeroExClient = Depends(get_zeroex_client),
) -> dict[str, Any]:
    try:
        return await client.fetch_price(
            sell_token=_require(sell_token, "sellToken"),
            buy_token=_require(buy_token, "buyToken"),
            sell_amount=_require_base_units(sell_amount, "sellAmount"),
            taker=taker,
        )
    except (ZeroExError, httpx.HTTPError) as exc:
        raise _upstream_error(exc) from exc


@router.get("/quote", summary="Firm 0x quote with transaction data (proxy)")
async def get_quote(
    sell_token: str | None = Query(default=None, alias="sellToken"),
    buy_token: str | None = Query(default=None, alias="buyToken"),
    sell_amount: str | None = Query(default=None, alias="sellAmount"),
    taker: str | None = None,
    slippage_bps: int | None = Query(default=None, alias="slippageBps", ge=0, le=10_000),
    client: ZeroExClient = Depends(get_zeroex_client),
) -> dict[str, Any]:
    try:
        return await client.fetch_quote(
            sell_token=_require(sell_token, "sellToken"),
            buy_token=_require(buy_token, "buyToken"),
            sell_amount=_require_base_units(sell_amount, "sellAmount"),
            taker=_require(taker, "taker"),
            slippage_bps=slippage_bps,
        )
    except (ZeroExError, httpx.HTTPError) as exc:
        raise _upstream_error(exc) from exc


@router.get("/swap/preview", summary="Human-readable receive amount for a pay amount")
async def preview_swap(
    sell_token: str | None = Query(default=None, alias="sellToken"),
    buy_token: str | None = Query(default=None, alias="buyToken"),
    amount: str | None = None,
    client: ZeroExClient = Depends(get_zeroex_client),
    decimals: TokenDecimalsResolver = Depends(get_decimals_resolver),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    flow = QuoteFlow(client, decimals, settings=settings)
    quote = await flow.fetch(_require(sell_token, "sellToken"), _require(buy_token, "buyToken"), _require(amount, "amount"))
    if quote is None:
        if flow.last_error:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=flow.last_error)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Enter a valid amount")
    return {
        "payAmount": quote.pay_amount,
        "receiveAmount": quote.receive_amount,
        "sellAmount": str(quote.sell_amount),
        "buyAmount": str(quote.buy_amount),
        "expiresAt": quote.expires_at,
        "secondsRemaining": flow.seconds_remaining(),
    }


@router.get("/swap/latency", summary="Swap confirmation latency stats")
async def get_swap_latency() -> dict[str, object]:
    stats = get_swap_confirmation_latency_stats()
    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No latency samples yet")
    return {"stats": stats}


@router.get("/balance", summary="Wallet balance of a token")
async def get_balance(
    wallet: str | None = None,
    token: str | None = None,
    balances: BalanceService = Depends(get_balance_service),
    decimals: TokenDecimalsResolver = Depends(get_decimals_resolver),
) -> dict[str, Any]:
    wallet_address = _require(wallet, "wallet")
    token_address = _require(token, "token")
    try:
        snapshot = await balances.fetch(wallet_address, token_address)
        token_decimals = await decimals.resolve(token_address)
    except JsonRpcError as exc:
        raise _upstream_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {
        "wallet": wallet_address,
        "token": token_address,
        "amount": str(snapshot.amount),
        "decimals": token_decimals,
        "formatted": format_token_amount(from_base_units(snapshot.amount, token_decimals)),
    }
