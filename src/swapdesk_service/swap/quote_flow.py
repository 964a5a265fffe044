from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable

import httpx

from ..config import Settings, get_settings
from ..observability import record_quote_fetch
from ..providers.zeroex import ZeroExClient, ZeroExError
from ..schedulers.timers import Debouncer, PeriodicTask
from .errors import QuoteExpiredError, QuoteUnavailableError
from .models import Quote, QuoteState
from .tokens import TokenDecimalsResolver
from .units import format_token_amount, from_base_units, parse_amount, to_base_units

logger = logging.getLogger("swapdesk.swap.quote_flow")

Clock = Callable[[], float]


class QuoteFlow:
    """
    Indicative price quoting for the swap panel.

    Inputs are the sell token, buy token and the human-readable pay amount.
    ``set_pay_amount`` and ``set_tokens`` reset the quote to ``idle`` and
    schedule a debounced refetch; responses that arrive after the inputs have
    changed again are dropped.
    """

    def __init__(
        self,
        zeroex: ZeroExClient,
        decimals: TokenDecimalsResolver,
        *,
        settings: Settings | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        self._zeroex = zeroex
        self._decimals = decimals
        self._clock = clock
        self._debouncer = Debouncer(self._settings.quote_debounce_seconds, name="quote-debounce")
        self._generation = 0
        self.sell_token: str | None = None
        self.buy_token: str | None = None
        self.pay_amount: str = ""
        self.state = QuoteState.IDLE
        self.quote: Quote | None = None
        self.last_error: str | None = None

    @property
    def receive_amount(self) -> str | None:
        return self.quote.receive_amount if self.quote else None

    @property
    def expires_at(self) -> float | None:
        return self.quote.expires_at if self.quote else None

    def set_tokens(self, sell_token: str, buy_token: str) -> None:
        if (sell_token, buy_token) == (self.sell_token, self.buy_token):
            return
        self.sell_token = sell_token
        self.buy_token = buy_token
        self._invalidate()
        self._schedule()

    def set_pay_amount(self, pay_amount: str) -> None:
        if pay_amount == self.pay_amount:
            return
        self.pay_amount = pay_amount
        self._invalidate()
        self._schedule()

    async def wait_for_pending(self) -> Quote | None:
        return await self._debouncer.wait()

    async def refresh(self) -> Quote | None:
        if not self.sell_token or not self.buy_token:
            self._clear()
            return None
        return await self.fetch(self.sell_token, self.buy_token, self.pay_amount)

    async def fetch(self, sell_token: str, buy_token: str, pay_amount: str) -> Quote | None:
        """Fetch an indicative quote. Returns ``None`` when no quote could be produced."""

        if (sell_token, buy_token, pay_amount) != (self.sell_token, self.buy_token, self.pay_amount):
            self.sell_token, self.buy_token, self.pay_amount = sell_token, buy_token, pay_amount
            self._invalidate()

        amount = parse_amount(pay_amount)
        if amount is None or sell_token.lower() == buy_token.lower():
            self._clear()
            record_quote_fetch("empty")
            return None

        generation = self._generation
        self.state = QuoteState.FETCHING
        self.last_error = None
        try:
            sell_decimals = await self._decimals.resolve(sell_token)
            buy_decimals = await self._decimals.resolve(buy_token)
            sell_amount = to_base_units(amount, sell_decimals)
            payload = await self._zeroex.fetch_price(
                sell_token=sell_token,
                buy_token=buy_token,
                sell_amount=sell_amount,
            )
            quote = self._build_quote(payload, sell_token, buy_token, pay_amount, sell_amount, buy_decimals)
        except (ZeroExError, httpx.HTTPError, KeyError, ValueError, TypeError) as exc:
            if generation != self._generation:
                record_quote_fetch("discarded")
                return None
            logger.warning("Quote fetch failed for %s -> %s (%s): %s", sell_token, buy_token, pay_amount, exc)
            self._clear()
            self.last_error = QuoteUnavailableError.user_message
            record_quote_fetch("failure")
            return None

        if generation != self._generation:
            logger.debug("Discarding stale quote for %s -> %s (%s)", sell_token, buy_token, pay_amount)
            record_quote_fetch("discarded")
            return None

        self.quote = quote
        self.state = QuoteState.QUOTED
        record_quote_fetch("success")
        logger.debug(
            "Quote %s %s -> %s %s, expires at %.0f",
            pay_amount,
            sell_token,
            quote.receive_amount,
            buy_token,
            quote.expires_at,
        )
        return quote

    def check_expiry(self) -> bool:
        """Move a quoted flow to ``expired`` once its TTL has passed."""

        if self.state is QuoteState.QUOTED and self.quote and self.quote.is_expired(self._clock()):
            self.state = QuoteState.EXPIRED
            logger.info("Quote for %s -> %s expired", self.sell_token, self.buy_token)
        return self.state is QuoteState.EXPIRED

    def seconds_remaining(self) -> int:
        if self.quote is None:
            return 0
        return max(0, math.floor(self.quote.expires_at - self._clock()))

    def require_valid_quote(self) -> Quote:
        if self.check_expiry():
            raise QuoteExpiredError()
        if self.quote is None or self.state is not QuoteState.QUOTED:
            raise QuoteUnavailableError()
        return self.quote

    def close(self) -> None:
        self._debouncer.cancel()

    def _build_quote(
        self,
        payload: dict[str, Any],
        sell_token: str,
        buy_token: str,
        pay_amount: str,
        sell_amount: int,
        buy_decimals: int,
    ) -> Quote:
        if not isinstance(payload, dict):
            raise TypeError("price response is not an object")
        if not payload.get("buyAmount"):
            raise ValueError("price response has no buyAmount")
        buy_amount = int(payload["buyAmount"])
        ttl = payload.get("expiresInSeconds") or self._settings.quote_default_ttl_seconds
        return Quote(
            sell_token=sell_token,
            buy_token=buy_token,
            pay_amount=pay_amount,
            receive_amount=format_token_amount(from_base_units(buy_amount, buy_decimals)),
            sell_amount=sell_amount,
            buy_amount=buy_amount,
            expires_at=self._clock() + float(ttl),
        )

    def _schedule(self) -> None:
        self._debouncer.schedule(self.refresh)

    def _invalidate(self) -> None:
        self._generation += 1
        self._clear()

    def _clear(self) -> None:
        self.quote = None
        self.state = QuoteState.IDLE


class QuoteCountdown:
    """Ticks ``check_expiry`` on a ``QuoteFlow`` once per interval."""

    def __init__(self, flow: QuoteFlow, *, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._flow = flow
        self._task = PeriodicTask(
            self._tick,
            settings.quote_countdown_interval_seconds,
            name="quote-countdown",
            run_immediately=False,
        )

    @property
    def running(self) -> bool:
        return self._task.running

    async def start(self) -> None:
        await self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def _tick(self) -> None:
        self._flow.check_expiry()


__all__ = ["Clock", "QuoteCountdown", "QuoteFlow"]
