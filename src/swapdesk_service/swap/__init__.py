"""Swap quoting and execution against the 0x API."""

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
from .executor import SwapExecutor
from .models import BalanceSnapshot, Quote, QuoteState, SwapIntent, SwapResult, SwapTransaction, TradeRecord
from .quote_flow import QuoteCountdown, QuoteFlow
from .tokens import TokenDecimalsResolver

__all__ = [
    "BalanceService",
    "BalanceSnapshot",
    "InsufficientBalanceError",
    "InvalidAmountError",
    "Quote",
    "QuoteCountdown",
    "QuoteExpiredError",
    "QuoteFlow",
    "QuoteState",
    "QuoteUnavailableError",
    "SwapError",
    "SwapExecutor",
    "SwapInProgressError",
    "SwapIntent",
    "SwapResult",
    "SwapTransaction",
    "TokenDecimalsResolver",
    "TradeRecord",
    "TransactionRevertedError",
    "UserRejectedError",
    "WalletNotConnectedError",
]
