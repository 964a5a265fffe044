from __future__ import annotations


class SwapError(RuntimeError):
    """Base class for failures surfaced to the user during a swap."""

    user_message = "Swap failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class InvalidAmountError(SwapError):
    user_message = "Enter a valid amount"


class WalletNotConnectedError(SwapError):
    user_message = "Connect a wallet to swap"


class QuoteUnavailableError(SwapError):
    user_message = "Unable to get price quote - try a different token pair or amount"


class QuoteExpiredError(SwapError):
    user_message = "Quote expired - refresh the price and try again"


class SwapInProgressError(SwapError):
    user_message = "A swap is already in progress"


class InsufficientBalanceError(SwapError):
    user_message = "Insufficient balance for this swap"

    def __init__(self, token_address: str, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient balance of {token_address}: have {available}, need {required} (base units)"
        )
        self.token_address = token_address
        self.required = required
        self.available = available


class TransactionRevertedError(SwapError):
    user_message = "Transaction failed on-chain"

    def __init__(self, tx_hash: str, status: int | None) -> None:
        super().__init__(
            f"Transaction {tx_hash} was mined with status {status}; it may have reverted "
            "due to insufficient liquidity or slippage"
        )
        self.tx_hash = tx_hash
        self.status = status


class UserRejectedError(SwapError):
    user_message = "Transaction was rejected by user"


__all__ = [
    "SwapError",
    "InvalidAmountError",
    "WalletNotConnectedError",
    "QuoteUnavailableError",
    "QuoteExpiredError",
    "SwapInProgressError",
    "InsufficientBalanceError",
    "TransactionRevertedError",
    "UserRejectedError",
]
