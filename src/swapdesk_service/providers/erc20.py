from __future__ import annotations

DECIMALS_SELECTOR = "0x313ce567"
BALANCE_OF_SELECTOR = "0x70a08231"
APPROVE_SELECTOR = "0x095ea7b3"

MAX_UINT256 = 2**256 - 1


def _encode_address(address: str) -> str:
    raw = address.lower().removeprefix("0x")
    if len(raw) != 40:
        raise ValueError(f"Invalid address: {address}")
    return raw.rjust(64, "0")


def _encode_uint(value: int) -> str:
    if value < 0 or value > MAX_UINT256:
        raise ValueError("uint256 out of range")
    return format(value, "064x")


def encode_decimals() -> str:
    return DECIMALS_SELECTOR


def encode_balance_of(owner: str) -> str:
    return BALANCE_OF_SELECTOR + _encode_address(owner)


def encode_approve(spender: str, amount: int = MAX_UINT256) -> str:
    return APPROVE_SELECTOR + _encode_address(spender) + _encode_uint(amount)


def decode_uint(result: str | None) -> int:
    if not result or result == "0x":
        return 0
    return int(result, 16)


__all__ = [
    "MAX_UINT256",
    "encode_approve",
    "encode_balance_of",
    "encode_decimals",
    "decode_uint",
]
