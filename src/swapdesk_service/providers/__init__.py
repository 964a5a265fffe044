from .rpc import (
    JsonRpcClient,
    JsonRpcConfig,
    JsonRpcError,
    RpcWalletSigner,
    TransactionReceipt,
    WalletSigner,
)
from .trade_records import HttpTradeRecordStore, TradeRecordConfig, TradeRecordError, TradeRecordStore
from .zeroex import ZeroExClient, ZeroExConfig, ZeroExError

__all__ = [
    "JsonRpcClient",
    "JsonRpcConfig",
    "JsonRpcError",
    "RpcWalletSigner",
    "TransactionReceipt",
    "WalletSigner",
    "HttpTradeRecordStore",
    "TradeRecordConfig",
    "TradeRecordError",
    "TradeRecordStore",
    "ZeroExClient",
    "ZeroExConfig",
    "ZeroExError",
]
