"""
Infrastructure layer for the CLMM bootstrap client

Provides:
- RpcClient: HTTP RPC wrapper with retry logic
- Signer: Transaction signing abstraction (local keypair)
- TxBuilder: Transaction assembly, size estimation and sending
- execute_with_retry / CorrelationContext: retry and log tracing helpers
"""

from .rpc import RpcClient, RpcClientConfig
from .solana_signer import (
    Signer,
    LocalSigner,
    create_signer,
)
from .tx_builder import TxBuilder, TxBuilderConfig, estimate_transaction_size
from .retry import (
    CorrelationContext,
    classify_error,
    execute_with_retry,
    get_correlation_id,
    log_with_correlation,
)

__all__ = [
    "RpcClient",
    "RpcClientConfig",
    "Signer",
    "LocalSigner",
    "create_signer",
    "TxBuilder",
    "TxBuilderConfig",
    "estimate_transaction_size",
    "CorrelationContext",
    "classify_error",
    "execute_with_retry",
    "get_correlation_id",
    "log_with_correlation",
]
