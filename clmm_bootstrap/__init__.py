"""
CLMM Bootstrap - Deterministic account derivation and position bootstrap
for the Cyclos concentrated-liquidity program on Solana

Provides:
- Program-derived addresses for every account a position touches
- Batched existence probing and tiered bootstrap planning
- Ordered, size-aware transaction assembly with concurrent-creation recovery
- Tokenized position minting
"""

from .client import ClmmClient
from .types import (
    TokenPairKey,
    FeeTier,
    DerivedAddress,
    PositionAccounts,
    PositionRequest,
    BootstrapPlan,
    Tier,
    TierProgress,
    TierStatus,
    TxResult,
    TxStatus,
    MintResult,
    AddLiquidityResult,
)
from .errors import (
    ClmmError,
    ErrorCode,
    TransportUnavailable,
    InvalidTick,
    InvalidRange,
    InvalidFeeTier,
    DerivationExhausted,
    PlanningBlocked,
    AlreadyExists,
    SlippageExceeded,
    DeadlineExpired,
    PoolUnavailable,
    TransactionError,
    ConfigurationError,
    OperationCancelled,
)
from .modules.assembler import AssemblerConfig, CancellationToken
from .protocols.cyclos.pda import derive_address, derive_position_accounts, order_pair

__version__ = "0.1.0"

__all__ = [
    # Client
    "ClmmClient",
    # Types
    "TokenPairKey",
    "FeeTier",
    "DerivedAddress",
    "PositionAccounts",
    "PositionRequest",
    "BootstrapPlan",
    "Tier",
    "TierProgress",
    "TierStatus",
    "TxResult",
    "TxStatus",
    "MintResult",
    "AddLiquidityResult",
    # Errors
    "ClmmError",
    "ErrorCode",
    "TransportUnavailable",
    "InvalidTick",
    "InvalidRange",
    "InvalidFeeTier",
    "DerivationExhausted",
    "PlanningBlocked",
    "AlreadyExists",
    "SlippageExceeded",
    "DeadlineExpired",
    "PoolUnavailable",
    "TransactionError",
    "ConfigurationError",
    "OperationCancelled",
    # Pipeline
    "AssemblerConfig",
    "CancellationToken",
    "derive_address",
    "derive_position_accounts",
    "order_pair",
]
