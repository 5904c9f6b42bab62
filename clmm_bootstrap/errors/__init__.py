"""
Error definitions for the CLMM bootstrap client
"""

from .exceptions import (
    ErrorCode,
    ClmmError,
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
    SignerError,
    ConfigurationError,
    OperationCancelled,
)

__all__ = [
    "ErrorCode",
    "ClmmError",
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
    "SignerError",
    "ConfigurationError",
    "OperationCancelled",
]
