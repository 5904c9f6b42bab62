"""
Type definitions for the CLMM bootstrap client
"""

from .common import TokenPairKey, FeeTier
from .account import (
    AccountRole,
    DerivedAddress,
    AccountState,
    ProbeResult,
    ObservationSlot,
    PositionAccounts,
)
from .plan import Tier, InstructionKind, PlannedInstruction, BootstrapPlan, TxBundle
from .request import PositionRequest
from .result import (
    TxStatus,
    TxResult,
    TierStatus,
    TierProgress,
    MintResult,
    AddLiquidityResult,
)

__all__ = [
    "TokenPairKey",
    "FeeTier",
    "AccountRole",
    "DerivedAddress",
    "AccountState",
    "ProbeResult",
    "ObservationSlot",
    "PositionAccounts",
    "Tier",
    "InstructionKind",
    "PlannedInstruction",
    "BootstrapPlan",
    "TxBundle",
    "PositionRequest",
    "TxStatus",
    "TxResult",
    "TierStatus",
    "TierProgress",
    "MintResult",
    "AddLiquidityResult",
]
