"""
Result type definitions for transactions, tier progress and position bootstrap
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from ..errors import ClmmError


class TxStatus(Enum):
    """Transaction status"""
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    PENDING = "pending"
    SKIPPED = "skipped"  # Nothing left to submit (all targets already exist)


@dataclass
class TxResult:
    """
    Transaction execution result

    Attributes:
        status: Transaction status
        signature: Transaction signature (base58)
        error: Error message if failed
        recoverable: Whether the error is recoverable (can retry)
        error_code: Error code for programmatic handling
        slot: Slot number when confirmed
        logs: Transaction logs
    """
    status: TxStatus
    signature: Optional[str] = None
    error: Optional[str] = None
    recoverable: bool = False
    error_code: Optional[str] = None
    slot: Optional[int] = None
    logs: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status == TxStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status == TxStatus.FAILED

    @property
    def is_timeout(self) -> bool:
        return self.status == TxStatus.TIMEOUT

    @property
    def is_skipped(self) -> bool:
        return self.status == TxStatus.SKIPPED

    @classmethod
    def success(cls, signature: str, **kwargs) -> "TxResult":
        """Create successful result"""
        return cls(status=TxStatus.SUCCESS, signature=signature, **kwargs)

    @classmethod
    def failed(cls, error: str, signature: str = None, **kwargs) -> "TxResult":
        """Create failed result"""
        return cls(
            status=TxStatus.FAILED,
            signature=signature,
            error=error,
            **kwargs
        )

    @classmethod
    def timeout(cls, signature: str = None, **kwargs) -> "TxResult":
        """Create timeout result (recoverable - can check on-chain status)"""
        return cls(
            status=TxStatus.TIMEOUT,
            signature=signature,
            error="Transaction confirmation timeout",
            recoverable=True,
            error_code="2003",
            **kwargs
        )

    @classmethod
    def skipped(cls, reason: str = "No action needed", **kwargs) -> "TxResult":
        """Create skipped result (no transaction was needed)"""
        return cls(
            status=TxStatus.SKIPPED,
            signature=None,
            error=reason,
            **kwargs
        )

    def __str__(self) -> str:
        if self.is_success:
            sig_display = f"{self.signature[:16]}..." if self.signature else "no signature"
            return f"TxResult(SUCCESS, {sig_display})"
        return f"TxResult({self.status.value}, error={self.error})"


class TierStatus(Enum):
    """Outcome of one tier"""
    COMMITTED = "committed"   # every bundle confirmed
    SATISFIED = "satisfied"   # nothing to create, accounts already on-chain
    RECOVERED = "recovered"   # a concurrent actor created the targets first


@dataclass
class TierProgress:
    """
    Progress event emitted once per tier

    Attributes:
        tier: Tier number (0-3)
        status: Tier outcome
        signatures: Signatures of the confirmed bundles
        created: Addresses this tier created
    """
    tier: int
    status: TierStatus
    signatures: List[str] = field(default_factory=list)
    created: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"Tier {self.tier}: {self.status.value} ({len(self.signatures)} tx)"


@dataclass
class MintResult:
    """
    Result of the tokenized position mint

    Attributes:
        tx_result: Transaction result
        position_id: Position identifier (the NFT mint address)
        liquidity: Liquidity requested from the program
        amount0: Implied token0 deposit at the mint-time price
        amount1: Implied token1 deposit at the mint-time price
        amount0_min: Minimum token0 the program must accept
        amount1_min: Minimum token1 the program must accept
        observation_index: Observation slot read from the pool
    """
    tx_result: TxResult
    position_id: str
    liquidity: int = 0
    amount0: int = 0
    amount1: int = 0
    amount0_min: int = 0
    amount1_min: int = 0
    observation_index: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.tx_result.is_success

    @property
    def signature(self) -> Optional[str]:
        return self.tx_result.signature


@dataclass
class AddLiquidityResult:
    """
    Outcome of one add-liquidity request

    On failure, committed_tiers still lists every tier confirmed before the
    error. Those accounts stay on-chain and a retry skips them.

    Attributes:
        position_id: NFT mint of the tokenized position (success only)
        signatures: Every confirmed transaction signature in submission order
        committed_tiers: Tiers fully confirmed (or already satisfied)
        progress: Tier progress events in emission order
        error: Error that stopped the pipeline
        mint: Mint step result
    """
    position_id: Optional[str] = None
    signatures: List[str] = field(default_factory=list)
    committed_tiers: List[int] = field(default_factory=list)
    progress: List[TierProgress] = field(default_factory=list)
    error: Optional["ClmmError"] = None
    mint: Optional[MintResult] = None

    @property
    def is_success(self) -> bool:
        return self.error is None and self.position_id is not None

    @classmethod
    def success(
        cls,
        position_id: str,
        signatures: List[str],
        progress: List[TierProgress],
        mint: Optional[MintResult] = None,
    ) -> "AddLiquidityResult":
        return cls(
            position_id=position_id,
            signatures=list(signatures),
            committed_tiers=[p.tier for p in progress],
            progress=list(progress),
            mint=mint,
        )

    @classmethod
    def failed(
        cls,
        error: "ClmmError",
        progress: Optional[List[TierProgress]] = None,
        signatures: Optional[List[str]] = None,
    ) -> "AddLiquidityResult":
        progress = list(progress or [])
        return cls(
            signatures=list(signatures or []),
            committed_tiers=[p.tier for p in progress],
            progress=progress,
            error=error,
        )

    def __str__(self) -> str:
        if self.is_success:
            return f"AddLiquidityResult(SUCCESS, position={self.position_id}, tiers={self.committed_tiers})"
        return f"AddLiquidityResult(FAILED, error={self.error}, tiers={self.committed_tiers})"
