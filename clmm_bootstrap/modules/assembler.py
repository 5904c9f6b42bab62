"""
Transaction Assembler

Packs a bootstrap plan into transport-sized bundles and submits them tier by
tier, each bundle confirmed before the next one is sent.

Provides:
- AssemblerConfig: per-transaction ceilings and retry settings
- CancellationToken: cooperative cancel between bundles
- TransactionAssembler: assemble() / execute() / submit_bundle()
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..config import config as global_config
from ..errors import (
    AlreadyExists,
    ClmmError,
    ErrorCode,
    OperationCancelled,
    PlanningBlocked,
    SlippageExceeded,
    TransactionError,
    TransportUnavailable,
)
from ..infra import TxBuilder
from ..infra.retry import execute_with_retry, log_with_correlation
from ..types import (
    BootstrapPlan,
    PlannedInstruction,
    Tier,
    TierProgress,
    TierStatus,
    TxBundle,
    TxResult,
)
from .probe import ExistenceProbe

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TierProgress], None]

# Tiers the assembler submits; the tokenized tier belongs to the minting step
BOOTSTRAP_TIERS = (Tier.POOL, Tier.RANGE, Tier.POSITION)


@dataclass
class AssemblerConfig:
    """
    Assembler runtime configuration

    Defaults come from the global config (clmm_bootstrap.config.TxConfig).

    Usage:
        assembler = TransactionAssembler(tx_builder, probe)

        # Force one instruction per transaction
        config = AssemblerConfig(max_instructions_per_tx=1)
        assembler = TransactionAssembler(tx_builder, probe, config=config)
    """
    max_instructions_per_tx: int = None
    max_tx_bytes: int = None
    max_conflict_resubmits: int = None
    max_retries: int = None
    retry_delay: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.max_instructions_per_tx is None:
            self.max_instructions_per_tx = global_config.tx.max_instructions_per_tx
        if self.max_tx_bytes is None:
            self.max_tx_bytes = global_config.tx.max_tx_bytes
        if self.max_conflict_resubmits is None:
            self.max_conflict_resubmits = global_config.tx.max_conflict_resubmits
        if self.max_retries is None:
            self.max_retries = global_config.tx.max_retries
        if self.retry_delay is None:
            self.retry_delay = global_config.tx.retry_delay


class CancellationToken:
    """
    Thread-safe cancel flag checked between bundles

    Cancelling never rolls back confirmed transactions.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, committed_tiers: List[int]):
        if self.is_cancelled:
            raise OperationCancelled(committed_tiers)


@dataclass
class BundleOutcome:
    """
    Result of submitting one bundle

    Attributes:
        bundle: Bundle as last submitted (after pruning)
        result: Last transaction result
        recovered: True when the targets turned out to exist already
        created: Addresses the bundle's own transaction created
        conflicts: Concurrent creations resolved along the way; accounts
            found already existing are listed here, never in created
    """
    bundle: TxBundle
    result: Optional[TxResult] = None
    recovered: bool = False
    created: List[str] = field(default_factory=list)
    conflicts: List[AlreadyExists] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.recovered or (self.result is not None and self.result.is_success)

    @property
    def signature(self) -> Optional[str]:
        if self.result is not None and self.result.is_success:
            return self.result.signature
        return None


class TransactionAssembler:
    """
    Split plan tiers into bundles and submit them in dependency order

    Bundles never mix tiers: every account of tier N is confirmed before any
    instruction of tier N+1 is sent.

    Usage:
        assembler = TransactionAssembler(tx_builder, probe)
        progress = assembler.execute(plan, on_progress=print)
    """

    def __init__(
        self,
        tx_builder: TxBuilder,
        probe: ExistenceProbe,
        config: Optional[AssemblerConfig] = None,
    ):
        self._tx_builder = tx_builder
        self._probe = probe
        self._config = config or AssemblerConfig()

    def _estimate(self, entries: List[PlannedInstruction]) -> int:
        return self._tx_builder.estimate_size([e.instruction for e in entries])

    def pack(self, tier: Tier, entries: List[PlannedInstruction]) -> List[TxBundle]:
        """
        Greedily pack one tier's entries into bundles

        A bundle is closed when adding the next entry would exceed either the
        instruction count or the serialized size ceiling.

        Raises:
            TransactionError: A single entry does not fit the size ceiling
        """
        bundles: List[TxBundle] = []
        current: List[PlannedInstruction] = []
        current_size = 0
        limit = self._config.max_tx_bytes

        for entry in entries:
            candidate = current + [entry]
            size = self._estimate(candidate)
            if len(candidate) <= self._config.max_instructions_per_tx and size <= limit:
                current, current_size = candidate, size
                continue

            if current:
                bundles.append(TxBundle(tier, tuple(current), len(bundles), current_size))
            single_size = self._estimate([entry])
            if single_size > limit:
                raise TransactionError.too_large(single_size, limit)
            current, current_size = [entry], single_size

        if current:
            bundles.append(TxBundle(tier, tuple(current), len(bundles), current_size))
        return bundles

    def assemble(self, plan: BootstrapPlan) -> List[TxBundle]:
        """
        Bundles for every bootstrap tier, in tier order

        The deferred mint entry is left to the minting step.
        """
        bundles: List[TxBundle] = []
        for tier in BOOTSTRAP_TIERS:
            entries = [e for e in plan.tier(tier) if not e.is_deferred]
            bundles.extend(self.pack(tier, entries))
        logger.debug(f"Assembled {len(bundles)} bundle(s) from {len(plan.bootstrap_entries)} instruction(s)")
        return bundles

    def submit_bundle(self, bundle: TxBundle, operation_name: Optional[str] = None) -> BundleOutcome:
        """
        Submit one bundle, recovering from accounts created concurrently

        On failure the bundle's targets are re-probed. If all exist, the
        bundle counts as done. If some exist, those entries are pruned and
        the rest resubmitted, up to max_conflict_resubmits times.

        Returns:
            BundleOutcome; check .committed

        Raises:
            PlanningBlocked: The re-probe could not determine existence
        """
        name = operation_name or f"tier{int(bundle.tier)}_bundle{bundle.sequence}"
        current = bundle
        result: Optional[TxResult] = None
        conflicts: List[AlreadyExists] = []

        for resubmit in range(self._config.max_conflict_resubmits + 1):
            result = execute_with_retry(
                lambda: self._tx_builder.build_and_send(
                    current.instructions,
                    additional_signers=current.signers or None,
                ),
                name,
                max_retries=self._config.max_retries,
                retry_delay=self._config.retry_delay,
            )
            targets = [t.address for t in current.targets]

            if result.is_success:
                log_with_correlation(
                    logging.INFO,
                    f"Confirmed {len(current.entries)} instruction(s): {result.signature}",
                    name,
                    log=logger,
                )
                return BundleOutcome(bundle=current, result=result, created=targets, conflicts=conflicts)

            existence = self._probe.probe(targets)
            unknown = [a for a in targets if existence[a].is_unknown]
            if unknown:
                raise PlanningBlocked(unknown)

            existing = [a for a in targets if existence[a].exists]
            if not existing:
                return BundleOutcome(bundle=current, result=result, conflicts=conflicts)

            conflict = AlreadyExists(existing, signature=result.signature)
            conflicts.append(conflict)
            if len(existing) == len(targets):
                log_with_correlation(
                    logging.INFO,
                    f"{conflict}, treating bundle as done",
                    name,
                    log=logger,
                )
                return BundleOutcome(bundle=current, result=result, recovered=True, conflicts=conflicts)

            current = current.without(set(existing))
            log_with_correlation(
                logging.WARNING,
                f"{conflict}, resubmitting {len(current.entries)} remaining instruction(s)",
                name,
                resubmit + 1,
                self._config.max_conflict_resubmits,
                log=logger,
            )
            if not current.entries:
                return BundleOutcome(bundle=current, result=result, recovered=True, conflicts=conflicts)

        return BundleOutcome(bundle=current, result=result, conflicts=conflicts)

    def error_for(self, outcome: BundleOutcome) -> ClmmError:
        """Exception describing a bundle that could not be committed"""
        result = outcome.result
        if result is None:
            return TransactionError.send_failed("bundle was never submitted")
        if result.error_code == ErrorCode.SLIPPAGE_EXCEEDED.value:
            return SlippageExceeded.on_chain(result.error or "")
        if result.recoverable:
            return TransportUnavailable(
                f"Bundle {outcome.bundle.sequence} of tier {int(outcome.bundle.tier)} failed: {result.error}",
                ErrorCode.RPC_CONNECTION_FAILED,
            )
        return TransactionError(
            result.error or "Transaction failed",
            signature=result.signature,
            logs=result.logs,
        )

    def execute(
        self,
        plan: BootstrapPlan,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[TierProgress]:
        """
        Submit tiers 0-2 of the plan strictly in order

        Args:
            plan: Bootstrap plan
            on_progress: Called once per finished tier
            cancel: Checked before every bundle

        Returns:
            TierProgress for each bootstrap tier

        Raises:
            OperationCancelled: Cancel requested; carries the finished tiers
            TransportUnavailable: Recoverable failure persisted through retries
            TransactionError: Non-recoverable transaction failure
            PlanningBlocked: Re-probe after a failure was inconclusive
        """
        bundles = self.assemble(plan)
        progress: List[TierProgress] = []

        for tier in BOOTSTRAP_TIERS:
            tier_bundles = [b for b in bundles if b.tier == tier]
            signatures: List[str] = []
            created: List[str] = []

            for bundle in tier_bundles:
                if cancel is not None:
                    cancel.raise_if_cancelled([p.tier for p in progress])
                outcome = self.submit_bundle(bundle)
                if not outcome.committed:
                    raise self.error_for(outcome)
                if outcome.signature:
                    signatures.append(outcome.signature)
                created.extend(outcome.created)

            if not tier_bundles:
                status = TierStatus.SATISFIED
            elif signatures:
                status = TierStatus.COMMITTED
            else:
                status = TierStatus.RECOVERED

            event = TierProgress(tier=int(tier), status=status, signatures=signatures, created=created)
            progress.append(event)
            log_with_correlation(logging.INFO, str(event), "bootstrap", log=logger)
            if on_progress is not None:
                on_progress(event)

        return progress
