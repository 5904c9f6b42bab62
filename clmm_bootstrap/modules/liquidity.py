"""
Liquidity Module

The add-liquidity surface: validate, derive, probe, plan, bootstrap, mint.
"""

import logging
from typing import Callable, List, Optional, Tuple, TYPE_CHECKING

from solders.keypair import Keypair

if TYPE_CHECKING:
    from ..client import ClmmClient

from ..config import config
from ..errors import ClmmError, PlanningBlocked
from ..infra.retry import CorrelationContext
from ..protocols.cyclos.pda import derive_position_accounts
from ..types import (
    AddLiquidityResult,
    BootstrapPlan,
    PositionAccounts,
    PositionRequest,
    Tier,
    TierProgress,
    TierStatus,
)
from .assembler import CancellationToken, TransactionAssembler
from .minting import PositionMinter
from .planner import BootstrapPlanner
from .probe import ExistenceProbe

logger = logging.getLogger(__name__)


class LiquidityModule:
    """
    Open concentrated-liquidity positions, creating any missing accounts first

    Usage:
        request = PositionRequest.create(token_a, token_b, 500, -100, 100, 10**9, 10**9)
        result = client.lp.add_liquidity(request, on_progress=print)
        if result.is_success:
            print(result.position_id)
    """

    def __init__(self, client: "ClmmClient"):
        """
        Args:
            client: ClmmClient instance
        """
        self._client = client
        self._rpc = client.rpc
        self._tx_builder = client.tx_builder
        self._probe = ExistenceProbe(self._rpc)
        self._planner = BootstrapPlanner()
        self._assembler = TransactionAssembler(self._tx_builder, self._probe, config=client.assembler_config)
        self._minter = PositionMinter(self._rpc, self._assembler, self._tx_builder)

    @property
    def owner(self) -> str:
        """Wallet paying for and receiving the position"""
        return self._client.pubkey

    @property
    def assembler(self) -> TransactionAssembler:
        return self._assembler

    def prepare(self, request: PositionRequest, nft_mint: Keypair) -> Tuple[PositionAccounts, BootstrapPlan]:
        """
        Derive, probe and plan without sending anything

        Re-probes up to config.probe.max_attempts times while any address
        stays UNKNOWN.

        Raises:
            PlanningBlocked: Existence still unknown after the last attempt
        """
        request.validate()
        accounts = derive_position_accounts(
            request.token_a,
            request.token_b,
            request.fee,
            request.tick_lower,
            request.tick_upper,
            owner=self.owner,
            nft_mint=nft_mint.pubkey(),
            program_id=self._client.program_id,
        )

        attempts = max(1, config.probe.max_attempts)
        for attempt in range(attempts):
            existence = self._probe.probe(accounts.bootstrap_addresses())
            try:
                return accounts, self._planner.plan(request, accounts, existence, self.owner)
            except PlanningBlocked as e:
                if attempt == attempts - 1:
                    raise
                logger.warning(f"Planning blocked ({attempt + 1}/{attempts}), probing again: {e}")

    def add_liquidity(
        self,
        request: PositionRequest,
        on_progress: Optional[Callable[[TierProgress], None]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> AddLiquidityResult:
        """
        Bootstrap every missing account and mint the position

        Errors are returned in the result, never raised. committed_tiers lists
        every tier confirmed before the failure; those accounts stay on-chain
        and a retry of the same request skips them.

        Args:
            request: Position request
            on_progress: Called once per tier as it completes
            cancel: Cooperative cancel, checked between bundles and before minting

        Returns:
            AddLiquidityResult
        """
        progress: List[TierProgress] = []

        def record(event: TierProgress):
            progress.append(event)
            if on_progress is not None:
                on_progress(event)

        def signatures() -> List[str]:
            return [s for p in progress for s in p.signatures]

        with CorrelationContext("add_liquidity") as cid:
            logger.info(
                f"[{cid}] add_liquidity {request.token_a}/{request.token_b} fee={request.fee} "
                f"range=[{request.tick_lower}, {request.tick_upper}]"
            )
            try:
                nft_mint = Keypair()
                accounts, plan = self.prepare(request, nft_mint)
                self._assembler.execute(plan, on_progress=record, cancel=cancel)

                if cancel is not None:
                    cancel.raise_if_cancelled([p.tier for p in progress])

                mint = self._minter.mint(request, accounts, nft_mint)
                record(TierProgress(
                    tier=int(Tier.TOKENIZED),
                    status=TierStatus.COMMITTED if mint.signature else TierStatus.RECOVERED,
                    signatures=[mint.signature] if mint.signature else [],
                    created=[accounts.tokenized_position.address],
                ))
            except ClmmError as e:
                logger.error(f"[{cid}] add_liquidity failed after tiers {[p.tier for p in progress]}: {e}")
                return AddLiquidityResult.failed(e, progress=progress, signatures=signatures())

            logger.info(f"[{cid}] Position {mint.position_id} minted, liquidity={mint.liquidity}")
            return AddLiquidityResult.success(mint.position_id, signatures(), progress, mint=mint)
