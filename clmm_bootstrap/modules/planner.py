"""
Bootstrap Planner

Turns derived accounts plus their probed existence into a tiered plan of
account-initialisation instructions.

Tiers:
- 0 POOL: fee tier config, pool state (+ first observation and vaults)
- 1 RANGE: tick boundary accounts, bitmap words
- 2 POSITION: core position record
- 3 TOKENIZED: tokenized position mint (deferred to the minting step)
"""

import logging
from typing import Dict, List

from ..errors import PlanningBlocked, PoolUnavailable, ConfigurationError
from ..protocols.cyclos.instructions import (
    build_enable_fee_amount_instruction,
    build_create_and_init_pool_instruction,
    build_init_tick_account_instruction,
    build_init_bitmap_account_instruction,
    build_init_position_account_instruction,
)
from ..protocols.cyclos.math import price_to_sqrt_price_x32
from ..types import (
    BootstrapPlan,
    DerivedAddress,
    InstructionKind,
    PlannedInstruction,
    PositionAccounts,
    PositionRequest,
    ProbeResult,
    Tier,
)

logger = logging.getLogger(__name__)


class BootstrapPlanner:
    """
    Decide which accounts must be created, and in which tier

    Pure with respect to its inputs: the same request, accounts and probe
    results always give the same plan.

    Usage:
        planner = BootstrapPlanner()
        plan = planner.plan(request, accounts, probe.probe(addresses), payer)
    """

    def plan(
        self,
        request: PositionRequest,
        accounts: PositionAccounts,
        existence: Dict[str, ProbeResult],
        payer: str,
    ) -> BootstrapPlan:
        """
        Build the bootstrap plan

        Args:
            request: Validated position request
            accounts: Derived accounts of the request
            existence: Probe results covering accounts.bootstrap_addresses()
            payer: Wallet paying for account creation

        Returns:
            BootstrapPlan with the deferred mint entry last

        Raises:
            PlanningBlocked: Existence of a required account is UNKNOWN
            PoolUnavailable: Factory missing, or pool accounts half-initialised
            ConfigurationError: New pool without a starting price
        """
        self._check_known(accounts, existence)

        def exists(account: DerivedAddress) -> bool:
            return existence[account.address].exists

        if not exists(accounts.factory):
            raise PoolUnavailable.factory_missing(accounts.factory.address)

        pool_accounts = [accounts.initial_observation, accounts.vault0, accounts.vault1]
        pool_exists = exists(accounts.pool)
        if pool_exists and not all(exists(a) for a in (accounts.vault0, accounts.vault1)):
            raise PoolUnavailable.invalid_state(accounts.pool.address, "pool exists but a vault is missing")
        if not pool_exists and any(exists(a) for a in pool_accounts):
            raise PoolUnavailable.invalid_state(
                accounts.pool.address, "pool is absent but its observation or vault accounts exist"
            )

        entries: List[PlannedInstruction] = []
        skipped: List[DerivedAddress] = []
        tick_spacing = request.fee_tier.tick_spacing

        # Tier 0: fee config and pool
        if exists(accounts.fee_state):
            skipped.append(accounts.fee_state)
        else:
            entries.append(PlannedInstruction(
                tier=Tier.POOL,
                kind=InstructionKind.ENABLE_FEE_AMOUNT,
                targets=(accounts.fee_state,),
                depends_on=(accounts.factory,),
                instruction=build_enable_fee_amount_instruction(payer, accounts, request.fee, tick_spacing),
            ))

        if pool_exists:
            skipped.extend([accounts.pool, *pool_accounts])
            if request.start_price is not None:
                logger.debug(f"Pool {accounts.pool.address} exists, ignoring start price {request.start_price}")
        else:
            start_price = request.canonical_start_price()
            if start_price is None:
                raise ConfigurationError.missing("start_price (pool does not exist yet)")
            sqrt_price_x32 = price_to_sqrt_price_x32(start_price)
            entries.append(PlannedInstruction(
                tier=Tier.POOL,
                kind=InstructionKind.CREATE_AND_INIT_POOL,
                targets=(accounts.pool, *pool_accounts),
                depends_on=(accounts.fee_state,),
                instruction=build_create_and_init_pool_instruction(payer, accounts, sqrt_price_x32),
            ))

        # Tier 1: range boundaries
        for tick_state, tick in (
            (accounts.tick_lower, request.tick_lower),
            (accounts.tick_upper, request.tick_upper),
        ):
            if exists(tick_state):
                skipped.append(tick_state)
                continue
            entries.append(PlannedInstruction(
                tier=Tier.RANGE,
                kind=InstructionKind.INIT_TICK_ACCOUNT,
                targets=(tick_state,),
                depends_on=(accounts.pool,),
                instruction=build_init_tick_account_instruction(payer, accounts, tick_state, tick),
            ))

        words = {accounts.bitmap_lower.address: accounts.word_lower, accounts.bitmap_upper.address: accounts.word_upper}
        for bitmap_state in accounts.bitmaps:
            if exists(bitmap_state):
                skipped.append(bitmap_state)
                continue
            entries.append(PlannedInstruction(
                tier=Tier.RANGE,
                kind=InstructionKind.INIT_BITMAP_ACCOUNT,
                targets=(bitmap_state,),
                depends_on=(accounts.pool,),
                instruction=build_init_bitmap_account_instruction(
                    payer, accounts, bitmap_state, words[bitmap_state.address]
                ),
            ))

        # Tier 2: core position
        if exists(accounts.core_position):
            skipped.append(accounts.core_position)
        else:
            entries.append(PlannedInstruction(
                tier=Tier.POSITION,
                kind=InstructionKind.INIT_POSITION_ACCOUNT,
                targets=(accounts.core_position,),
                depends_on=(accounts.pool, accounts.tick_lower, accounts.tick_upper),
                instruction=build_init_position_account_instruction(payer, accounts),
            ))

        # Tier 3: tokenized position, built at mint time
        entries.append(PlannedInstruction(
            tier=Tier.TOKENIZED,
            kind=InstructionKind.MINT_TOKENIZED_POSITION,
            targets=(accounts.tokenized_position,),
            depends_on=(accounts.core_position, *accounts.bitmaps),
        ))

        plan = BootstrapPlan(entries=tuple(entries), creates_pool=not pool_exists, skipped=tuple(skipped))
        logger.info(
            f"Planned {len(plan.bootstrap_entries)} bootstrap instruction(s) "
            f"across tiers {sorted({int(e.tier) for e in plan.bootstrap_entries})}, "
            f"{len(skipped)} account(s) already exist"
        )
        return plan

    @staticmethod
    def _check_known(accounts: PositionAccounts, existence: Dict[str, ProbeResult]) -> None:
        unknown = [
            address for address in accounts.bootstrap_addresses()
            if address not in existence or existence[address].is_unknown
        ]
        if unknown:
            raise PlanningBlocked(unknown)
