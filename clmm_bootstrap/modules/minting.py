"""
Position Minting

Final tier of the bootstrap: reads the live pool, derives the observation
pair and slippage bounds, then mints the tokenized position.
"""

import logging
import time
from typing import Optional

from solders.keypair import Keypair

from ..config import config
from ..errors import (
    ConfigurationError,
    DeadlineExpired,
    ErrorCode,
    PoolUnavailable,
    SlippageExceeded,
)
from ..infra import RpcClient, TxBuilder
from ..protocols.cyclos.instructions import build_mint_tokenized_position_instruction
from ..protocols.cyclos.math import (
    apply_slippage,
    get_amounts_from_liquidity,
    get_liquidity_from_amounts,
    tick_to_sqrt_price_x32,
)
from ..protocols.cyclos.pda import derive_observation_state
from ..protocols.cyclos.state_parser import PoolSnapshot, decode_account_data, parse_pool_state
from ..types import (
    InstructionKind,
    MintResult,
    ObservationSlot,
    PlannedInstruction,
    PositionAccounts,
    PositionRequest,
    Tier,
    TokenPairKey,
    TxBundle,
    TxResult,
)
from .assembler import TransactionAssembler

logger = logging.getLogger(__name__)


class PositionMinter:
    """
    Mint a tokenized position once tiers 0-2 are on-chain

    Usage:
        minter = PositionMinter(rpc, assembler)
        result = minter.mint(request, accounts, nft_mint_keypair)
    """

    def __init__(self, rpc: RpcClient, assembler: TransactionAssembler, tx_builder: TxBuilder):
        self._rpc = rpc
        self._assembler = assembler
        self._tx_builder = tx_builder

    def read_pool(self, accounts: PositionAccounts) -> PoolSnapshot:
        """
        Fetch and decode the pool state

        Raises:
            PoolUnavailable: Pool missing, unreadable, or not this pair/fee
        """
        address = accounts.pool.address
        account = self._rpc.get_account_info(address)
        data = decode_account_data(account)
        if data is None:
            raise PoolUnavailable.not_found(address)

        snapshot = parse_pool_state(data, address)
        if snapshot.token0 != accounts.token0 or snapshot.token1 != accounts.token1:
            raise PoolUnavailable.invalid_state(
                address, f"pool tokens {snapshot.token0}/{snapshot.token1} do not match the request"
            )
        if snapshot.observation_cardinality_next == 0:
            raise PoolUnavailable.invalid_state(address, "observation cardinality is zero")
        return snapshot

    def mint(
        self,
        request: PositionRequest,
        accounts: PositionAccounts,
        nft_mint: Keypair,
        observation: Optional[ObservationSlot] = None,
        now: Optional[int] = None,
    ) -> MintResult:
        """
        Mint the tokenized position

        Args:
            request: Validated position request
            accounts: Derived accounts (nft_mint must match the keypair)
            nft_mint: Fresh keypair of the position NFT mint
            observation: Observation slot to use instead of the pool's current one
            now: Current unix time (defaults to the wall clock)

        Returns:
            MintResult with position_id set to the NFT mint

        Raises:
            DeadlineExpired: Deadline passed before or during submission
            SlippageExceeded: Implied amounts below the minimums
            PoolUnavailable: Pool missing or unusable
            ConfigurationError: Amounts give zero liquidity
        """
        now = int(time.time()) if now is None else now
        deadline = request.deadline or now + config.trading.default_deadline_seconds
        if now > deadline:
            raise DeadlineExpired(deadline, now)

        if str(nft_mint.pubkey()) != accounts.nft_mint:
            raise ConfigurationError.invalid("nft_mint", "keypair does not match the derived accounts")

        snapshot = self.read_pool(accounts)
        slot = observation or snapshot.observation
        pair = TokenPairKey.order(accounts.token0, accounts.token1)
        latest_observation = derive_observation_state(pair, request.fee, slot.index, accounts.program_id)
        next_observation = derive_observation_state(pair, request.fee, slot.next_index, accounts.program_id)

        amount0_desired, amount1_desired = request.canonical_amounts()
        sqrt_lower = tick_to_sqrt_price_x32(request.tick_lower)
        sqrt_upper = tick_to_sqrt_price_x32(request.tick_upper)
        liquidity = get_liquidity_from_amounts(
            amount0_desired, amount1_desired, snapshot.sqrt_price_x32, sqrt_lower, sqrt_upper
        )
        if liquidity == 0:
            raise ConfigurationError.invalid(
                "amounts", "desired amounts give zero liquidity at the current pool price"
            )

        amount0, amount1 = get_amounts_from_liquidity(liquidity, snapshot.sqrt_price_x32, sqrt_lower, sqrt_upper)
        explicit0, explicit1 = request.canonical_minimums()
        amount0_min = explicit0 if explicit0 is not None else apply_slippage(amount0, request.slippage_bps)
        amount1_min = explicit1 if explicit1 is not None else apply_slippage(amount1, request.slippage_bps)
        if amount0 < amount0_min:
            raise SlippageExceeded.below_minimum(accounts.token0, amount0_min, amount0)
        if amount1 < amount1_min:
            raise SlippageExceeded.below_minimum(accounts.token1, amount1_min, amount1)

        logger.info(
            f"Minting position {accounts.nft_mint}: liquidity={liquidity}, "
            f"amount0={amount0} (min {amount0_min}), amount1={amount1} (min {amount1_min}), "
            f"observation {slot.index}->{slot.next_index}"
        )

        instruction = build_mint_tokenized_position_instruction(
            self._tx_builder.pubkey,
            accounts,
            latest_observation,
            next_observation,
            amount0_desired,
            amount1_desired,
            amount0_min,
            amount1_min,
            deadline,
        )
        entry = PlannedInstruction(
            tier=Tier.TOKENIZED,
            kind=InstructionKind.MINT_TOKENIZED_POSITION,
            targets=(accounts.tokenized_position,),
            depends_on=(accounts.core_position, *accounts.bitmaps),
            instruction=instruction,
            signers=(nft_mint,),
        )
        outcome = self._assembler.submit_bundle(TxBundle(Tier.TOKENIZED, (entry,)), "mint_tokenized_position")

        if not outcome.committed:
            if outcome.result is not None and outcome.result.error_code == ErrorCode.DEADLINE_EXPIRED.value:
                raise DeadlineExpired(deadline, int(time.time()))
            raise self._assembler.error_for(outcome)

        tx_result = outcome.result if outcome.signature else TxResult.skipped("tokenized position already exists")
        return MintResult(
            tx_result=tx_result,
            position_id=accounts.nft_mint,
            liquidity=liquidity,
            amount0=amount0,
            amount1=amount1,
            amount0_min=amount0_min,
            amount1_min=amount1_min,
            observation_index=slot.index,
        )
