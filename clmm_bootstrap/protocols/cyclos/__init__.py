"""
Cyclos CLMM Protocol Bindings

Account derivation, tick math and instruction builders for the Cyclos core
program (a Solana port of Uniswap v3 with Q32.32 prices).
"""

from .constants import (
    CYCLOS_CORE_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    FEE_TIERS,
    MIN_TICK,
    MAX_TICK,
    DISCRIMINATORS,
)
from .math import (
    word_position,
    bit_position,
    validate_tick,
    validate_range,
    tick_to_sqrt_price_x32,
    price_to_sqrt_price_x32,
    get_amounts_from_liquidity,
    get_liquidity_from_amounts,
    apply_slippage,
)
from .pda import (
    order_pair,
    derive_address,
    derive_factory_state,
    derive_fee_state,
    derive_pool_state,
    derive_observation_state,
    derive_tick_state,
    derive_bitmap_state,
    derive_core_position,
    derive_tokenized_position,
    derive_associated_token_address,
    derive_position_accounts,
)
from .state_parser import PoolSnapshot, parse_pool_state, decode_account_data

__all__ = [
    # Constants
    "CYCLOS_CORE_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "FEE_TIERS",
    "MIN_TICK",
    "MAX_TICK",
    "DISCRIMINATORS",
    # Math
    "word_position",
    "bit_position",
    "validate_tick",
    "validate_range",
    "tick_to_sqrt_price_x32",
    "price_to_sqrt_price_x32",
    "get_amounts_from_liquidity",
    "get_liquidity_from_amounts",
    "apply_slippage",
    # Derivation
    "order_pair",
    "derive_address",
    "derive_factory_state",
    "derive_fee_state",
    "derive_pool_state",
    "derive_observation_state",
    "derive_tick_state",
    "derive_bitmap_state",
    "derive_core_position",
    "derive_tokenized_position",
    "derive_associated_token_address",
    "derive_position_accounts",
    # State
    "PoolSnapshot",
    "parse_pool_state",
    "decode_account_data",
]
