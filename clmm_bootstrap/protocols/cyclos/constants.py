"""
Cyclos CLMM Constants

Seeds, program ids and discriminators of the Cyclos core program.
"""

import hashlib
from typing import Dict


def _anchor_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for instruction name"""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:8]


def _anchor_account_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for account name"""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:8]


# Cyclos core program (mainnet)
CYCLOS_CORE_PROGRAM_ID = "cysPXAjehMpVKUapzbMCCnpFxUFFryEWEaLgnb9NrR8"

# Token Program
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# Associated Token Program
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# System Program
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

# Rent Sysvar
RENT_SYSVAR_ID = "SysvarRent111111111111111111111111111111111"

# PDA seed domain tags
FEE_SEED = b"f"
POOL_SEED = b"p"
OBSERVATION_SEED = b"o"
TICK_SEED = b"t"
BITMAP_SEED = b"b"
POSITION_SEED = b"ps"

# Program-derived address limits
PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LEN = 32
MAX_SEEDS = 16  # including the bump
MAX_BUMP = 255

# Tick bounds of the Q32.32 price domain
MIN_TICK = -221818
MAX_TICK = 221818

# Q32 constant for fixed-point math
Q32 = 2 ** 32

MAX_UINT64 = 2 ** 64 - 1

# Ticks tracked per bitmap word
BITMAP_WORD_BITS = 256

# Fee (hundredths of a bip) -> tick spacing
FEE_TIERS: Dict[int, int] = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

# Anchor discriminators for instructions
# Computed as sha256("global:<instruction_name>")[0:8]
DISCRIMINATORS = {
    "enable_fee_amount": _anchor_discriminator("enable_fee_amount"),
    "create_and_init_pool": _anchor_discriminator("create_and_init_pool"),
    "init_tick_account": _anchor_discriminator("init_tick_account"),
    "init_bitmap_account": _anchor_discriminator("init_bitmap_account"),
    "init_position_account": _anchor_discriminator("init_position_account"),
    "mint_tokenized_position": _anchor_discriminator("mint_tokenized_position"),
}

# Account discriminators for parsing
ACCOUNT_DISCRIMINATORS = {
    "PoolState": _anchor_account_discriminator("PoolState"),
}
