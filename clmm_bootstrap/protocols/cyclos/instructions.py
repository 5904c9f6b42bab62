"""
Cyclos CLMM Instruction Builders

One builder per program entry point the bootstrap sequences. Instruction data
is the Anchor discriminator followed by Borsh (little-endian) arguments;
account order follows the program's account structs.
"""

import struct
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from solders.instruction import Instruction

from .constants import (
    TOKEN_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    RENT_SYSVAR_ID,
    DISCRIMINATORS,
)
from ...types.account import DerivedAddress, PositionAccounts


def _meta(address: str, is_signer: bool = False, is_writable: bool = False):
    from solders.pubkey import Pubkey
    from solders.instruction import AccountMeta

    return AccountMeta(Pubkey.from_string(address), is_signer=is_signer, is_writable=is_writable)


def _program(address: str):
    from solders.pubkey import Pubkey

    return Pubkey.from_string(address)


def build_enable_fee_amount_instruction(
    owner: str,
    accounts: PositionAccounts,
    fee: int,
    tick_spacing: int,
) -> "Instruction":
    """
    Register a fee tier and its tick spacing with the factory

    The program only accepts this from the factory owner.

    Args:
        owner: Factory owner (signer, pays rent)
        accounts: Derived accounts of the request
        fee: Fee in hundredths of a bip
        tick_spacing: Spacing paired with the fee

    Returns:
        enable_fee_amount instruction
    """
    from solders.instruction import Instruction

    # Format: discriminator + fee_state_bump(u8) + fee(u32) + tick_spacing(u16)
    data = bytearray(DISCRIMINATORS["enable_fee_amount"])
    data.extend(struct.pack("<B", accounts.fee_state.bump))
    data.extend(struct.pack("<I", fee))
    data.extend(struct.pack("<H", tick_spacing))

    metas = [
        _meta(owner, is_signer=True, is_writable=True),              # 0: owner
        _meta(accounts.factory.address),                             # 1: factory_state
        _meta(accounts.fee_state.address, is_writable=True),         # 2: fee_state
        _meta(SYSTEM_PROGRAM_ID),                                    # 3: system_program
    ]
    return Instruction(_program(accounts.program_id), bytes(data), metas)


def build_create_and_init_pool_instruction(
    pool_creator: str,
    accounts: PositionAccounts,
    sqrt_price_x32: int,
) -> "Instruction":
    """
    Create the pool state, its first observation and both token vaults

    Args:
        pool_creator: Payer (signer)
        accounts: Derived accounts of the request
        sqrt_price_x32: Starting sqrt price (token1 per token0) in Q32.32

    Returns:
        create_and_init_pool instruction
    """
    from solders.instruction import Instruction

    # Format: discriminator + pool_state_bump(u8) + observation_state_bump(u8) + sqrt_price_x32(u64)
    data = bytearray(DISCRIMINATORS["create_and_init_pool"])
    data.extend(struct.pack("<B", accounts.pool.bump))
    data.extend(struct.pack("<B", accounts.initial_observation.bump))
    data.extend(struct.pack("<Q", sqrt_price_x32))

    metas = [
        _meta(pool_creator, is_signer=True, is_writable=True),              # 0: pool_creator
        _meta(accounts.token0),                                             # 1: token_0
        _meta(accounts.token1),                                             # 2: token_1
        _meta(accounts.fee_state.address),                                  # 3: fee_state
        _meta(accounts.pool.address, is_writable=True),                     # 4: pool_state
        _meta(accounts.initial_observation.address, is_writable=True),      # 5: initial_observation_state
        _meta(accounts.vault0.address, is_writable=True),                   # 6: vault_0
        _meta(accounts.vault1.address, is_writable=True),                   # 7: vault_1
        _meta(SYSTEM_PROGRAM_ID),                                           # 8: system_program
        _meta(RENT_SYSVAR_ID),                                              # 9: rent
        _meta(TOKEN_PROGRAM_ID),                                            # 10: token_program
        _meta(ASSOCIATED_TOKEN_PROGRAM_ID),                                 # 11: associated_token_program
    ]
    return Instruction(_program(accounts.program_id), bytes(data), metas)


def build_init_tick_account_instruction(
    signer: str,
    accounts: PositionAccounts,
    tick_state: DerivedAddress,
    tick: int,
) -> "Instruction":
    """Initialise one tick boundary account"""
    from solders.instruction import Instruction

    # Format: discriminator + tick_account_bump(u8) + tick(i32)
    data = bytearray(DISCRIMINATORS["init_tick_account"])
    data.extend(struct.pack("<B", tick_state.bump))
    data.extend(struct.pack("<i", tick))

    metas = [
        _meta(signer, is_signer=True, is_writable=True),    # 0: signer
        _meta(accounts.pool.address),                       # 1: pool_state
        _meta(tick_state.address, is_writable=True),        # 2: tick_state
        _meta(SYSTEM_PROGRAM_ID),                           # 3: system_program
    ]
    return Instruction(_program(accounts.program_id), bytes(data), metas)


def build_init_bitmap_account_instruction(
    signer: str,
    accounts: PositionAccounts,
    bitmap_state: DerivedAddress,
    word_pos: int,
) -> "Instruction":
    """Initialise one tick bitmap word account"""
    from solders.instruction import Instruction

    # Format: discriminator + bitmap_account_bump(u8) + word_pos(i16)
    data = bytearray(DISCRIMINATORS["init_bitmap_account"])
    data.extend(struct.pack("<B", bitmap_state.bump))
    data.extend(struct.pack("<h", word_pos))

    metas = [
        _meta(signer, is_signer=True, is_writable=True),    # 0: signer
        _meta(accounts.pool.address),                       # 1: pool_state
        _meta(bitmap_state.address, is_writable=True),      # 2: bitmap_state
        _meta(SYSTEM_PROGRAM_ID),                           # 3: system_program
    ]
    return Instruction(_program(accounts.program_id), bytes(data), metas)


def build_init_position_account_instruction(
    signer: str,
    accounts: PositionAccounts,
) -> "Instruction":
    """Initialise the core position record held by the factory"""
    from solders.instruction import Instruction

    # Format: discriminator + position_account_bump(u8)
    data = bytearray(DISCRIMINATORS["init_position_account"])
    data.extend(struct.pack("<B", accounts.core_position.bump))

    metas = [
        _meta(signer, is_signer=True, is_writable=True),            # 0: signer
        _meta(accounts.factory.address),                            # 1: recipient
        _meta(accounts.pool.address),                               # 2: pool_state
        _meta(accounts.tick_lower.address),                         # 3: tick_lower_state
        _meta(accounts.tick_upper.address),                         # 4: tick_upper_state
        _meta(accounts.core_position.address, is_writable=True),    # 5: position_state
        _meta(SYSTEM_PROGRAM_ID),                                   # 6: system_program
    ]
    return Instruction(_program(accounts.program_id), bytes(data), metas)


def build_mint_tokenized_position_instruction(
    minter: str,
    accounts: PositionAccounts,
    latest_observation: DerivedAddress,
    next_observation: DerivedAddress,
    amount0_desired: int,
    amount1_desired: int,
    amount0_min: int,
    amount1_min: int,
    deadline: int,
) -> "Instruction":
    """
    Mint the tokenized position NFT and deposit liquidity

    The NFT mint must sign the transaction alongside the minter.

    Args:
        minter: Payer and recipient of the position NFT
        accounts: Derived accounts of the request
        latest_observation: Observation at the pool's current index
        next_observation: Observation at the next ring slot
        amount0_desired: Desired token0 deposit
        amount1_desired: Desired token1 deposit
        amount0_min: Minimum token0 deposit
        amount1_min: Minimum token1 deposit
        deadline: Unix timestamp after which the program rejects the mint

    Returns:
        mint_tokenized_position instruction
    """
    from solders.instruction import Instruction

    # Format: discriminator + bump(u8) + amount0_desired(u64) + amount1_desired(u64)
    #         + amount0_min(u64) + amount1_min(u64) + deadline(i64)
    data = bytearray(DISCRIMINATORS["mint_tokenized_position"])
    data.extend(struct.pack("<B", accounts.tokenized_position.bump))
    data.extend(struct.pack("<Q", amount0_desired))
    data.extend(struct.pack("<Q", amount1_desired))
    data.extend(struct.pack("<Q", amount0_min))
    data.extend(struct.pack("<Q", amount1_min))
    data.extend(struct.pack("<q", deadline))

    metas = [
        _meta(minter, is_signer=True, is_writable=True),                    # 0: minter
        _meta(minter),                                                      # 1: recipient
        _meta(accounts.factory.address, is_writable=True),                  # 2: factory_state
        _meta(accounts.nft_mint, is_signer=True, is_writable=True),         # 3: nft_mint
        _meta(accounts.nft_account.address, is_writable=True),              # 4: nft_account
        _meta(accounts.pool.address, is_writable=True),                     # 5: pool_state
        _meta(accounts.core_position.address, is_writable=True),            # 6: core_position_state
        _meta(accounts.tick_lower.address, is_writable=True),               # 7: tick_lower_state
        _meta(accounts.tick_upper.address, is_writable=True),               # 8: tick_upper_state
        _meta(accounts.bitmap_lower.address, is_writable=True),             # 9: bitmap_lower_state
        _meta(accounts.bitmap_upper.address, is_writable=True),             # 10: bitmap_upper_state
        _meta(accounts.owner_token0.address, is_writable=True),             # 11: token_account_0
        _meta(accounts.owner_token1.address, is_writable=True),             # 12: token_account_1
        _meta(accounts.vault0.address, is_writable=True),                   # 13: vault_0
        _meta(accounts.vault1.address, is_writable=True),                   # 14: vault_1
        _meta(latest_observation.address, is_writable=True),                # 15: latest_observation_state
        _meta(next_observation.address, is_writable=True),                  # 16: next_observation_state
        _meta(accounts.tokenized_position.address, is_writable=True),       # 17: tokenized_position_state
        _meta(accounts.program_id),                                         # 18: core_program
        _meta(SYSTEM_PROGRAM_ID),                                           # 19: system_program
        _meta(RENT_SYSVAR_ID),                                              # 20: rent
        _meta(TOKEN_PROGRAM_ID),                                            # 21: token_program
        _meta(ASSOCIATED_TOKEN_PROGRAM_ID),                                 # 22: associated_token_program
    ]
    return Instruction(_program(accounts.program_id), bytes(data), metas)
