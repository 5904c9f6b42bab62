"""
Cyclos CLMM Address Derivation

Program-derived addresses for every account in a position's account graph.
All functions are pure: equal inputs always give byte-identical addresses.

Provides:
- create_program_address / derive_address: bump search over the seed set
- Seed encoders for fee, tick, bitmap word and observation index
- derive_* helpers for each account role
- derive_position_accounts: the full graph for one request
"""

import hashlib
import struct
from typing import Optional, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from .constants import (
    FEE_SEED,
    POOL_SEED,
    OBSERVATION_SEED,
    TICK_SEED,
    BITMAP_SEED,
    POSITION_SEED,
    PDA_MARKER,
    MAX_SEED_LEN,
    MAX_SEEDS,
    MAX_BUMP,
    TOKEN_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
)
from .math import word_position
from ...errors import ConfigurationError, DerivationExhausted
from ...types.account import AccountRole, DerivedAddress, PositionAccounts
from ...types.common import TokenPairKey, FeeTier


PubkeyLike = Union[str, Pubkey]


def _to_pubkey(value: PubkeyLike) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise ConfigurationError.invalid("address", f"not a base58 public key: {value!r}") from e


def order_pair(token_x: str, token_y: str) -> TokenPairKey:
    """Canonical (primary, secondary) order of two token mints"""
    return TokenPairKey.order(token_x, token_y)


# Seed encoders (big-endian, fixed width, two's complement for signed values)

def fee_seed(fee: int) -> bytes:
    return struct.pack(">I", fee)


def tick_seed(tick: int) -> bytes:
    return struct.pack(">i", tick)


def word_seed(word_pos: int) -> bytes:
    return struct.pack(">h", word_pos)


def observation_seed(index: int) -> bytes:
    return struct.pack(">H", index)


def create_program_address(seeds: Sequence[bytes], program_id: PubkeyLike) -> Optional[Pubkey]:
    """
    Hash a complete seed set (bump included) into a candidate address

    Returns:
        The address, or None when the hash lands on the ed25519 curve
    """
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(bytes(_to_pubkey(program_id)))
    hasher.update(PDA_MARKER)
    candidate = Pubkey(hasher.digest())
    if candidate.is_on_curve():
        return None
    return candidate


def _check_seeds(seeds: Sequence[bytes]) -> None:
    # One slot is reserved for the bump
    if len(seeds) > MAX_SEEDS - 1:
        raise ConfigurationError.invalid("seeds", f"{len(seeds)} segments, at most {MAX_SEEDS - 1} allowed")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise ConfigurationError.invalid("seeds", f"segment of {len(seed)} bytes exceeds {MAX_SEED_LEN}")


def derive_address(
    domain_tag: bytes,
    seed_segments: Sequence[bytes],
    program_id: PubkeyLike,
    role: AccountRole,
) -> DerivedAddress:
    """
    Derive a program address, searching bumps 255 down to 1

    Args:
        domain_tag: Leading seed that separates account kinds (empty for the factory)
        seed_segments: Remaining seed segments in order
        program_id: Owning program
        role: Account role recorded on the result

    Returns:
        DerivedAddress with the first off-curve bump

    Raises:
        ConfigurationError: Too many or oversized seed segments
        DerivationExhausted: No bump produced an off-curve address
    """
    seeds = tuple(s for s in (domain_tag, *seed_segments) if s)
    _check_seeds(seeds)

    for bump in range(MAX_BUMP, 0, -1):
        address = create_program_address((*seeds, bytes([bump])), program_id)
        if address is not None:
            return DerivedAddress(address=str(address), bump=bump, role=role, seeds=seeds)

    raise DerivationExhausted(domain_tag, str(program_id))


def _pair_seeds(pair: TokenPairKey, fee: int) -> Tuple[bytes, bytes, bytes]:
    return pair.primary_bytes, pair.secondary_bytes, fee_seed(fee)


def derive_factory_state(program_id: PubkeyLike) -> DerivedAddress:
    return derive_address(b"", (), program_id, AccountRole.FACTORY)


def derive_fee_state(fee: int, program_id: PubkeyLike) -> DerivedAddress:
    return derive_address(FEE_SEED, (fee_seed(fee),), program_id, AccountRole.FEE_STATE)


def derive_pool_state(pair: TokenPairKey, fee: int, program_id: PubkeyLike) -> DerivedAddress:
    return derive_address(POOL_SEED, _pair_seeds(pair, fee), program_id, AccountRole.POOL)


def derive_observation_state(
    pair: TokenPairKey,
    fee: int,
    index: int,
    program_id: PubkeyLike,
) -> DerivedAddress:
    return derive_address(
        OBSERVATION_SEED,
        (*_pair_seeds(pair, fee), observation_seed(index)),
        program_id,
        AccountRole.OBSERVATION,
    )


def derive_tick_state(pair: TokenPairKey, fee: int, tick: int, program_id: PubkeyLike) -> DerivedAddress:
    return derive_address(
        TICK_SEED,
        (*_pair_seeds(pair, fee), tick_seed(tick)),
        program_id,
        AccountRole.TICK,
    )


def derive_bitmap_state(pair: TokenPairKey, fee: int, word_pos: int, program_id: PubkeyLike) -> DerivedAddress:
    return derive_address(
        BITMAP_SEED,
        (*_pair_seeds(pair, fee), word_seed(word_pos)),
        program_id,
        AccountRole.BITMAP,
    )


def derive_core_position(
    pair: TokenPairKey,
    fee: int,
    owner: PubkeyLike,
    tick_lower: int,
    tick_upper: int,
    program_id: PubkeyLike,
) -> DerivedAddress:
    """
    Core position record

    The owner is the factory for positions held through the tokenized
    position manager, so every tokenized position over the same range shares
    one core record.
    """
    return derive_address(
        POSITION_SEED,
        (*_pair_seeds(pair, fee), bytes(_to_pubkey(owner)), tick_seed(tick_lower), tick_seed(tick_upper)),
        program_id,
        AccountRole.CORE_POSITION,
    )


def derive_tokenized_position(nft_mint: PubkeyLike, program_id: PubkeyLike) -> DerivedAddress:
    return derive_address(
        POSITION_SEED,
        (bytes(_to_pubkey(nft_mint)),),
        program_id,
        AccountRole.TOKENIZED_POSITION,
    )


def derive_associated_token_address(
    owner: PubkeyLike,
    mint: PubkeyLike,
    role: AccountRole = AccountRole.TOKEN_ACCOUNT,
    token_program: PubkeyLike = TOKEN_PROGRAM_ID,
) -> DerivedAddress:
    """
    Associated token account of owner for mint

    Owner may itself be a program address (pool vaults are owned by the pool).
    """
    return derive_address(
        bytes(_to_pubkey(owner)),
        (bytes(_to_pubkey(token_program)), bytes(_to_pubkey(mint))),
        ASSOCIATED_TOKEN_PROGRAM_ID,
        role,
    )


def derive_position_accounts(
    token_a: str,
    token_b: str,
    fee: int,
    tick_lower: int,
    tick_upper: int,
    owner: PubkeyLike,
    nft_mint: PubkeyLike,
    program_id: PubkeyLike,
) -> PositionAccounts:
    """
    Derive every address a position request touches

    Args:
        token_a: First token mint as entered by the user
        token_b: Second token mint as entered by the user
        fee: Fee tier
        tick_lower: Lower tick (already validated)
        tick_upper: Upper tick (already validated)
        owner: Wallet paying for and receiving the position
        nft_mint: Fresh mint address of the position NFT
        program_id: Cyclos core program

    Returns:
        PositionAccounts in canonical pair order
    """
    pair = order_pair(token_a, token_b)
    tier = FeeTier.from_fee(fee)
    word_lower = word_position(tick_lower, tier.tick_spacing)
    word_upper = word_position(tick_upper, tier.tick_spacing)

    factory = derive_factory_state(program_id)
    pool = derive_pool_state(pair, fee, program_id)
    bitmap_lower = derive_bitmap_state(pair, fee, word_lower, program_id)
    if word_upper == word_lower:
        bitmap_upper = bitmap_lower
    else:
        bitmap_upper = derive_bitmap_state(pair, fee, word_upper, program_id)

    return PositionAccounts(
        program_id=str(program_id),
        factory=factory,
        fee_state=derive_fee_state(fee, program_id),
        pool=pool,
        initial_observation=derive_observation_state(pair, fee, 0, program_id),
        vault0=derive_associated_token_address(pool.address, pair.primary, AccountRole.VAULT),
        vault1=derive_associated_token_address(pool.address, pair.secondary, AccountRole.VAULT),
        tick_lower=derive_tick_state(pair, fee, tick_lower, program_id),
        tick_upper=derive_tick_state(pair, fee, tick_upper, program_id),
        bitmap_lower=bitmap_lower,
        bitmap_upper=bitmap_upper,
        core_position=derive_core_position(pair, fee, factory.address, tick_lower, tick_upper, program_id),
        tokenized_position=derive_tokenized_position(nft_mint, program_id),
        nft_mint=str(nft_mint),
        nft_account=derive_associated_token_address(owner, nft_mint),
        owner_token0=derive_associated_token_address(owner, pair.primary),
        owner_token1=derive_associated_token_address(owner, pair.secondary),
        token0=pair.primary,
        token1=pair.secondary,
        word_lower=word_lower,
        word_upper=word_upper,
    )
