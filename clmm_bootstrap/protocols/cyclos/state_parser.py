"""
Cyclos CLMM Pool State Parser

Parses pool account data from chain.
"""

import base64
import struct
from dataclasses import dataclass
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from .constants import ACCOUNT_DISCRIMINATORS
from ...errors import PoolUnavailable
from ...types.account import ObservationSlot


# Fixed offsets after the 8-byte discriminator
_BUMP_OFFSET = 8
_TOKEN0_OFFSET = 9
_TOKEN1_OFFSET = 41
_FEE_OFFSET = 73
_TICK_SPACING_OFFSET = 77
_LIQUIDITY_OFFSET = 79
_SQRT_PRICE_OFFSET = 87
_TICK_OFFSET = 95
_OBSERVATION_INDEX_OFFSET = 99
_OBSERVATION_CARDINALITY_OFFSET = 101
_OBSERVATION_CARDINALITY_NEXT_OFFSET = 103
POOL_STATE_MIN_SIZE = 105


@dataclass(frozen=True)
class PoolSnapshot:
    """Fields of the pool state the minting step reads"""
    address: str
    bump: int
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    liquidity: int
    sqrt_price_x32: int
    tick: int
    observation_index: int
    observation_cardinality: int
    observation_cardinality_next: int

    @property
    def observation(self) -> ObservationSlot:
        return ObservationSlot(
            index=self.observation_index,
            cardinality_next=self.observation_cardinality_next,
        )


def decode_account_data(account: Optional[Dict[str, Any]]) -> Optional[bytes]:
    """
    Extract raw bytes from an RPC account object

    Handles both ["<base64>", "base64"] and bare base64 string encodings.
    """
    if not account:
        return None
    data = account.get("data")
    if isinstance(data, list) and len(data) > 0:
        return base64.b64decode(data[0])
    if isinstance(data, str):
        return base64.b64decode(data)
    return None


def parse_pool_state(account_data: bytes, address: str = "") -> PoolSnapshot:
    """
    Parse Cyclos pool state account

    Layout:
    - blob(8): discriminator
    - u8: bump
    - publicKey(32): token_0
    - publicKey(32): token_1
    - u32: fee
    - u16: tick_spacing
    - u64: liquidity
    - u64: sqrt_price_x32
    - i32: tick
    - u16: observation_index
    - u16: observation_cardinality
    - u16: observation_cardinality_next
    - ... (fee growth, protocol fees)

    Args:
        account_data: Raw account data bytes
        address: Pool address, for error reporting

    Returns:
        PoolSnapshot

    Raises:
        PoolUnavailable: Data too short or wrong account type
    """
    if len(account_data) < POOL_STATE_MIN_SIZE:
        raise PoolUnavailable.invalid_state(
            address, f"pool data is {len(account_data)} bytes, expected at least {POOL_STATE_MIN_SIZE}"
        )
    if account_data[:8] != ACCOUNT_DISCRIMINATORS["PoolState"]:
        raise PoolUnavailable.invalid_state(address, "account is not a PoolState")

    return PoolSnapshot(
        address=address,
        bump=account_data[_BUMP_OFFSET],
        token0=str(Pubkey(account_data[_TOKEN0_OFFSET:_TOKEN0_OFFSET + 32])),
        token1=str(Pubkey(account_data[_TOKEN1_OFFSET:_TOKEN1_OFFSET + 32])),
        fee=struct.unpack_from("<I", account_data, _FEE_OFFSET)[0],
        tick_spacing=struct.unpack_from("<H", account_data, _TICK_SPACING_OFFSET)[0],
        liquidity=struct.unpack_from("<Q", account_data, _LIQUIDITY_OFFSET)[0],
        sqrt_price_x32=struct.unpack_from("<Q", account_data, _SQRT_PRICE_OFFSET)[0],
        tick=struct.unpack_from("<i", account_data, _TICK_OFFSET)[0],
        observation_index=struct.unpack_from("<H", account_data, _OBSERVATION_INDEX_OFFSET)[0],
        observation_cardinality=struct.unpack_from("<H", account_data, _OBSERVATION_CARDINALITY_OFFSET)[0],
        observation_cardinality_next=struct.unpack_from("<H", account_data, _OBSERVATION_CARDINALITY_NEXT_OFFSET)[0],
    )


def encode_pool_state(snapshot: PoolSnapshot) -> bytes:
    """Serialize the leading pool state fields (inverse of parse_pool_state)"""
    data = bytearray(ACCOUNT_DISCRIMINATORS["PoolState"])
    data.extend(struct.pack("<B", snapshot.bump))
    data.extend(bytes(Pubkey.from_string(snapshot.token0)))
    data.extend(bytes(Pubkey.from_string(snapshot.token1)))
    data.extend(struct.pack("<I", snapshot.fee))
    data.extend(struct.pack("<H", snapshot.tick_spacing))
    data.extend(struct.pack("<Q", snapshot.liquidity))
    data.extend(struct.pack("<Q", snapshot.sqrt_price_x32))
    data.extend(struct.pack("<i", snapshot.tick))
    data.extend(struct.pack("<H", snapshot.observation_index))
    data.extend(struct.pack("<H", snapshot.observation_cardinality))
    data.extend(struct.pack("<H", snapshot.observation_cardinality_next))
    return bytes(data)
