"""
Derived account and existence types
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, List


class AccountRole(Enum):
    """What a derived account represents in the program's account graph"""
    FACTORY = "factory"
    FEE_STATE = "fee_state"
    POOL = "pool"
    OBSERVATION = "observation"
    VAULT = "vault"
    TICK = "tick"
    BITMAP = "bitmap"
    CORE_POSITION = "core_position"
    TOKENIZED_POSITION = "tokenized_position"
    NFT_MINT = "nft_mint"
    TOKEN_ACCOUNT = "token_account"


@dataclass(frozen=True)
class DerivedAddress:
    """
    Deterministic program address

    Attributes:
        address: Base58 address
        bump: Salt byte that moved the address off the ed25519 curve
        role: Account role in the graph
        seeds: Seed segments the address was derived from (without the bump)
    """
    address: str
    bump: int
    role: AccountRole
    seeds: Tuple[bytes, ...] = ()

    def __str__(self) -> str:
        return f"{self.role.value}:{self.address}"


class AccountState(Enum):
    """Existence of an account on the ledger"""
    EXISTS = "exists"
    ABSENT = "absent"
    UNKNOWN = "unknown"  # data source unreachable, never treated as absent


@dataclass(frozen=True)
class ProbeResult:
    """
    Existence probe outcome for one address

    Attributes:
        address: Probed address
        state: EXISTS / ABSENT / UNKNOWN
        data: Raw account data when the account exists
        owner: Owning program when the account exists
        error: Transport error text when the state is UNKNOWN
    """
    address: str
    state: AccountState
    data: Optional[bytes] = None
    owner: Optional[str] = None
    error: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.state == AccountState.EXISTS

    @property
    def is_absent(self) -> bool:
        return self.state == AccountState.ABSENT

    @property
    def is_unknown(self) -> bool:
        return self.state == AccountState.UNKNOWN


@dataclass(frozen=True)
class ObservationSlot:
    """Observation ring position read from the pool state"""
    index: int
    cardinality_next: int

    @property
    def next_index(self) -> int:
        return (self.index + 1) % self.cardinality_next


@dataclass(frozen=True)
class PositionAccounts:
    """
    Every address one position request touches

    The bitmap accounts collapse to a single entry when both ticks fall in the
    same bitmap word.
    """
    program_id: str
    factory: DerivedAddress
    fee_state: DerivedAddress
    pool: DerivedAddress
    initial_observation: DerivedAddress
    vault0: DerivedAddress
    vault1: DerivedAddress
    tick_lower: DerivedAddress
    tick_upper: DerivedAddress
    bitmap_lower: DerivedAddress
    bitmap_upper: DerivedAddress
    core_position: DerivedAddress
    tokenized_position: DerivedAddress
    nft_mint: str
    nft_account: DerivedAddress
    owner_token0: DerivedAddress
    owner_token1: DerivedAddress
    token0: str
    token1: str
    word_lower: int = 0
    word_upper: int = 0

    @property
    def bitmaps(self) -> List[DerivedAddress]:
        if self.bitmap_lower.address == self.bitmap_upper.address:
            return [self.bitmap_lower]
        return [self.bitmap_lower, self.bitmap_upper]

    def bootstrap_addresses(self) -> List[str]:
        """Addresses the existence probe must resolve before planning"""
        accounts = [
            self.factory,
            self.fee_state,
            self.pool,
            self.initial_observation,
            self.vault0,
            self.vault1,
            self.tick_lower,
            self.tick_upper,
            *self.bitmaps,
            self.core_position,
        ]
        seen = []
        for account in accounts:
            if account.address not in seen:
                seen.append(account.address)
        return seen
