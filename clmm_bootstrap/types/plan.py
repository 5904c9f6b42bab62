"""
Bootstrap plan types

A plan is built once by the planner and consumed uniformly by the assembler.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Tuple, List, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from solders.instruction import Instruction
    from solders.keypair import Keypair

from .account import DerivedAddress


class Tier(IntEnum):
    """Dependency layer; every account of tier N exists before tier N+1 runs"""
    POOL = 0        # fee tier config, pool state, vaults
    RANGE = 1       # tick boundaries, bitmap words
    POSITION = 2    # core position record
    TOKENIZED = 3   # tokenized position (mint)


class InstructionKind(Enum):
    """Program entry points the client sequences"""
    ENABLE_FEE_AMOUNT = "enable_fee_amount"
    CREATE_AND_INIT_POOL = "create_and_init_pool"
    INIT_TICK_ACCOUNT = "init_tick_account"
    INIT_BITMAP_ACCOUNT = "init_bitmap_account"
    INIT_POSITION_ACCOUNT = "init_position_account"
    MINT_TOKENIZED_POSITION = "mint_tokenized_position"


@dataclass(frozen=True)
class PlannedInstruction:
    """
    One account-initialisation step

    Attributes:
        tier: Dependency tier
        kind: Program entry point
        targets: Accounts the instruction creates
        depends_on: Accounts that must exist (or be created earlier in the plan)
        instruction: Built instruction, None when deferred to the minting step
        signers: Extra keypairs the instruction needs besides the payer
    """
    tier: Tier
    kind: InstructionKind
    targets: Tuple[DerivedAddress, ...]
    depends_on: Tuple[DerivedAddress, ...] = ()
    instruction: Optional["Instruction"] = None
    signers: Tuple["Keypair", ...] = ()

    @property
    def is_deferred(self) -> bool:
        return self.instruction is None

    @property
    def target_addresses(self) -> List[str]:
        return [t.address for t in self.targets]

    def __str__(self) -> str:
        return f"{self.kind.value}[tier {int(self.tier)}] -> {', '.join(self.target_addresses)}"


@dataclass(frozen=True)
class BootstrapPlan:
    """
    Ordered, dependency-respecting set of planned instructions

    Attributes:
        entries: Planned instructions sorted by tier
        creates_pool: True when the caller is the first LP for this pool/fee
        skipped: Accounts left out because they already exist
    """
    entries: Tuple[PlannedInstruction, ...]
    creates_pool: bool = False
    skipped: Tuple[DerivedAddress, ...] = ()

    @property
    def tiers(self) -> List[Tuple[PlannedInstruction, ...]]:
        """All four tiers in execution order (empty tuples for satisfied tiers)"""
        return [self.tier(t) for t in Tier]

    def tier(self, tier: Tier) -> Tuple[PlannedInstruction, ...]:
        return tuple(e for e in self.entries if e.tier == tier)

    @property
    def bootstrap_entries(self) -> Tuple[PlannedInstruction, ...]:
        """Entries the assembler submits (everything except the deferred mint)"""
        return tuple(e for e in self.entries if not e.is_deferred)

    @property
    def mint_entry(self) -> Optional[PlannedInstruction]:
        for entry in self.entries:
            if entry.kind == InstructionKind.MINT_TOKENIZED_POSITION:
                return entry
        return None

    def target_tiers(self) -> Dict[str, Tier]:
        """Map every targeted address to the tier that creates it"""
        return {
            target.address: entry.tier
            for entry in self.entries
            for target in entry.targets
        }

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class TxBundle:
    """
    Atomic transaction worth of planned instructions

    Attributes:
        tier: Tier every entry belongs to
        entries: Planned instructions packed into this transaction
        sequence: Position of the bundle within its tier
        estimated_size: Serialized size estimate in bytes
    """
    tier: Tier
    entries: Tuple[PlannedInstruction, ...]
    sequence: int = 0
    estimated_size: int = 0

    @property
    def instructions(self) -> List["Instruction"]:
        return [e.instruction for e in self.entries]

    @property
    def signers(self) -> List["Keypair"]:
        signers = []
        for entry in self.entries:
            signers.extend(entry.signers)
        return signers

    @property
    def targets(self) -> List[DerivedAddress]:
        return [t for e in self.entries for t in e.targets]

    def without(self, addresses) -> "TxBundle":
        """Copy of the bundle minus entries whose targets are all in addresses"""
        remaining = tuple(
            e for e in self.entries
            if not all(a in addresses for a in e.target_addresses)
        )
        return TxBundle(
            tier=self.tier,
            entries=remaining,
            sequence=self.sequence,
            estimated_size=self.estimated_size,
        )
