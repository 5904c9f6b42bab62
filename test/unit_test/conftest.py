"""
Shared fixtures for unit tests.

FakeLedger stands in for the Solana RPC endpoint: it answers account reads
from an in-memory dict and executes the Cyclos bootstrap instructions of
every signed transaction it receives, with preflight errors shaped like the
real cluster's (already in use, uninitialised account, stale deadline).
No network access.
"""

import base64
import struct
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from clmm_bootstrap.errors import TransportUnavailable
from clmm_bootstrap.infra import TxBuilderConfig
from clmm_bootstrap.modules.assembler import AssemblerConfig
from clmm_bootstrap.protocols.cyclos.constants import CYCLOS_CORE_PROGRAM_ID, DISCRIMINATORS
from clmm_bootstrap.protocols.cyclos.pda import derive_factory_state
from clmm_bootstrap.protocols.cyclos.state_parser import PoolSnapshot, encode_pool_state
from clmm_bootstrap.types import PositionAccounts


PROGRAM_ID = CYCLOS_CORE_PROGRAM_ID
TOKEN_X = "So11111111111111111111111111111111111111112"
TOKEN_Y = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

_KIND_BY_DISCRIMINATOR = {disc: name for name, disc in DISCRIMINATORS.items()}

# kind -> (indices of created accounts, indices of accounts that must exist)
_ACCOUNT_LAYOUT = {
    "enable_fee_amount": ((2,), (1,)),
    "create_and_init_pool": ((4, 5, 6, 7), (3,)),
    "init_tick_account": ((2,), (1,)),
    "init_bitmap_account": ((2,), (1,)),
    "init_position_account": ((5,), (2, 3, 4)),
    "mint_tokenized_position": ((17,), (2, 5, 6, 7, 8, 9, 10)),
}


class FakeLedger:
    """
    In-memory ledger speaking the subset of RpcClient the pipeline uses

    Attributes:
        accounts: address -> RPC account object
        sent: one list of instruction kinds per landed transaction
        rejected: one list of instruction kinds per preflight rejection
        probe_failures: getMultipleAccounts calls still to fail
        before_send: hooks run on every send before preflight (concurrent actors)
        observation_cardinality_next: ring size written into new pools
        clock: unix time used for the mint deadline check
        force_slippage: reject every mint with the program's slippage error
    """

    endpoint = "fake://ledger"
    commitment = "confirmed"

    def __init__(self, program_id: str = PROGRAM_ID, with_factory: bool = True):
        self.program_id = program_id
        self.accounts: Dict[str, dict] = {}
        self.sent: List[List[str]] = []
        self.rejected: List[List[str]] = []
        self.statuses: Dict[str, dict] = {}
        self.probe_failures = 0
        self.multiple_accounts_calls: List[List[str]] = []
        self.account_info_calls: List[str] = []
        self.before_send: List[Callable[["FakeLedger"], None]] = []
        self.observation_cardinality_next = 1
        self.clock: Optional[int] = None
        self.force_slippage = False
        if with_factory:
            self.put(derive_factory_state(program_id).address, b"factory")

    # Ledger state helpers

    def put(self, address: str, data: bytes = b"", owner: Optional[str] = None):
        self.accounts[address] = {
            "data": [base64.b64encode(data).decode("ascii"), "base64"],
            "owner": owner or self.program_id,
            "lamports": 1_000_000,
            "executable": False,
        }

    def exists(self, address: str) -> bool:
        return address in self.accounts

    def data(self, address: str) -> bytes:
        return base64.b64decode(self.accounts[address]["data"][0])

    def put_fee_state(self, accounts: PositionAccounts, fee: int, tick_spacing: int):
        self.put(accounts.fee_state.address, struct.pack("<IH", fee, tick_spacing))

    def put_pool(
        self,
        accounts: PositionAccounts,
        fee: int,
        tick_spacing: int,
        sqrt_price_x32: int,
        observation_index: int = 0,
        cardinality_next: int = 1,
    ):
        """Seed an initialised pool with its observation and vaults"""
        self.put_fee_state(accounts, fee, tick_spacing)
        snapshot = PoolSnapshot(
            address=accounts.pool.address,
            bump=accounts.pool.bump,
            token0=accounts.token0,
            token1=accounts.token1,
            fee=fee,
            tick_spacing=tick_spacing,
            liquidity=0,
            sqrt_price_x32=sqrt_price_x32,
            tick=0,
            observation_index=observation_index,
            observation_cardinality=max(cardinality_next, 1),
            observation_cardinality_next=cardinality_next,
        )
        self.put(accounts.pool.address, encode_pool_state(snapshot))
        self.put(accounts.initial_observation.address, b"observation")
        self.put(accounts.vault0.address, b"vault0")
        self.put(accounts.vault1.address, b"vault1")

    # RpcClient surface

    def get_multiple_accounts(self, addresses: List[str], encoding: str = "base64", commitment=None):
        self.multiple_accounts_calls.append(list(addresses))
        if self.probe_failures > 0:
            self.probe_failures -= 1
            raise TransportUnavailable.timeout(self.endpoint, 30.0)
        return [self.accounts.get(a) for a in addresses]

    def get_account_info(self, address: str, encoding: str = "base64", commitment=None):
        self.account_info_calls.append(address)
        return self.accounts.get(address)

    def get_latest_blockhash(self, commitment=None):
        return {"blockhash": str(Hash.new_unique()), "lastValidBlockHeight": 1}

    def send_transaction(self, transaction: bytes, skip_preflight=False, preflight_commitment=None, max_retries=None):
        for hook in list(self.before_send):
            hook(self)

        tx = VersionedTransaction.from_bytes(transaction)
        message = tx.message
        keys = [str(k) for k in message.account_keys]
        signer_keys = set(keys[:message.header.num_required_signatures])
        if any(sig == Signature.default() for sig in tx.signatures):
            raise TransportUnavailable.preflight_failed(self.endpoint, "missing signature", [])

        steps = []
        for ix in message.instructions:
            if keys[ix.program_id_index] != self.program_id:
                continue
            data = bytes(ix.data)
            kind = _KIND_BY_DISCRIMINATOR[data[:8]]
            metas = [keys[i] for i in bytes(ix.accounts)]
            steps.append((kind, data, metas))
        kinds = [kind for kind, _, _ in steps]

        # Preflight against a scratch view so a rejected transaction changes nothing
        created = set()
        for kind, data, metas in steps:
            targets, required = _ACCOUNT_LAYOUT[kind]
            for i in required:
                if not self.exists(metas[i]) and metas[i] not in created:
                    self._reject(kinds, "custom program error: 0xbc4", [
                        f"Program log: AnchorError caused by account: {metas[i]}. "
                        f"Error Code: AccountNotInitialized.",
                    ])
            for i in targets:
                if self.exists(metas[i]) or metas[i] in created:
                    self._reject(kinds, "custom program error: 0x0", [
                        f"Allocate: account Address {{ address: {metas[i]}, base: None }} already in use",
                    ])
                created.add(metas[i])
            if kind == "mint_tokenized_position":
                if metas[3] not in signer_keys:
                    self._reject(kinds, "missing required signature for instruction", [])
                deadline = struct.unpack_from("<q", data, 8 + 1 + 32)[0]
                if self.clock is not None and self.clock > deadline:
                    self._reject(kinds, "custom program error: 0x1771", [
                        "Program log: AnchorError occurred. Error Code: TransactionTooOld.",
                    ])
                if self.force_slippage:
                    self._reject(kinds, "custom program error: 0x1770", [
                        "Program log: AnchorError occurred. Error Code: PriceSlippageCheck. "
                        "Error Message: Price slippage check.",
                    ])

        for kind, data, metas in steps:
            self._apply(kind, data, metas)

        signature = str(tx.signatures[0])
        self.statuses[signature] = {"err": None, "confirmationStatus": "confirmed"}
        self.sent.append(kinds)
        return signature

    def _reject(self, kinds: List[str], error: str, logs: List[str]):
        self.rejected.append(kinds)
        raise TransportUnavailable.preflight_failed(self.endpoint, error, logs)

    def _apply(self, kind: str, data: bytes, metas: List[str]):
        targets, _ = _ACCOUNT_LAYOUT[kind]
        if kind == "create_and_init_pool":
            fee, tick_spacing = struct.unpack_from("<IH", self.data(metas[3]))
            sqrt_price_x32 = struct.unpack_from("<Q", data, 10)[0]
            snapshot = PoolSnapshot(
                address=metas[4],
                bump=data[8],
                token0=metas[1],
                token1=metas[2],
                fee=fee,
                tick_spacing=tick_spacing,
                liquidity=0,
                sqrt_price_x32=sqrt_price_x32,
                tick=0,
                observation_index=0,
                observation_cardinality=1,
                observation_cardinality_next=self.observation_cardinality_next,
            )
            self.put(metas[4], encode_pool_state(snapshot))
            for i in (5, 6, 7):
                self.put(metas[i], kind.encode())
            return
        if kind == "enable_fee_amount":
            self.put(metas[2], data[9:15])
            return
        for i in targets:
            self.put(metas[i], kind.encode())

    def simulate_transaction(self, transaction: bytes, commitment=None):
        return {"value": {"err": None, "logs": []}}

    def get_signature_status(self, signature: str):
        return self.statuses.get(signature)

    def get_transaction_logs(self, signature: str, commitment=None):
        return []

    def confirm_transaction(self, signature: str, commitment=None, timeout_seconds: float = 60.0, poll_interval: float = 1.0):
        status = self.statuses.get(signature)
        if status is None:
            return None
        return status.get("err") is None

    def close(self):
        pass


def fast_tx_config() -> TxBuilderConfig:
    return TxBuilderConfig(max_retries=1, retry_delay=0.0, confirmation_timeout=1.0)


def fast_assembler_config(**overrides) -> AssemblerConfig:
    values = dict(max_retries=1, retry_delay=0.0)
    values.update(overrides)
    return AssemblerConfig(**values)


def create_client(ledger: FakeLedger, payer: Optional[Keypair] = None, **assembler_overrides):
    """ClmmClient wired to the fake ledger with a local signer"""
    from clmm_bootstrap import ClmmClient

    return ClmmClient(
        rpc=ledger,
        keypair=payer or Keypair(),
        program_id=ledger.program_id,
        tx_config=fast_tx_config(),
        assembler_config=fast_assembler_config(**assembler_overrides),
    )


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def client(ledger):
    return create_client(ledger)
