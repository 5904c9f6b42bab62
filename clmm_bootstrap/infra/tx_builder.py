"""
Transaction builder and sender

Provides utilities for:
- Building versioned transactions
- Adding compute budget instructions
- Estimating serialized size against the packet ceiling
- Sending and confirming transactions
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .rpc import RpcClient
from .solana_signer import Signer
from ..types import TxResult, TxStatus
from ..errors import TransactionError, TransportUnavailable
from ..config import config as global_config

logger = logging.getLogger(__name__)


@dataclass
class TxBuilderConfig:
    """
    Transaction builder runtime configuration

    This is a runtime configuration class that allows per-builder overrides
    while pulling defaults from the global config (clmm_bootstrap.config.TxConfig).

    Usage:
        # Use all defaults from environment
        builder = TxBuilder(rpc, signer)

        # Override specific settings
        config = TxBuilderConfig(compute_units=400_000, skip_preflight=True)
        builder = TxBuilder(rpc, signer, config=config)
    """
    compute_units: int = None
    compute_unit_price: int = None
    skip_preflight: bool = None
    preflight_commitment: str = None
    max_retries: int = None
    confirmation_timeout: float = None
    retry_delay: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.compute_units is None:
            self.compute_units = global_config.tx.compute_units
        if self.compute_unit_price is None:
            self.compute_unit_price = global_config.tx.compute_unit_price
        if self.skip_preflight is None:
            self.skip_preflight = global_config.tx.skip_preflight
        if self.preflight_commitment is None:
            self.preflight_commitment = global_config.tx.preflight_commitment
        if self.max_retries is None:
            self.max_retries = global_config.tx.max_retries
        if self.confirmation_timeout is None:
            self.confirmation_timeout = global_config.tx.confirmation_timeout
        if self.retry_delay is None:
            self.retry_delay = global_config.tx.retry_delay


def with_compute_budget(
    instructions: List[Instruction],
    compute_units: int,
    compute_unit_price: int,
) -> List[Instruction]:
    """Prefix compute budget instructions (skipped when zero)"""
    all_instructions = []
    if compute_units > 0:
        all_instructions.append(set_compute_unit_limit(compute_units))
    if compute_unit_price > 0:
        all_instructions.append(set_compute_unit_price(compute_unit_price))
    all_instructions.extend(instructions)
    return all_instructions


def estimate_transaction_size(
    instructions: List[Instruction],
    payer: str,
    compute_units: int = 0,
    compute_unit_price: int = 0,
) -> int:
    """
    Serialized size of a signed transaction carrying the instructions

    Compiles against a placeholder blockhash and pads every required signer
    slot with an empty signature, which has the same wire size as a real one.

    Args:
        instructions: Program instructions
        payer: Fee payer
        compute_units: Compute unit limit that will be prefixed
        compute_unit_price: Priority fee that will be prefixed

    Returns:
        Size in bytes
    """
    message = MessageV0.try_compile(
        Pubkey.from_string(payer),
        with_compute_budget(instructions, compute_units, compute_unit_price),
        [],
        Hash.default(),
    )
    num_signers = message.header.num_required_signatures
    tx = VersionedTransaction.populate(message, [Signature.default()] * num_signers)
    return len(bytes(tx))


class TxBuilder:
    """
    Transaction builder and sender

    Handles:
    - Building versioned transactions with compute budget
    - Signing via local signer plus extra keypairs
    - Sending with retry logic
    - Confirmation polling

    Usage:
        builder = TxBuilder(rpc, signer)

        # Build and send
        result = builder.build_and_send(instructions)

        # Or step by step
        tx_bytes = builder.build(instructions)
        signed_bytes, sig = builder.sign(tx_bytes)
        result = builder.send(signed_bytes)
    """

    def __init__(
        self,
        rpc: RpcClient,
        signer: Signer,
        config: Optional[TxBuilderConfig] = None,
    ):
        """
        Initialize transaction builder

        Args:
            rpc: RPC client
            signer: Transaction signer
            config: Transaction configuration
        """
        self._rpc = rpc
        self._signer = signer
        self._config = config or TxBuilderConfig()

    @property
    def pubkey(self) -> str:
        """Signer's public key"""
        return self._signer.pubkey

    @property
    def rpc(self) -> RpcClient:
        return self._rpc

    def estimate_size(self, instructions: List[Instruction]) -> int:
        """Serialized size of a transaction this builder would produce"""
        return estimate_transaction_size(
            instructions,
            self.pubkey,
            self._config.compute_units,
            self._config.compute_unit_price,
        )

    def build(
        self,
        instructions: List[Instruction],
        payer: Optional[str] = None,
        compute_units: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        recent_blockhash: Optional[str] = None,
    ) -> bytes:
        """
        Build unsigned versioned transaction

        Args:
            instructions: List of instructions
            payer: Fee payer pubkey (defaults to signer)
            compute_units: Compute unit limit
            compute_unit_price: Priority fee in microlamports per CU
            recent_blockhash: Optional blockhash (fetched if not provided)

        Returns:
            Unsigned transaction bytes
        """
        cu_limit = compute_units or self._config.compute_units
        cu_price = compute_unit_price or self._config.compute_unit_price

        if recent_blockhash is None:
            blockhash_info = self._rpc.get_latest_blockhash()
            recent_blockhash = blockhash_info.get("blockhash")

        if not recent_blockhash:
            raise TransactionError.send_failed("Failed to get recent blockhash")

        message = MessageV0.try_compile(
            Pubkey.from_string(payer or self.pubkey),
            with_compute_budget(instructions, cu_limit, cu_price),
            [],  # Address lookup tables
            Hash.from_string(recent_blockhash),
        )

        # VersionedTransaction requires signatures array to match num_required_signatures
        num_signers = message.header.num_required_signatures
        tx = VersionedTransaction.populate(message, [Signature.default()] * num_signers)

        return bytes(tx)

    def sign(
        self,
        unsigned_tx: bytes,
        additional_signers: Optional[List[Keypair]] = None,
    ) -> Tuple[bytes, str]:
        """
        Sign transaction

        Args:
            unsigned_tx: Unsigned transaction bytes
            additional_signers: Optional list of additional keypairs to sign with

        Returns:
            (signed_tx_bytes, signature_base58)
        """
        return self._signer.sign_transaction(unsigned_tx, additional_signers)

    def _failure_details(self, signature: str) -> Tuple[str, List[str]]:
        """On-chain error and program logs of a failed transaction"""
        error = "Transaction failed on-chain"
        logs: List[str] = []
        try:
            status = self._rpc.get_signature_status(signature)
            if status and status.get("err"):
                error = f"Transaction failed on-chain: {status['err']}"
            logs = self._rpc.get_transaction_logs(signature)
        except TransportUnavailable as e:
            logger.debug(f"Could not fetch failure details for {signature}: {e}")
        return error, logs

    def send(
        self,
        signed_tx: bytes,
        skip_preflight: Optional[bool] = None,
        wait_confirmation: bool = True,
    ) -> TxResult:
        """
        Send signed transaction

        Args:
            signed_tx: Signed transaction bytes
            skip_preflight: Skip simulation (default from config)
            wait_confirmation: Wait for confirmation

        Returns:
            TxResult with status and signature

        Raises:
            TransactionError: Preflight simulation rejected the transaction
            TransportUnavailable: Transport still failing after retries
        """
        skip = skip_preflight if skip_preflight is not None else self._config.skip_preflight

        for attempt in range(self._config.max_retries):
            try:
                signature = self._rpc.send_transaction(
                    signed_tx,
                    skip_preflight=skip,
                    preflight_commitment=self._config.preflight_commitment,
                )
            except TransportUnavailable as e:
                if not e.recoverable:
                    raise TransactionError.simulation_failed(e.message, e.logs) from e
                if attempt < self._config.max_retries - 1:
                    logger.warning(f"Send failed (attempt {attempt + 1}), retrying: {e}")
                    time.sleep(self._config.retry_delay * (attempt + 1))
                    continue
                raise

            logger.info(f"Transaction sent: {signature}")

            if not wait_confirmation:
                return TxResult(status=TxStatus.PENDING, signature=signature)

            confirmed = self._rpc.confirm_transaction(
                signature,
                commitment=self._config.preflight_commitment,
                timeout_seconds=self._config.confirmation_timeout,
            )

            if confirmed is True:
                return TxResult.success(signature)
            if confirmed is False:
                error, logs = self._failure_details(signature)
                return TxResult.failed(error, signature=signature, logs=logs)
            # confirmed is None - timeout/dropped
            return TxResult.timeout(signature)

        # This should only be reached if max_retries is 0 (misconfiguration)
        raise TransactionError.send_failed("No send attempts made (max_retries=0)")

    def simulate(self, unsigned_tx: bytes) -> dict:
        """Simulate transaction execution"""
        return self._rpc.simulate_transaction(unsigned_tx)

    def build_and_send(
        self,
        instructions: List[Instruction],
        compute_units: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        skip_preflight: Optional[bool] = None,
        wait_confirmation: bool = True,
        simulate_first: bool = False,
        additional_signers: Optional[List[Keypair]] = None,
    ) -> TxResult:
        """
        Build, sign, and send transaction in one call

        Args:
            instructions: List of instructions
            compute_units: Compute unit limit
            compute_unit_price: Priority fee
            skip_preflight: Skip simulation
            wait_confirmation: Wait for confirmation
            simulate_first: Run simulation before sending
            additional_signers: Optional list of additional keypairs to sign with

        Returns:
            TxResult
        """
        unsigned_tx = self.build(
            instructions,
            compute_units=compute_units,
            compute_unit_price=compute_unit_price,
        )

        if simulate_first:
            sim_result = self.simulate(unsigned_tx)
            if sim_result.get("value", {}).get("err"):
                error_msg = str(sim_result["value"]["err"])
                logs = sim_result.get("value", {}).get("logs", [])
                raise TransactionError.simulation_failed(error_msg, logs)

        signed_tx, signature = self.sign(unsigned_tx, additional_signers)
        logger.debug(f"Signed transaction {signature[:16]}... ({len(signed_tx)} bytes)")

        return self.send(
            signed_tx,
            skip_preflight=skip_preflight,
            wait_confirmation=wait_confirmation,
        )
