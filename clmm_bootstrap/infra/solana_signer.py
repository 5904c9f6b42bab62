"""
Transaction signing abstractions

Provides unified signing interface for local signing with keypair.
"""

import json
import logging
import os
from typing import List, Optional, Protocol, Tuple, runtime_checkable

import base58
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ..errors import SignerError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


def message_signing_bytes(message) -> bytes:
    """
    Bytes a signer signs for a message

    MessageV0 is signed with its 0x80 version prefix.
    """
    message_bytes = bytes(message)
    if isinstance(message, MessageV0):
        message_bytes = bytes([0x80]) + message_bytes
    return message_bytes


@runtime_checkable
class Signer(Protocol):
    """
    Protocol for transaction signers

    Implementations must provide:
    - pubkey: The signer's public key (base58)
    - sign(): Sign a message
    - sign_transaction(): Sign a serialized transaction
    """

    @property
    def pubkey(self) -> str:
        """Signer's public key (base58)"""
        ...

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message

        Args:
            message: Message bytes to sign

        Returns:
            64-byte signature
        """
        ...

    def sign_transaction(
        self,
        unsigned_tx: bytes,
        additional_signers: Optional[List[Keypair]] = None,
    ) -> Tuple[bytes, str]:
        """
        Sign a transaction

        Args:
            unsigned_tx: Unsigned transaction bytes
            additional_signers: Extra keypairs that must co-sign

        Returns:
            (signed_tx_bytes, signature_base58)
        """
        ...


class LocalSigner:
    """
    Local signer using Solana keypair

    Usage:
        from solders.keypair import Keypair

        keypair = Keypair()  # or load from file
        signer = LocalSigner(keypair)

        signed_tx, sig = signer.sign_transaction(unsigned_tx_bytes)
    """

    def __init__(self, keypair: Keypair):
        """
        Initialize with keypair

        Args:
            keypair: solders.keypair.Keypair instance
        """
        self._keypair = keypair

    @property
    def pubkey(self) -> str:
        """Public key as base58 string"""
        return str(self._keypair.pubkey())

    def sign(self, message: bytes) -> bytes:
        """Sign message bytes"""
        return bytes(self._keypair.sign_message(message))

    def sign_transaction(
        self,
        unsigned_tx: bytes,
        additional_signers: Optional[List[Keypair]] = None,
    ) -> Tuple[bytes, str]:
        """
        Sign versioned transaction

        The wallet and every additional signer fill their own slot among the
        message's required signers. The position NFT mint is the usual
        additional signer.

        Args:
            unsigned_tx: Unsigned VersionedTransaction bytes
            additional_signers: Extra keypairs that must co-sign

        Returns:
            (signed_tx_bytes, wallet_signature_base58)

        Raises:
            SignerError: Wallet not a required signer, or a required signature missing
        """
        tx = VersionedTransaction.from_bytes(unsigned_tx)
        message = tx.message
        message_bytes = message_signing_bytes(message)

        num_required_signatures = message.header.num_required_signatures
        signer_keys = [str(k) for k in list(message.account_keys)[:num_required_signatures]]

        if self.pubkey not in signer_keys:
            raise SignerError.failed(
                f"Wallet {self.pubkey} is not in the required signers list. "
                f"Expected signers: {signer_keys}"
            )

        null_sig = Signature.default()
        signatures = [null_sig] * num_required_signatures

        wallet_signature = self._keypair.sign_message(message_bytes)
        signatures[signer_keys.index(self.pubkey)] = wallet_signature

        for keypair in additional_signers or []:
            kp_pubkey = str(keypair.pubkey())
            if kp_pubkey not in signer_keys:
                logger.warning(f"Additional signer {kp_pubkey} not found in required signers")
                continue
            index = signer_keys.index(kp_pubkey)
            signatures[index] = keypair.sign_message(message_bytes)
            logger.debug(f"Additional signer {kp_pubkey[:16]}... signed at index {index}")

        missing = [signer_keys[i] for i, sig in enumerate(signatures) if sig == null_sig]
        if missing:
            raise SignerError.failed(f"Missing signatures for required signers: {', '.join(missing)}")

        signed_tx = VersionedTransaction.populate(message, signatures)
        return bytes(signed_tx), str(wallet_signature)

    @classmethod
    def from_bytes(cls, secret_key: bytes) -> "LocalSigner":
        """Create signer from secret key bytes (64 bytes)"""
        return cls(Keypair.from_bytes(secret_key))

    @classmethod
    def from_base58(cls, secret_key: str) -> "LocalSigner":
        """Create signer from base58 secret key"""
        return cls.from_bytes(base58.b58decode(secret_key))

    @classmethod
    def from_file(cls, path: str) -> "LocalSigner":
        """
        Create signer from keypair file

        Supports:
        - JSON array format (Solana CLI): [1,2,3,...]
        - Raw bytes file (64 bytes)
        """
        with open(path, "rb") as f:
            content = f.read()

        # Try JSON format first
        try:
            data = json.loads(content.decode("utf-8"))
            if isinstance(data, list):
                return cls.from_bytes(bytes(data))
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass

        # Try raw bytes
        if len(content) == 64:
            return cls.from_bytes(content)

        raise ConfigurationError.invalid("keypair_file", f"Cannot parse keypair file: {path}")


def create_signer(
    keypair: Optional[Keypair] = None,
    keypair_path: Optional[str] = None,
) -> Signer:
    """
    Create signer based on configuration

    Priority:
    1. keypair: Use LocalSigner with provided keypair
    2. keypair_path: Load keypair from file
    3. Environment: Check SOLANA_KEYPAIR_PATH env var

    Args:
        keypair: Optional Keypair instance
        keypair_path: Optional path to keypair file

    Returns:
        Signer instance

    Raises:
        SignerError: If no valid signer configuration found
    """
    if keypair is not None:
        return LocalSigner(keypair)

    if keypair_path is not None:
        return LocalSigner.from_file(keypair_path)

    if global_config.signer.keypair_path and os.path.isfile(global_config.signer.keypair_path):
        return LocalSigner.from_file(global_config.signer.keypair_path)

    raise SignerError.not_configured()
