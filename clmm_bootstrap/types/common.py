"""
Common type definitions
"""

from dataclasses import dataclass
from typing import Dict, Optional

from solders.pubkey import Pubkey

from ..errors import ConfigurationError, InvalidFeeTier


def _pubkey_bytes(address: str) -> bytes:
    try:
        return bytes(Pubkey.from_string(address))
    except ValueError as e:
        raise ConfigurationError.invalid("token", f"not a base58 public key: {address!r}") from e


@dataclass(frozen=True)
class TokenPairKey:
    """
    Canonically ordered token pair

    The primary token sorts strictly before the secondary one when their raw
    32-byte public keys are compared. Every pair-scoped address is derived from
    this order, so two clients always agree on it.

    Attributes:
        primary: Token mint (base58) that sorts first
        secondary: Token mint (base58) that sorts second
    """
    primary: str
    secondary: str

    @classmethod
    def order(cls, token_x: str, token_y: str) -> "TokenPairKey":
        """
        Order two token mints canonically

        Args:
            token_x: Either token mint
            token_y: The other token mint

        Returns:
            TokenPairKey with the byte-wise smaller key first

        Raises:
            ConfigurationError: If the mints are malformed or identical
        """
        x_bytes = _pubkey_bytes(token_x)
        y_bytes = _pubkey_bytes(token_y)
        if x_bytes == y_bytes:
            raise ConfigurationError.invalid("token pair", f"both sides are {token_x}")
        if x_bytes < y_bytes:
            return cls(primary=token_x, secondary=token_y)
        return cls(primary=token_y, secondary=token_x)

    @property
    def primary_bytes(self) -> bytes:
        return _pubkey_bytes(self.primary)

    @property
    def secondary_bytes(self) -> bytes:
        return _pubkey_bytes(self.secondary)

    def is_flipped(self, token_a: str) -> bool:
        """True when the user-entered first token is the canonical secondary"""
        return token_a == self.secondary

    def __str__(self) -> str:
        return f"{self.primary[:8]}../{self.secondary[:8]}.."


@dataclass(frozen=True)
class FeeTier:
    """
    Fee rate paired with its implied tick spacing

    Attributes:
        fee: Fee in hundredths of a basis point (500 = 0.05%)
        tick_spacing: Tick spacing the program pairs with this fee
    """
    fee: int
    tick_spacing: int

    @classmethod
    def from_fee(cls, fee: int, supported: Optional[Dict[int, int]] = None) -> "FeeTier":
        """
        Resolve a fee into a recognised tier

        Raises:
            InvalidFeeTier: If the program does not recognise the fee
        """
        if supported is None:
            # Import here to avoid circular import
            from ..protocols.cyclos.constants import FEE_TIERS
            supported = FEE_TIERS
        if fee not in supported:
            raise InvalidFeeTier(fee, list(supported))
        return cls(fee=fee, tick_spacing=supported[fee])

    @property
    def percent(self) -> float:
        return self.fee / 10_000

    def __str__(self) -> str:
        return f"{self.percent:g}%"
