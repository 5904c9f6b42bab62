"""
Position request type
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from .common import TokenPairKey, FeeTier


@dataclass(frozen=True)
class PositionRequest:
    """
    User intent for one add-liquidity submission

    Token fields keep the order the user entered; the pipeline maps them onto
    the canonical pair order. Amounts are raw token units.

    Attributes:
        token_a: First token mint as entered
        token_b: Second token mint as entered
        fee: Fee tier (hundredths of a basis point)
        tick_lower: Lower tick of the range
        tick_upper: Upper tick of the range
        amount_a_desired: Desired deposit of token_a
        amount_b_desired: Desired deposit of token_b
        slippage_bps: Slippage tolerance in basis points
        deadline: Unix timestamp after which the mint must not be submitted
        start_price: Price of token_a in token_b raw units, required for a new pool
        amount_a_min: Explicit minimum deposit of token_a (derived from slippage if None)
        amount_b_min: Explicit minimum deposit of token_b (derived from slippage if None)
    """
    token_a: str
    token_b: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount_a_desired: int
    amount_b_desired: int
    slippage_bps: int = 100
    deadline: int = 0
    start_price: Optional[Decimal] = None
    amount_a_min: Optional[int] = None
    amount_b_min: Optional[int] = None

    @classmethod
    def create(
        cls,
        token_a: str,
        token_b: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        amount_a_desired: int,
        amount_b_desired: int,
        slippage_bps: Optional[int] = None,
        deadline_seconds: Optional[int] = None,
        **kwargs,
    ) -> "PositionRequest":
        """Build a request with slippage and deadline defaults from config"""
        from ..config import config

        if slippage_bps is None:
            slippage_bps = config.trading.default_lp_slippage_bps
        if deadline_seconds is None:
            deadline_seconds = config.trading.default_deadline_seconds
        return cls(
            token_a=token_a,
            token_b=token_b,
            fee=fee,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            amount_a_desired=amount_a_desired,
            amount_b_desired=amount_b_desired,
            slippage_bps=slippage_bps,
            deadline=int(time.time()) + deadline_seconds,
            **kwargs,
        )

    @property
    def pair(self) -> TokenPairKey:
        return TokenPairKey.order(self.token_a, self.token_b)

    @property
    def fee_tier(self) -> FeeTier:
        return FeeTier.from_fee(self.fee)

    @property
    def flipped(self) -> bool:
        """True when token_a is the canonical secondary token"""
        return self.pair.is_flipped(self.token_a)

    def canonical_amounts(self) -> Tuple[int, int]:
        """Desired amounts in (token0, token1) order"""
        if self.flipped:
            return self.amount_b_desired, self.amount_a_desired
        return self.amount_a_desired, self.amount_b_desired

    def canonical_minimums(self) -> Tuple[Optional[int], Optional[int]]:
        """Explicit minimums in (token0, token1) order"""
        if self.flipped:
            return self.amount_b_min, self.amount_a_min
        return self.amount_a_min, self.amount_b_min

    def canonical_start_price(self) -> Optional[Decimal]:
        """Starting price of token0 in token1 units"""
        if self.start_price is None:
            return None
        if self.flipped:
            return Decimal(1) / Decimal(self.start_price)
        return Decimal(self.start_price)

    def is_expired(self, now: Optional[int] = None) -> bool:
        now = int(time.time()) if now is None else now
        return now > self.deadline

    def validate(self) -> None:
        """
        Reject malformed input before any derivation or network call

        Raises:
            InvalidFeeTier: Unknown fee
            InvalidRange: tick_lower >= tick_upper
            InvalidTick: Tick out of bounds or off the spacing grid
            ConfigurationError: Malformed token pair
        """
        from ..protocols.cyclos.math import validate_range, validate_tick

        fee_tier = self.fee_tier
        validate_range(self.tick_lower, self.tick_upper)
        validate_tick(self.tick_lower, fee_tier.tick_spacing)
        validate_tick(self.tick_upper, fee_tier.tick_spacing)
        self.pair
