"""
Cyclos CLMM Math Utilities

Provides tick/bitmap bucketing, tick/price conversion in the program's Q32.32
domain, and liquidity calculations.
"""

from decimal import Decimal, localcontext
from typing import Tuple

from .constants import Q32, MAX_UINT64, MIN_TICK, MAX_TICK, BITMAP_WORD_BITS
from ...errors import InvalidTick, InvalidRange, ConfigurationError


# sqrt(1.0001) ** -(2 ** i) in Q128.128, one entry per bit of |tick|
_SQRT_RATIO_FACTORS_X128 = [
    0xfffcb933bd6fad37aa2d162d1a594001,
    0xfff97272373d413259a46990580e213a,
    0xfff2e50f5f656932ef12357cf3c7fdcc,
    0xffe5caca7e10e4e61c3624eaa0941cd0,
    0xffcb9843d60f6159c9db58835c926644,
    0xff973b41fa98c081472e6896dfb254c0,
    0xff2ea16466c96a3843ec78b326b52861,
    0xfe5dee046a99a2a811c461f1969c3053,
    0xfcbe86c7900a88aedcffc83b479aa3a4,
    0xf987a7253ac413176f2b074cf7815e54,
    0xf3392b0822b70005940c7a398e4b70f3,
    0xe7159475a2c29b7443b29c7fa6e889d9,
    0xd097f3bdfd2022b8845ad8f792aa5825,
    0xa9f746462d870fdf8a65dc1f90e061e5,
    0x70d869a156d2a1b890bb3df62baf32f7,
    0x31be135f97d08fd981231505542fcfa6,
    0x9aa508b5b7a84e1c677de54f3e99bc9,
    0x5d6af8dedb81196699c329225ee604,
    0x2216e584f5fa1ea926041bedfe98,
    0x48a170391f7dc42444e8fa2,
]


def compressed_tick(tick: int, tick_spacing: int) -> int:
    """Tick divided by spacing, rounded toward negative infinity"""
    return tick // tick_spacing


def word_position(tick: int, tick_spacing: int) -> int:
    """
    Bitmap word holding a tick

    The compressed tick is floor-divided (Python // rounds toward negative
    infinity) and then arithmetic-shifted by 8, matching the TickBitmap layout
    the program ports from Uniswap v3. Tick -1 at spacing 10 lands in word -1,
    not word 0.

    Args:
        tick: Tick index
        tick_spacing: Pool tick spacing

    Returns:
        Signed word position (fits in i16 for every valid tick)
    """
    return compressed_tick(tick, tick_spacing) >> 8


def bit_position(tick: int, tick_spacing: int) -> int:
    """Bit of the tick inside its bitmap word (0-255)"""
    return compressed_tick(tick, tick_spacing) % BITMAP_WORD_BITS


def validate_tick(
    tick: int,
    tick_spacing: int,
    min_tick: int = MIN_TICK,
    max_tick: int = MAX_TICK,
) -> int:
    """
    Check a tick against the program bounds and the tier's spacing

    Raises:
        InvalidTick: Tick outside [min_tick, max_tick] or off the spacing grid
    """
    if tick < min_tick or tick > max_tick:
        raise InvalidTick.out_of_bounds(tick, min_tick, max_tick)
    if tick % tick_spacing != 0:
        raise InvalidTick.not_aligned(tick, tick_spacing)
    return tick


def validate_range(tick_lower: int, tick_upper: int) -> None:
    """
    Raises:
        InvalidRange: tick_lower >= tick_upper
    """
    if tick_lower >= tick_upper:
        raise InvalidRange(tick_lower, tick_upper)


def tick_to_sqrt_price_x64(tick: int) -> int:
    """
    Convert tick to sqrt price in X64 fixed-point format

    Multiplies in one factor per set bit of |tick| at Q128.128 precision, then
    narrows to Q64.64 rounding up.

    Args:
        tick: Tick index

    Returns:
        Sqrt price as X64 fixed-point integer
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise InvalidTick.out_of_bounds(tick, MIN_TICK, MAX_TICK)

    tick_abs = abs(tick)

    ratio = 1 << 128
    for bit, factor in enumerate(_SQRT_RATIO_FACTORS_X128):
        if tick_abs & (1 << bit):
            ratio = (ratio * factor) >> 128

    # The product is 1.0001^(-|tick|/2); positive ticks take the reciprocal
    if tick > 0:
        ratio = ((1 << 256) - 1) // ratio

    return (ratio >> 64) + (1 if ratio % (1 << 64) else 0)


def tick_to_sqrt_price_x32(tick: int) -> int:
    """Convert tick to sqrt price in the program's Q32.32 format"""
    return tick_to_sqrt_price_x64(tick) >> 32


def sqrt_price_x32_to_price(sqrt_price_x32: int) -> Decimal:
    """Raw price of token0 in token1 units"""
    sqrt_price = Decimal(sqrt_price_x32) / Decimal(Q32)
    return sqrt_price * sqrt_price


def price_to_sqrt_price_x32(price: Decimal) -> int:
    """
    Convert a raw price (token1 per token0) to sqrt price X32

    Args:
        price: Price of token0 in token1 raw units

    Returns:
        Sqrt price in Q32.32 format

    Raises:
        ConfigurationError: Non-positive price or price outside the tick domain
    """
    price = Decimal(price)
    if price <= 0:
        raise ConfigurationError.invalid("start_price", f"must be positive, got {price}")

    with localcontext() as ctx:
        ctx.prec = 40
        sqrt_price_x32 = int(price.sqrt() * Q32)

    low = tick_to_sqrt_price_x32(MIN_TICK)
    high = tick_to_sqrt_price_x32(MAX_TICK)
    if sqrt_price_x32 < low or sqrt_price_x32 > high:
        raise ConfigurationError.invalid(
            "start_price",
            f"sqrt price {sqrt_price_x32} outside [{low}, {high}]",
        )
    return sqrt_price_x32


def _ordered(sqrt_a: int, sqrt_b: int) -> Tuple[int, int]:
    return (sqrt_a, sqrt_b) if sqrt_a <= sqrt_b else (sqrt_b, sqrt_a)


def _amount0_delta(liquidity: int, sqrt_a: int, sqrt_b: int) -> int:
    """token0 spanned by liquidity between two sqrt prices: L * (b - a) * Q32 / (a * b)"""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    if sqrt_a == sqrt_b:
        return 0
    return liquidity * (sqrt_b - sqrt_a) * Q32 // (sqrt_a * sqrt_b)


def _amount1_delta(liquidity: int, sqrt_a: int, sqrt_b: int) -> int:
    """token1 spanned by liquidity between two sqrt prices: L * (b - a) / Q32"""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    return liquidity * (sqrt_b - sqrt_a) // Q32


def get_amounts_from_liquidity(
    liquidity: int,
    sqrt_price_current_x32: int,
    sqrt_price_x32_lower: int,
    sqrt_price_x32_upper: int,
) -> Tuple[int, int]:
    """
    Token amounts a position of `liquidity` holds at the current price

    Below the range the position is all token0, above it all token1, and in
    between the current price splits it.

    Returns:
        (amount0, amount1) raw token amounts, rounded down
    """
    lower, upper = _ordered(sqrt_price_x32_lower, sqrt_price_x32_upper)
    current = min(max(sqrt_price_current_x32, lower), upper)
    return (
        _amount0_delta(liquidity, current, upper),
        _amount1_delta(liquidity, lower, current),
    )


def get_liquidity_from_amounts(
    amount0: int,
    amount1: int,
    sqrt_price_current_x32: int,
    sqrt_price_x32_lower: int,
    sqrt_price_x32_upper: int,
) -> int:
    """
    Largest liquidity both desired amounts can fund at the current price

    Sides the range does not need at the current price are ignored. A side
    that is needed but spans no price (zero width) contributes nothing.
    """
    lower, upper = _ordered(sqrt_price_x32_lower, sqrt_price_x32_upper)
    current = min(max(sqrt_price_current_x32, lower), upper)

    candidates = []
    if current < upper:
        candidates.append(amount0 * current * upper // ((upper - current) * Q32))
    if current > lower:
        candidates.append(amount1 * Q32 // (current - lower))
    return min(candidates) if candidates else 0


def apply_slippage(amount: int, slippage_bps: int) -> int:
    """Minimum acceptable amount after slippage, clamped to u64"""
    if slippage_bps < 0 or slippage_bps > 10_000:
        raise ConfigurationError.invalid("slippage_bps", f"must be in [0, 10000], got {slippage_bps}")
    return min(amount * (10_000 - slippage_bps) // 10_000, MAX_UINT64)
