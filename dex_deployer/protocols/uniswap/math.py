"""
Pool math: canonical token order and initial sqrt price encoding

All price arithmetic is done in decimal.Decimal, never float.
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP, localcontext
from typing import Tuple, Union

from ...errors import ConfigurationError

Q96 = 2 ** 96

# Bounds of a valid sqrtPriceX96 (TickMath.MIN_SQRT_RATIO / MAX_SQRT_RATIO)
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Fractional digits kept after the division and after the square root
PRICE_DECIMAL_PLACES = 40

_QUANTUM = Decimal(1).scaleb(-PRICE_DECIMAL_PLACES)

Number = Union[int, str, Decimal]


def sort_tokens(token_a: str, token_b: str) -> Tuple[str, str]:
    """
    Order two token addresses so token0 < token1

    Addresses compare by their lower-case hex form. The returned strings are
    the inputs unchanged, so sorting an already sorted pair is a no-op.
    """
    if token_a.lower() <= token_b.lower():
        return token_a, token_b
    return token_b, token_a


def encode_sqrt_price_x96(reserve1: Number, reserve0: Number) -> int:
    """
    floor(sqrt(reserve1 / reserve0) * 2^96)

    The quotient and its square root are each rounded half-up to 40
    fractional digits before scaling; the final scaling truncates.

    Args:
        reserve1: Amount of token1 (numerator of the token0 price)
        reserve0: Amount of token0

    Returns:
        Q64.96 square-root price

    Raises:
        ConfigurationError: Non-positive reserves or a price outside the
            range a pool accepts

    Example:
        encode_sqrt_price_x96(1, 1)  # 2**96
        encode_sqrt_price_x96(4, 1)  # 2 * 2**96
    """
    numerator = Decimal(reserve1)
    denominator = Decimal(reserve0)
    if numerator <= 0 or denominator <= 0:
        raise ConfigurationError.invalid("reserves", f"must be positive, got {reserve1}:{reserve0}")

    with localcontext() as ctx:
        # Enough digits for 40 decimals on any ratio a pool can represent
        ctx.prec = 200
        ratio = numerator / denominator
        if ratio >= Decimal(2) ** 128:
            raise ConfigurationError.invalid("reserves", f"price ratio {ratio} too large")

        ratio = ratio.quantize(_QUANTUM, rounding=ROUND_HALF_UP)
        root = ratio.sqrt().quantize(_QUANTUM, rounding=ROUND_HALF_UP)
        sqrt_price = int((root * Q96).to_integral_value(rounding=ROUND_FLOOR))

    if not MIN_SQRT_RATIO <= sqrt_price < MAX_SQRT_RATIO:
        raise ConfigurationError.invalid(
            "reserves", f"sqrt price {sqrt_price} for {reserve1}:{reserve0} is out of range"
        )
    return sqrt_price
