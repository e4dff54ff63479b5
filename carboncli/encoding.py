"""Carbon order encoding.

Rates are stored as sqrt(rate) in 48-bit fixed point, truncated to 48
significant bits, and packed into 64-bit "floats" (6 bits exponent,
48 bits mantissa). An order is (y, z, A, B):

    B = float(L)          L = encoded lowest rate
    A = float(H - L)      H = encoded highest rate
    z = y * (H - L) / (M - L)   M = encoded marginal rate

All rates here are wei-per-wei ratios. Converting human prices to rates
(token decimals, buy/sell inversion) is the toolkit's job.
"""

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, localcontext

from carboncli.models import EncodedOrder

ONE = 1 << 48
PRECISION = 100


@dataclass(frozen=True)
class DecodedOrder:
    liquidity: int
    lowest_rate: Decimal
    highest_rate: Decimal
    marginal_rate: Decimal


def encode_rate(value: Decimal) -> int:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        data = int((Decimal(value).sqrt() * ONE).to_integral_value(rounding=ROUND_FLOOR))
    length = (data // ONE).bit_length()
    return (data >> length) << length


def decode_rate(value: int | Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return (Decimal(value) / ONE) ** 2


def encode_float(value: int) -> int:
    exponent = (value // ONE).bit_length()
    mantissa = value >> exponent
    return (ONE * exponent) | mantissa


def decode_float(value: int) -> int:
    return (value % ONE) << (value // ONE)


def capacity(y: int, low: int, high: int, marginal: int) -> int:
    """z for liquidity y with encoded rates low <= marginal <= high."""
    if not low <= marginal <= high:
        raise ValueError(f"Marginal rate {marginal} outside range [{low}, {high}]")
    if high == marginal:
        return y
    if marginal == low:
        if y != 0:
            raise ValueError("Marginal rate at the low edge requires zero liquidity")
        return 0
    return y * (high - low) // (marginal - low)


def decode_order(order: EncodedOrder) -> DecodedOrder:
    low = decode_float(order.B)
    width = decode_float(order.A)

    if order.y == order.z or order.z == 0:
        marginal = Decimal(low + width)
    else:
        with localcontext() as ctx:
            ctx.prec = PRECISION
            marginal = Decimal(low) + Decimal(width) * order.y / order.z

    return DecodedOrder(
        liquidity=order.y,
        lowest_rate=decode_rate(low),
        highest_rate=decode_rate(low + width),
        marginal_rate=decode_rate(marginal),
    )


def order_rates(order: EncodedOrder) -> tuple[int, int]:
    """Encoded (low, high) rates straight from an order's A and B."""
    low = decode_float(order.B)
    return low, low + decode_float(order.A)
