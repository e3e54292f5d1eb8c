"""
Integer fixed-point helpers.

Everything on a cost or quote path goes through these functions so the
rounding direction is explicit. Division truncates toward zero like the EVM,
never toward negative infinity like Python's ``//``.
"""
from zcurve_core.common.constants import UINT256_MAX
from zcurve_core.common.errors import ArithmeticOverflow


def div_trunc(a: int, b: int) -> int:
    """Integer division truncated toward zero."""
    if b == 0:
        raise ZeroDivisionError("division by zero")
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def div_up(a: int, b: int) -> int:
    """Ceiling division for non-negative operands."""
    if a < 0 or b <= 0:
        raise ValueError("div_up expects a >= 0 and b > 0")
    return -(-a // b)


def mul_div(a: int, b: int, d: int) -> int:
    """(a * b) / d with a single truncation at the end."""
    return div_trunc(a * b, d)


def mul_div_up(a: int, b: int, d: int) -> int:
    return div_up(a * b, d)


def checked_uint256(value: int, label: str = "value") -> int:
    """Return ``value`` unchanged if it fits a uint256, else raise ArithmeticOverflow."""
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflow(f"{label} does not fit in uint256: {value}")
    return value


def quantize_up(amount: int, unit: int) -> int:
    return div_up(amount, unit) * unit
