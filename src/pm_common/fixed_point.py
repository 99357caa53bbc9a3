"""Signed 18-decimal fixed-point arithmetic on plain ints.

A value ``v`` represents ``v / 10**18``. Results must fit in the signed 256-bit
range; anything outside it raises instead of wrapping. ``exp`` and ``ln`` are
evaluated with 18 guard digits (internal scale 10**36) and floored, so they are
accurate to one unit in the last place.

Bounds:
  exp: input <= EXP_MAX_INPUT (~133.0843), returns 0 below EXP_MIN_INPUT (~-41.4465)
  ln:  input > 0
"""

from src.pm_common.errors import ConfigurationError, PricingDomainError, PricingOverflowError

DECIMALS = 18
SCALE = 10**DECIMALS
ONE = SCALE

_GUARD = 10**18
_HI = SCALE * _GUARD
# ln(2) floored at 36 decimals
_LN2_HI = 693147180559945309417232121458176568

INT256_MAX = 2**255 - 1
INT256_MIN = -(2**255)

# Largest input whose exp still fits in INT256 at 18 decimals
EXP_MAX_INPUT = 133_084258667509499440
# Below this exp(x) floors to zero at 18 decimals
EXP_MIN_INPUT = -41_446531673892822322


def _checked(value: int, op: str) -> int:
    if value > INT256_MAX or value < INT256_MIN:
        raise PricingOverflowError(f"{op} result out of int256 range")
    return value


def from_int(n: int) -> int:
    return _checked(n * SCALE, "from_int")


def add(a: int, b: int) -> int:
    return _checked(a + b, "add")


def sub(a: int, b: int) -> int:
    return _checked(a - b, "sub")


def mul(a: int, b: int) -> int:
    """Floored fixed-point product."""
    return _checked(a * b // SCALE, "mul")


def div(a: int, b: int) -> int:
    """Floored fixed-point quotient."""
    if b == 0:
        raise PricingDomainError("division by zero")
    return _checked(a * SCALE // b, "div")


def exp(x: int) -> int:
    """Natural exponential, floored.

    Range reduction x = k*ln2 + r with 0 <= r < ln2, Taylor series for e^r at
    36 decimals, then a shift by k.
    """
    if x > EXP_MAX_INPUT:
        raise PricingOverflowError(f"exp input {x} exceeds {EXP_MAX_INPUT}")
    if x < EXP_MIN_INPUT:
        return 0

    xh = x * _GUARD
    k = xh // _LN2_HI
    r = xh - k * _LN2_HI

    term = _HI
    total = _HI
    n = 1
    while term:
        term = term * r // (_HI * n)
        total += term
        n += 1

    scaled = total << k if k >= 0 else total >> -k
    return _checked(scaled // _GUARD, "exp")


def ln(x: int) -> int:
    """Natural logarithm, floored.

    Normalizes x = m * 2^k with 1 <= m < 2 and sums the atanh series
    ln(m) = 2 * sum(z^(2i+1) / (2i+1)), z = (m-1)/(m+1).
    """
    if x <= 0:
        raise PricingDomainError(f"ln of non-positive value {x}")

    xh = x * _GUARD
    k = xh.bit_length() - _HI.bit_length()
    m = xh >> k if k >= 0 else xh << -k
    while m >= 2 * _HI:
        m >>= 1
        k += 1
    while m < _HI:
        m <<= 1
        k -= 1

    z = (m - _HI) * _HI // (m + _HI)
    z2 = z * z // _HI
    term = z
    total = 0
    n = 1
    while term:
        total += term // n
        term = term * z2 // _HI
        n += 2

    return _checked((k * _LN2_HI + 2 * total) // _GUARD, "ln")


def scale_factor_for(token_decimals: int) -> int:
    """Exact multiplier from token units to engine precision."""
    if not (0 <= token_decimals <= DECIMALS):
        raise ConfigurationError(
            f"token decimals must be within 0-{DECIMALS}, got {token_decimals}"
        )
    return 10 ** (DECIMALS - token_decimals)


def to_display(value: int) -> str:
    """Render a fixed-point value as a decimal string: 1500000000000000000 -> '1.5'."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), SCALE)
    if frac == 0:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac:018d}".rstrip("0")
