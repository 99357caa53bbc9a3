"""LMSR pricing engine — pure cost-function math, no state.

cost(n_yes, n_no, b) = b * ln(exp(n_yes / b) + exp(n_no / b))

Share counters and b are 18-decimal fixed point (see pm_common.fixed_point).
Trade amounts and returned costs are integer token units; the conversion is the
exact factor 10**(18 - token_decimals) in both directions, and costs converted
back to token units are floored.
"""

from src.pm_common import fixed_point as fp
from src.pm_common.enums import Side
from src.pm_common.errors import PricingDomainError


class PricingEngine:
    def __init__(self, token_decimals: int) -> None:
        self.token_decimals = token_decimals
        self.scale_factor = fp.scale_factor_for(token_decimals)

    # ------------------------------------------------------------------
    # Unit conversion
    # ------------------------------------------------------------------

    def to_fixed(self, units: int) -> int:
        return units * self.scale_factor

    def to_units(self, value: int) -> int:
        """Engine precision -> token units, floored."""
        return value // self.scale_factor

    # ------------------------------------------------------------------
    # Curve
    # ------------------------------------------------------------------

    @staticmethod
    def cost(n_yes: int, n_no: int, b: int) -> int:
        if b <= 0:
            raise PricingDomainError(f"liquidity parameter must be positive, got {b}")
        exp_yes = fp.exp(fp.div(n_yes, b))
        exp_no = fp.exp(fp.div(n_no, b))
        return fp.mul(b, fp.ln(fp.add(exp_yes, exp_no)))

    @staticmethod
    def price(n_yes: int, n_no: int, b: int, side: Side) -> int:
        """Marginal price of one share of ``side`` (softmax of n/b), fixed point."""
        if b <= 0:
            raise PricingDomainError(f"liquidity parameter must be positive, got {b}")
        exp_yes = fp.exp(fp.div(n_yes, b))
        exp_no = fp.exp(fp.div(n_no, b))
        numerator = exp_yes if side == Side.YES else exp_no
        return fp.div(numerator, fp.add(exp_yes, exp_no))

    def cost_to_buy(self, n_yes: int, n_no: int, b: int, side: Side, amount: int) -> int:
        """Token units needed to add ``amount`` shares of ``side``."""
        if amount <= 0:
            raise PricingDomainError(f"amount must be positive, got {amount}")
        delta = self.to_fixed(amount)
        before = self.cost(n_yes, n_no, b)
        if side == Side.YES:
            after = self.cost(fp.add(n_yes, delta), n_no, b)
        else:
            after = self.cost(n_yes, fp.add(n_no, delta), b)
        return self.to_units(after - before)

    def revenue_from_sell(
        self, n_yes: int, n_no: int, b: int, side: Side, amount: int
    ) -> int:
        """Token units returned for removing ``amount`` shares of ``side``."""
        if amount <= 0:
            raise PricingDomainError(f"amount must be positive, got {amount}")
        delta = self.to_fixed(amount)
        outstanding = n_yes if side == Side.YES else n_no
        if delta > outstanding:
            raise PricingDomainError(
                f"cannot sell {amount} {side.value} shares, only "
                f"{self.to_units(outstanding)} outstanding"
            )
        before = self.cost(n_yes, n_no, b)
        if side == Side.YES:
            after = self.cost(n_yes - delta, n_no, b)
        else:
            after = self.cost(n_yes, n_no - delta, b)
        return self.to_units(before - after)
