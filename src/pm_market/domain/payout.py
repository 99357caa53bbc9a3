"""Pro-rata payout after resolution."""

from src.pm_common.enums import Resolution
from src.pm_market.domain.models import HolderBalance, Pool


def compute_payout(pool: Pool, balance: HolderBalance) -> int:
    """Floored pro-rata share of pool collateral for one holder.

    YES / NO: winning-side balance over winning-side supply.
    INCONCLUSIVE: both balances over both supplies.
    UNRESOLVED: 0.
    """
    if pool.resolution == Resolution.YES:
        held, supply = balance.yes, pool.total_supply_yes
    elif pool.resolution == Resolution.NO:
        held, supply = balance.no, pool.total_supply_no
    elif pool.resolution == Resolution.INCONCLUSIVE:
        held = balance.yes + balance.no
        supply = pool.total_supply_yes + pool.total_supply_no
    else:
        return 0
    if supply == 0 or held == 0:
        return 0
    return pool.collateral * held // supply
