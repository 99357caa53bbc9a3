"""Pool invariant verification after each ledger mutation."""

import logging

from src.pm_market.domain.models import HolderBalance, Pool

logger = logging.getLogger(__name__)


def verify_pool_invariants(
    pool: Pool, balances: list[HolderBalance], scale_factor: int
) -> None:
    """Verify critical pool invariants. Raises AssertionError if violated.

    INV-1: total_supply_yes == sum of YES balances, same for NO
    INV-2: n_yes == total_supply_yes * scale_factor, same for NO
    INV-3: collateral >= 0
    """
    yes_sum = sum(b.yes for b in balances)
    no_sum = sum(b.no for b in balances)

    assert pool.total_supply_yes == yes_sum, (
        f"INV-1 violated: total_supply_yes={pool.total_supply_yes} != balances={yes_sum}"
    )
    assert pool.total_supply_no == no_sum, (
        f"INV-1 violated: total_supply_no={pool.total_supply_no} != balances={no_sum}"
    )
    assert pool.n_yes == pool.total_supply_yes * scale_factor, (
        f"INV-2 violated: n_yes={pool.n_yes} != supply_yes * scale"
    )
    assert pool.n_no == pool.total_supply_no * scale_factor, (
        f"INV-2 violated: n_no={pool.n_no} != supply_no * scale"
    )
    assert pool.collateral >= 0, f"INV-3 violated: collateral={pool.collateral}"

    logger.debug(
        "Invariants OK: pool=%d, collateral=%d, yes=%d, no=%d",
        pool.id, pool.collateral, pool.total_supply_yes, pool.total_supply_no,
    )
