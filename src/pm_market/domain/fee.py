"""Trade fee calculation and referrer/reserve split."""

from src.pm_market.domain.models import FeeSplit
from src.pm_token.domain.token import ZERO_ADDRESS


def calc_fee(trade_value: int, fee_bps: int) -> int:
    """Ceiling division fee: (trade_value x fee_bps + 9999) // 10000."""
    if trade_value <= 0 or fee_bps == 0:
        return 0
    return (trade_value * fee_bps + 9999) // 10000


def is_valid_referrer(referrer: str | None, reserve_address: str) -> bool:
    if not referrer:
        return False
    referrer = referrer.lower()
    return referrer != ZERO_ADDRESS and referrer != reserve_address.lower()


def split_fee(
    fee: int,
    referrer: str | None,
    reserve_address: str,
    total_fee_bps: int,
    referrer_fee_bps: int,
) -> FeeSplit:
    """Referrer gets referrer_fee_bps / total_fee_bps of the fee, reserve the rest.

    referrer + reserve == fee always; the referrer share is 0 for the zero
    address, a missing referrer, or the reserve itself.
    """
    if is_valid_referrer(referrer, reserve_address) and total_fee_bps > 0:
        referrer_fee = fee * referrer_fee_bps // total_fee_bps
        referrer_address = referrer.lower()  # type: ignore[union-attr]
    else:
        referrer_fee = 0
        referrer_address = None
    return FeeSplit(
        total=fee,
        referrer=referrer_fee,
        reserve=fee - referrer_fee,
        referrer_address=referrer_address,
    )
