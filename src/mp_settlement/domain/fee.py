"""Platform fee split: seller_amount + platform_fee == amount, always."""
from dataclasses import dataclass

from src.mp_common.money import calculate_fee


@dataclass(frozen=True)
class FeeSplit:
    amount: int
    platform_fee: int
    seller_amount: int


def split_amount(amount: int, fee_bps: int) -> FeeSplit:
    """1000 @ 500 bps -> fee 50, seller 950. Fee rounds half-up."""
    fee = calculate_fee(amount, fee_bps)
    return FeeSplit(amount=amount, platform_fee=fee, seller_amount=amount - fee)
