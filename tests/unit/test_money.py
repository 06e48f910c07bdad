"""Tests for minor-unit money helpers and the settlement fee split."""

from src.mp_common.money import calculate_fee, minor_to_display
from src.mp_settlement.domain.fee import split_amount


class TestCalculateFee:
    def test_five_percent_of_1000(self) -> None:
        assert calculate_fee(1000, 500) == 50

    def test_rounds_half_up(self) -> None:
        # 10 * 5% = 0.5 → 1
        assert calculate_fee(10, 500) == 1

    def test_rounds_down_below_half(self) -> None:
        # 9 * 5% = 0.45 → 0
        assert calculate_fee(9, 500) == 0

    def test_zero_bps(self) -> None:
        assert calculate_fee(1000, 0) == 0

    def test_non_positive_amount(self) -> None:
        assert calculate_fee(0, 500) == 0
        assert calculate_fee(-100, 500) == 0


class TestSplitAmount:
    def test_1000_splits_50_950(self) -> None:
        split = split_amount(1000, 500)
        assert split.platform_fee == 50
        assert split.seller_amount == 950

    def test_parts_always_sum_to_amount(self) -> None:
        for amount in (1, 7, 19, 999, 2500, 123457):
            split = split_amount(amount, 500)
            assert split.seller_amount + split.platform_fee == amount


class TestMinorToDisplay:
    def test_inr(self) -> None:
        assert minor_to_display(250000, "inr") == "₹2,500.00"

    def test_paise(self) -> None:
        assert minor_to_display(5, "inr") == "₹0.05"

    def test_unknown_currency_uses_code(self) -> None:
        assert minor_to_display(1000, "chf") == "CHF 10.00"

    def test_negative(self) -> None:
        assert minor_to_display(-150, "usd") == "-$1.50"
