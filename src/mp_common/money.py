"""Integer arithmetic for minor-unit money (paise for INR).

All prices, bid amounts, fees and payouts are int minor units. No float, no
Decimal. The gateway is sent the same integers.
"""

_CURRENCY_SYMBOLS = {"inr": "₹", "usd": "$", "eur": "€", "gbp": "£"}


def minor_to_display(amount: int, currency: str = "inr") -> str:
    """Convert minor units to a display string: 250000 -> '₹2,500.00'."""
    symbol = _CURRENCY_SYMBOLS.get(currency.lower(), currency.upper() + " ")
    sign = "-" if amount < 0 else ""
    abs_amount = -amount if amount < 0 else amount
    return f"{sign}{symbol}{abs_amount // 100:,}.{abs_amount % 100:02d}"


def calculate_fee(amount: int, fee_bps: int) -> int:
    """Platform fee rounded half-up to the nearest minor unit.

    fee = round(amount * fee_bps / 10000), computed as
    (amount * fee_bps + 5000) // 10000 so 1000 @ 500 bps -> 50.
    """
    if amount <= 0 or fee_bps <= 0:
        return 0
    return (amount * fee_bps + 5000) // 10000
