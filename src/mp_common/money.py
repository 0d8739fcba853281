"""Integer arithmetic utilities for rupee amounts.

All prices, totals and taxes are int paise (1 rupee = 100 paise). No float.
"""

from decimal import ROUND_HALF_UP, Decimal

GST_RATE_PERCENT = 18
FREE_SHIPPING_THRESHOLD = 5000_00  # strictly above ₹5,000 ships free
FLAT_SHIPPING = 150_00


def rupees_to_paise(value: float | int | str) -> int:
    """Convert a rupee amount from user input to paise, rounding half up."""
    return int((Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def paise_to_display(paise: int) -> str:
    """Convert paise to display string with Indian digit grouping.

    123456789 -> '₹12,34,567.89', -1200 -> '-₹12.00'.
    """
    sign = "-" if paise < 0 else ""
    paise = abs(paise)
    rupees, frac = divmod(paise, 100)
    digits = str(rupees)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups) + "," + tail
    return f"{sign}₹{digits}.{frac:02d}"


def calculate_tax(subtotal: int) -> int:
    """GST on the subtotal, rounded half up to the nearest paisa."""
    return (subtotal * GST_RATE_PERCENT + 50) // 100


def calculate_shipping(subtotal: int) -> int:
    return 0 if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
