from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Iterable, Optional

getcontext().prec = 28


def D(x) -> Decimal:
    return Decimal(str(x))


def round_half_up(x: Decimal) -> int:
    return int(x.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def round2(x: Decimal) -> Decimal:
    return x.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class DiscountCalculator:
    """Money arithmetic for checkout. Server totals are in minor units (cents)."""

    @staticmethod
    def to_minor(price) -> int:
        return round_half_up(D(price) * 100)

    @staticmethod
    def calculate_subtotal(items: Iterable) -> int:
        """Each item needs ``price`` (major units) and ``quantity``."""
        return sum(DiscountCalculator.to_minor(item.price) * item.quantity for item in items)

    @staticmethod
    def calculate_discount(total_minor: int, discount_percentage: Optional[int]) -> int:
        if not discount_percentage:
            return 0
        return round_half_up(D(total_minor) * D(discount_percentage) / D(100))

    @staticmethod
    def apply_discount(total_minor: int, discount_percentage: Optional[int]) -> int:
        return total_minor - DiscountCalculator.calculate_discount(total_minor, discount_percentage)

    @staticmethod
    def to_major(amount_minor: int) -> float:
        return float(D(amount_minor) / D(100))
