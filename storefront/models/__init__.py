from .user import User
from .product import Product
from .coupon import Coupon
from .order import Order, OrderItem
from .cart_item import CartItem

__all__ = [
    "User",
    "Product",
    "Coupon",
    "Order",
    "OrderItem",
    "CartItem",
]
