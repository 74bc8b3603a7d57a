"""
Client-side mirrors of cart, user and product state.

Each slice is an immutable dataclass. Actions take the API client and the
current slice and return an ``ActionResult`` holding the next slice plus any
user-facing notifications. Actions never raise: a failed call becomes an
error notification and the previous state is kept.
"""

import inspect
import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

import httpx

from storefront.client.http import ApiError, StorefrontClient
from storefront.services.discount_calculator import D, round2

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


def success(message: str) -> Notification:
    return Notification("success", message)


def error(message: str) -> Notification:
    return Notification("error", message)


@dataclass(frozen=True)
class ActionResult(Generic[S]):
    state: S
    notifications: Tuple[Notification, ...] = ()


def _failure(state: S, exc: Exception, fallback: str) -> ActionResult[S]:
    message = exc.message if isinstance(exc, ApiError) and exc.message else fallback
    return ActionResult(state, (error(message),))


# =========================================================
# CART
# =========================================================

@dataclass(frozen=True)
class CartState:
    cart: Tuple[Dict[str, Any], ...] = ()
    coupon: Optional[Dict[str, Any]] = None
    subtotal: float = 0.0
    total: float = 0.0
    is_coupon_applied: bool = False


def calculate_totals(cart, coupon: Optional[Dict[str, Any]]) -> Tuple[float, float]:
    """Same percentage rule as the server, in major units rounded to cents."""
    subtotal = sum((D(item["price"]) * item["quantity"] for item in cart), Decimal(0))
    total = subtotal
    if coupon:
        total = subtotal - subtotal * D(coupon["discountPercentage"]) / D(100)
    return float(round2(subtotal)), float(round2(total))


def with_totals(state: CartState, **changes) -> CartState:
    state = replace(state, **changes)
    subtotal, total = calculate_totals(state.cart, state.coupon)
    return replace(state, subtotal=subtotal, total=total)


async def get_cart_items(api: StorefrontClient, state: CartState) -> ActionResult[CartState]:
    try:
        response = await api.get("/cart")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(state, e, "Failed to load cart")
    return ActionResult(with_totals(state, cart=tuple(response.json())))


async def add_to_cart(api: StorefrontClient, state: CartState, product: Dict[str, Any]) -> ActionResult[CartState]:
    try:
        await api.post("/cart", json={"productId": product["id"]})
    except (ApiError, httpx.HTTPError) as e:
        return _failure(state, e, "An error occurred")

    if any(item["id"] == product["id"] for item in state.cart):
        cart = tuple(
            {**item, "quantity": item["quantity"] + 1} if item["id"] == product["id"] else item
            for item in state.cart
        )
    else:
        cart = state.cart + ({**product, "quantity": 1},)
    return ActionResult(with_totals(state, cart=cart), (success("Product added to cart"),))


async def remove_from_cart(api: StorefrontClient, state: CartState, product_id: int) -> ActionResult[CartState]:
    try:
        await api.delete("/cart", json={"productId": product_id})
    except (ApiError, httpx.HTTPError) as e:
        return _failure(state, e, "Failed to remove product")
    cart = tuple(item for item in state.cart if item["id"] != product_id)
    return ActionResult(with_totals(state, cart=cart), (success("Product removed from cart"),))


async def update_quantity(
    api: StorefrontClient, state: CartState, product_id: int, quantity: int
) -> ActionResult[CartState]:
    if quantity == 0:
        return await remove_from_cart(api, state, product_id)
    try:
        await api.put(f"/cart/{product_id}", json={"quantity": quantity})
    except (ApiError, httpx.HTTPError) as e:
        return _failure(state, e, "Failed to update quantity")
    cart = tuple({**item, "quantity": quantity} if item["id"] == product_id else item for item in state.cart)
    return ActionResult(with_totals(state, cart=cart))


def clear_cart(state: CartState) -> ActionResult[CartState]:
    return ActionResult(CartState())


async def get_my_coupon(api: StorefrontClient, state: CartState) -> ActionResult[CartState]:
    try:
        response = await api.get("/coupons")
    except (ApiError, httpx.HTTPError) as e:
        logger.info(f"Error fetching coupon: {e}")
        return _failure(state, e, "Failed to fetch coupon")
    return ActionResult(replace(state, coupon=response.json()))


async def apply_coupon(api: StorefrontClient, state: CartState, code: str) -> ActionResult[CartState]:
    try:
        response = await api.post("/coupons/validate", json={"code": code})
    except (ApiError, httpx.HTTPError) as e:
        return _failure(state, e, "Failed to apply coupon")
    next_state = with_totals(state, coupon=response.json(), is_coupon_applied=True)
    return ActionResult(next_state, (success("Coupon applied successfully"),))


def remove_coupon(state: CartState) -> ActionResult[CartState]:
    next_state = with_totals(state, coupon=None, is_coupon_applied=False)
    return ActionResult(next_state, (success("Coupon removed"),))


# =========================================================
# USER
# =========================================================

@dataclass(frozen=True)
class UserState:
    user: Optional[Dict[str, Any]] = None
    loading: bool = False
    checking_auth: bool = False


async def signup(
    api: StorefrontClient, state: UserState, name: str, email: str, password: str, confirm_password: str
) -> ActionResult[UserState]:
    if password != confirm_password:
        return ActionResult(replace(state, loading=False), (error("Passwords do not match"),))
    try:
        response = await api.post("/auth/signup", json={"name": name, "email": email, "password": password})
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "An error occurred")
    return ActionResult(replace(state, user=response.json()["user"], loading=False))


async def login(api: StorefrontClient, state: UserState, email: str, password: str) -> ActionResult[UserState]:
    try:
        response = await api.post("/auth/login", json={"email": email, "password": password})
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "An error occurred")
    return ActionResult(replace(state, user=response.json()["user"], loading=False))


async def check_auth(api: StorefrontClient, state: UserState) -> ActionResult[UserState]:
    # a missing session is the normal logged-out case, so no notification
    try:
        response = await api.get("/auth/profile")
    except (ApiError, httpx.HTTPError) as e:
        logger.info(f"Not authenticated: {e}")
        return ActionResult(replace(state, user=None, checking_auth=False))
    return ActionResult(replace(state, user=response.json(), checking_auth=False))


async def logout(api: StorefrontClient, state: UserState) -> ActionResult[UserState]:
    try:
        await api.post("/auth/logout")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(state, e, "An error occurred during logout")
    return ActionResult(replace(state, user=None))


async def refresh_token(api: StorefrontClient, state: UserState) -> ActionResult[UserState]:
    try:
        await api.post("/auth/refresh-token")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, user=None, checking_auth=False), e, "Session expired")
    return ActionResult(replace(state, checking_auth=False))


# =========================================================
# PRODUCTS
# =========================================================

@dataclass(frozen=True)
class ProductState:
    products: Tuple[Dict[str, Any], ...] = ()
    loading: bool = False


async def fetch_all_products(api: StorefrontClient, state: ProductState) -> ActionResult[ProductState]:
    try:
        response = await api.get("/products")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "Failed to fetch products")
    return ActionResult(replace(state, products=tuple(response.json()["products"]), loading=False))


async def fetch_products_by_category(
    api: StorefrontClient, state: ProductState, category: str
) -> ActionResult[ProductState]:
    try:
        response = await api.get(f"/products/category/{category}")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "Failed to fetch products")
    return ActionResult(replace(state, products=tuple(response.json()["products"]), loading=False))


async def fetch_featured_products(api: StorefrontClient, state: ProductState) -> ActionResult[ProductState]:
    try:
        response = await api.get("/products/featured")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "Failed to fetch products")
    return ActionResult(replace(state, products=tuple(response.json()), loading=False))


async def create_product(
    api: StorefrontClient, state: ProductState, product_data: Dict[str, Any]
) -> ActionResult[ProductState]:
    try:
        response = await api.post("/products", json=product_data)
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "An error occurred while creating the product")
    products = state.products + (response.json()["product"],)
    return ActionResult(replace(state, products=products, loading=False), (success("Product created successfully"),))


async def delete_product(api: StorefrontClient, state: ProductState, product_id: int) -> ActionResult[ProductState]:
    try:
        await api.delete(f"/products/{product_id}")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "An error occurred while deleting the product")
    products = tuple(p for p in state.products if p["id"] != product_id)
    return ActionResult(replace(state, products=products, loading=False), (success("Product deleted successfully"),))


async def toggle_featured_product(
    api: StorefrontClient, state: ProductState, product_id: int
) -> ActionResult[ProductState]:
    try:
        response = await api.patch(f"/products/{product_id}")
    except (ApiError, httpx.HTTPError) as e:
        return _failure(replace(state, loading=False), e, "An error occurred while updating the product")
    updated = response.json()
    products = tuple(updated if p["id"] == product_id else p for p in state.products)
    return ActionResult(replace(state, products=products, loading=False), (success("Product updated successfully"),))


# =========================================================
# SESSION
# =========================================================

@dataclass
class AppSession:
    """Owns the one copy of each slice and the notification log."""

    api: StorefrontClient
    cart: CartState = field(default_factory=CartState)
    user: UserState = field(default_factory=UserState)
    products: ProductState = field(default_factory=ProductState)
    notifications: List[Notification] = field(default_factory=list)

    def __post_init__(self):
        self.api.on_session_expired(self._on_session_expired)

    def _on_session_expired(self) -> None:
        self.user = replace(self.user, user=None, checking_auth=False)

    async def dispatch(self, slice_name: str, action, *args: Any) -> ActionResult:
        state = getattr(self, slice_name)
        if inspect.iscoroutinefunction(action):
            result = await action(self.api, state, *args)
        else:
            result = action(state, *args)
        setattr(self, slice_name, result.state)
        self.notifications.extend(result.notifications)
        return result
