import asyncio

import httpx
import pytest

from storefront.client import stores
from storefront.client.http import ApiError, StorefrontClient
from storefront.client.stores import AppSession, CartState, ProductState, UserState, calculate_totals


def error_body(detail):
    return {"error": {"status_code": 401, "detail": detail}}


class FakeApi:
    """Stands in for the server: 401 until a refresh succeeds."""

    def __init__(self):
        self.refresh_calls = 0
        self.refresh_ok = True
        self.access_valid = False
        self.always_unauthorized = False
        self.hits = []
        self.cart = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.hits.append((request.method, path))

        if path == "/auth/refresh-token":
            self.refresh_calls += 1
            # long enough for every concurrent caller to pile up on it
            await asyncio.sleep(0.05)
            if not self.refresh_ok:
                return httpx.Response(401, json=error_body("Invalid refresh token"))
            self.access_valid = True
            return httpx.Response(200, json={"message": "Access token refreshed successfully"})

        if path == "/auth/login":
            return httpx.Response(401, json=error_body("Invalid email or password"))

        if self.always_unauthorized or not self.access_valid:
            return httpx.Response(401, json=error_body("Unauthorized - Access token expired"))

        if path == "/products/featured":
            return httpx.Response(200, json=[{"id": 1, "name": "Tee", "price": 25.0}])
        if path == "/cart" and request.method == "GET":
            return httpx.Response(200, json=self.cart)
        if path == "/cart" and request.method == "POST":
            return httpx.Response(200, json=self.cart)
        if path == "/coupons/validate":
            return httpx.Response(200, json={"message": "Coupon is valid", "code": "GIFTAAAAAA", "discountPercentage": 10})
        if path == "/products/1" and request.method == "PATCH":
            return httpx.Response(200, json={"id": 1, "name": "Tee", "price": 25.0, "isFeatured": True})
        return httpx.Response(404, json={"error": {"status_code": 404, "detail": "Not found"}})


def make_api(fake: FakeApi) -> StorefrontClient:
    return StorefrontClient("http://storefront.test", transport=httpx.MockTransport(fake.handler))


def run(coro):
    return asyncio.run(coro)


def test_concurrent_401s_share_one_refresh():
    fake = FakeApi()

    async def scenario():
        async with make_api(fake) as api:
            responses = await asyncio.gather(api.get("/products/featured"), api.get("/cart"))
            return [r.status_code for r in responses], api

    statuses, api = run(scenario())
    assert statuses == [200, 200]
    assert fake.refresh_calls == 1
    assert api._refresher.in_flight is False
    assert api._refresher.waiters == 0


def test_many_concurrent_401s_share_one_refresh():
    fake = FakeApi()

    async def scenario():
        async with make_api(fake) as api:
            await asyncio.gather(*[api.get("/products/featured") for _ in range(5)])

    run(scenario())
    assert fake.refresh_calls == 1
    assert fake.hits.count(("GET", "/products/featured")) == 10


def test_refresh_slot_resets_after_completion():
    fake = FakeApi()

    async def scenario():
        async with make_api(fake) as api:
            await api.get("/products/featured")
            fake.access_valid = False
            await api.get("/products/featured")

    run(scenario())
    assert fake.refresh_calls == 2


def test_failed_refresh_logs_out_and_raises_original_error():
    fake = FakeApi()
    fake.refresh_ok = False
    expired = []

    async def scenario():
        async with make_api(fake) as api:
            api.on_session_expired(lambda: expired.append(True))
            api.cookies.set("refreshToken", "stale")
            results = await asyncio.gather(api.get("/products/featured"), api.get("/cart"), return_exceptions=True)
            return results, api

    results, api = run(scenario())
    for error in results:
        assert isinstance(error, ApiError)
        assert error.status_code == 401
        assert error.message == "Unauthorized - Access token expired"
    assert fake.refresh_calls == 1
    assert expired
    assert len(api.cookies) == 0


def test_request_is_replayed_only_once():
    fake = FakeApi()
    fake.always_unauthorized = True

    async def scenario():
        async with make_api(fake) as api:
            with pytest.raises(ApiError) as excinfo:
                await api.get("/products/featured")
            return excinfo.value

    error = run(scenario())
    assert error.status_code == 401
    assert fake.refresh_calls == 1
    assert fake.hits.count(("GET", "/products/featured")) == 2


def test_login_failure_does_not_refresh():
    fake = FakeApi()

    async def scenario():
        async with make_api(fake) as api:
            with pytest.raises(ApiError):
                await api.post("/auth/login", json={"email": "a@shop.io", "password": "x"})

    run(scenario())
    assert fake.refresh_calls == 0


def test_calculate_totals():
    cart = [{"id": 1, "price": 50.0, "quantity": 2}]
    assert calculate_totals(cart, None) == (100.0, 100.0)
    assert calculate_totals(cart, {"discountPercentage": 10}) == (100.0, 90.0)
    assert calculate_totals([], {"discountPercentage": 10}) == (0.0, 0.0)


def test_apply_coupon_recomputes_totals():
    fake = FakeApi()
    fake.access_valid = True
    state = CartState(cart=({"id": 1, "price": 50.0, "quantity": 2},), subtotal=100.0, total=100.0)

    async def scenario():
        async with make_api(fake) as api:
            return await stores.apply_coupon(api, state, "GIFTAAAAAA")

    result = run(scenario())
    assert result.state.is_coupon_applied is True
    assert result.state.total == 90.0
    assert result.notifications[0].level == "success"

    removed = stores.remove_coupon(result.state)
    assert removed.state.total == 100.0
    assert removed.state.coupon is None


def test_failed_action_keeps_state_and_notifies():
    fake = FakeApi()
    fake.refresh_ok = False
    state = CartState(cart=({"id": 1, "price": 50.0, "quantity": 1},), subtotal=50.0, total=50.0)

    async def scenario():
        async with make_api(fake) as api:
            return await stores.apply_coupon(api, state, "NOPE")

    result = run(scenario())
    assert result.state is state
    assert result.notifications[0].level == "error"
    assert result.notifications[0].message == "Unauthorized - Access token expired"


def test_add_to_cart_increments_existing_item():
    fake = FakeApi()
    fake.access_valid = True
    product = {"id": 1, "name": "Tee", "price": 25.0}

    async def scenario():
        async with make_api(fake) as api:
            first = await stores.add_to_cart(api, CartState(), product)
            return await stores.add_to_cart(api, first.state, product)

    result = run(scenario())
    assert result.state.cart == ({"id": 1, "name": "Tee", "price": 25.0, "quantity": 2},)
    assert result.state.subtotal == 50.0


def test_signup_password_mismatch_skips_request():
    fake = FakeApi()

    async def scenario():
        async with make_api(fake) as api:
            return await stores.signup(api, UserState(), "Jane", "jane@shop.io", "secret123", "secret124")

    result = run(scenario())
    assert result.state.user is None
    assert result.notifications[0].message == "Passwords do not match"
    assert fake.hits == []


def test_session_dispatch_and_expiry():
    fake = FakeApi()
    fake.refresh_ok = False

    async def scenario():
        async with make_api(fake) as api:
            session = AppSession(api, user=UserState(user={"id": 7, "name": "Jane"}))
            session.products = ProductState(products=({"id": 1, "name": "Tee", "isFeatured": False},))
            await session.dispatch("products", stores.toggle_featured_product, 1)
            return session

    session = run(scenario())
    # the refresh failed, so the user is signed out and products are untouched
    assert session.user.user is None
    assert session.products.products[0]["isFeatured"] is False
    assert [n.level for n in session.notifications] == ["error"]


def test_session_dispatch_pure_action():
    async def scenario():
        async with make_api(FakeApi()) as api:
            session = AppSession(api, cart=CartState(cart=({"id": 1, "price": 5.0, "quantity": 1},)))
            await session.dispatch("cart", stores.clear_cart)
            return session

    session = run(scenario())
    assert session.cart == CartState()
