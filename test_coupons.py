from datetime import datetime, timedelta, timezone

from conftest import add_coupon, user_id_for
from storefront.models.coupon import Coupon
from storefront.services.coupon_service import CouponService
from storefront.services.discount_calculator import DiscountCalculator


def test_get_coupon_none(customer):
    response = customer.get("/coupons")
    assert response.status_code == 200
    assert response.json() is None


def test_get_active_coupon(customer):
    add_coupon(user_id_for("customer@shop.io"))
    response = customer.get("/coupons")
    assert response.status_code == 200
    data = response.json()
    assert data["code"] == "GIFT123ABC"
    assert data["discountPercentage"] == 10
    assert data["isActive"] is True


def test_get_coupon_requires_auth(client):
    assert client.get("/coupons").status_code == 401


def test_validate_coupon(customer):
    add_coupon(user_id_for("customer@shop.io"), percentage=15)
    response = customer.post("/coupons/validate", json={"code": "GIFT123ABC"})
    assert response.status_code == 200
    assert response.json() == {"message": "Coupon is valid", "code": "GIFT123ABC", "discountPercentage": 15}


def test_validate_coupon_of_another_user(customer, admin):
    add_coupon(user_id_for("admin@shop.io"))
    response = customer.post("/coupons/validate", json={"code": "GIFT123ABC"})
    assert response.status_code == 404
    assert response.json()["error"]["detail"] == "Coupon not found or inactive"
    # still valid for its owner
    assert admin.post("/coupons/validate", json={"code": "GIFT123ABC"}).status_code == 200


def test_validate_inactive_coupon(customer):
    add_coupon(user_id_for("customer@shop.io"), is_active=False)
    assert customer.post("/coupons/validate", json={"code": "GIFT123ABC"}).status_code == 404


def test_validate_expired_coupon_flips_inactive_once(customer, db):
    coupon_id = add_coupon(user_id_for("customer@shop.io"), days=-1)

    first = customer.post("/coupons/validate", json={"code": "GIFT123ABC"})
    assert first.status_code == 400
    assert first.json()["error"]["detail"] == "Coupon has expired"
    assert db.query(Coupon).filter(Coupon.id == coupon_id).first().is_active is False

    second = customer.post("/coupons/validate", json={"code": "GIFT123ABC"})
    assert second.status_code == 404


def test_issue_welcome_coupon_replaces_previous(customer, db):
    user_id = user_id_for("customer@shop.io")
    add_coupon(user_id, code="GIFTOLD111")

    coupon = CouponService.issue_welcome_coupon(db, user_id)
    assert coupon.code.startswith("GIFT") and len(coupon.code) == 10
    assert coupon.code[4:].isalnum() and coupon.code[4:].upper() == coupon.code[4:]
    assert coupon.discount_percentage == 10
    assert coupon.is_active is True
    assert not coupon.is_expired(datetime.now(timezone.utc) + timedelta(days=29))
    assert coupon.is_expired(datetime.now(timezone.utc) + timedelta(days=31))

    codes = [c.code for c in db.query(Coupon).filter(Coupon.user_id == user_id).all()]
    assert codes == [coupon.code]


def test_deactivate_is_idempotent(customer, db):
    user_id = user_id_for("customer@shop.io")
    add_coupon(user_id)
    CouponService.deactivate(db, "GIFT123ABC", user_id)
    CouponService.deactivate(db, "GIFT123ABC", user_id)
    db.commit()
    assert CouponService.get_active_coupon(db, user_id) is None


def test_discount_ten_percent():
    assert DiscountCalculator.apply_discount(10000, 10) == 9000


def test_no_discount_leaves_total():
    assert DiscountCalculator.apply_discount(10000, None) == 10000


def test_discount_rounds_half_up():
    # 10% of 12345 is 1234.5
    assert DiscountCalculator.calculate_discount(12345, 10) == 1235


def test_to_minor_rounds_prices():
    assert DiscountCalculator.to_minor(19.99) == 1999
    assert DiscountCalculator.to_minor(0.005) == 1
