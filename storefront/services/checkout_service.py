import json
import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.gateways.payments import PaymentGateway
from storefront.models.coupon import Coupon
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.user import User
from storefront.schemas.payment import CheckoutProduct
from storefront.services.coupon_service import CouponService
from storefront.services.discount_calculator import DiscountCalculator

logger = logging.getLogger(__name__)


class CheckoutService:
    def __init__(self, db: Session, payments: PaymentGateway):
        self.db = db
        self.payments = payments

    # ---------------------------------------------------------
    # 1. TOTALS
    # ---------------------------------------------------------
    def reprice(self, items: List[CheckoutProduct]) -> List[CheckoutProduct]:
        """Replace request prices with catalog prices."""
        ids = {item.id for item in items}
        catalog = {p.id: p for p in self.db.query(Product).filter(Product.id.in_(ids)).all()}
        repriced = []
        for item in items:
            product = catalog.get(item.id)
            if not product:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {item.id} not found")
            repriced.append(item.model_copy(update={"price": float(product.price), "name": product.name}))
        return repriced

    def compute_total(
        self, items: List[CheckoutProduct], coupon_code: Optional[str], user_id: int
    ) -> Tuple[int, Optional[Coupon]]:
        total = DiscountCalculator.calculate_subtotal(items)
        coupon = None
        if coupon_code:
            # a code that is not this user's active coupon is ignored, not rejected
            coupon = CouponService.find_active_coupon(self.db, coupon_code, user_id)
            if coupon:
                total = DiscountCalculator.apply_discount(total, coupon.discount_percentage)
        return total, coupon

    # ---------------------------------------------------------
    # 2. CHECKOUT SESSION
    # ---------------------------------------------------------
    def create_checkout_session(
        self, user: User, items: List[CheckoutProduct], coupon_code: Optional[str]
    ) -> Tuple[str, int]:
        if not items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Products array is required and cannot be empty.",
            )
        if not settings.CHECKOUT_TRUST_CLIENT_PRICES:
            items = self.reprice(items)

        total, coupon = self.compute_total(items, coupon_code, user.id)

        line_items = [
            {
                "price_data": {
                    "currency": "usd",
                    "product_data": {
                        "name": item.name,
                        "images": [item.image] if item.image else [],
                    },
                    "unit_amount": DiscountCalculator.to_minor(item.price),
                },
                "quantity": item.quantity,
            }
            for item in items
        ]
        discount_coupon_id = None
        if coupon:
            discount_coupon_id = self.payments.create_one_time_coupon(coupon.discount_percentage)

        metadata = {
            "userId": str(user.id),
            "couponCode": coupon_code or "",
            "products": json.dumps([
                {"id": item.id, "quantity": item.quantity, "price": item.price} for item in items
            ]),
        }
        session = self.payments.create_checkout_session(line_items, metadata, discount_coupon_id)

        if total > settings.COUPON_THRESHOLD_MINOR:
            CouponService.issue_welcome_coupon(self.db, user.id)

        return session.id, total

    # ---------------------------------------------------------
    # 3. PAYMENT RECONCILIATION
    # ---------------------------------------------------------
    def get_order_for_session(self, session_id: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.stripe_session_id == session_id).first()

    def reconcile_payment(self, session_id: str, user_id: int) -> Order:
        """Turn a paid checkout session into an order, at most once per session."""
        session = self.payments.retrieve_session(session_id)
        if session.metadata.get("userId") != str(user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Checkout session not found")
        if session.payment_status != "paid":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment not completed")

        existing = self.get_order_for_session(session_id)
        if existing:
            logger.info(f"Session {session_id} already reconciled as order {existing.id}")
            return existing

        if session.coupon_code:
            CouponService.deactivate(self.db, session.coupon_code, session.user_id)

        order = Order(
            user_id=session.user_id,
            total_amount=session.amount_total,
            stripe_session_id=session_id,
            items=[
                OrderItem(product_id=int(p["id"]), quantity=int(p["quantity"]), price=p["price"])
                for p in session.products
            ],
        )
        self.db.add(order)
        try:
            self.db.commit()
        except IntegrityError:
            # a concurrent confirmation for the same session won the insert
            self.db.rollback()
            existing = self.get_order_for_session(session_id)
            if existing is None:
                raise
            return existing
        self.db.refresh(order)
        logger.info(f"Created order {order.id} for session {session_id}")
        return order
