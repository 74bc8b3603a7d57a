import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import stripe

from storefront.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PaymentSession:
    id: str
    payment_status: str
    amount_total: int
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def user_id(self) -> int:
        return int(self.metadata["userId"])

    @property
    def coupon_code(self) -> str:
        return self.metadata.get("couponCode", "")

    @property
    def products(self) -> List[Dict[str, Any]]:
        return json.loads(self.metadata.get("products", "[]"))


class PaymentGateway:
    """Thin adapter over Stripe Checkout."""

    def __init__(self, api_key: Optional[str] = None):
        stripe.api_key = api_key or settings.STRIPE_SECRET_KEY

    def create_one_time_coupon(self, discount_percentage: int) -> str:
        coupon = stripe.Coupon.create(percent_off=discount_percentage, duration="once")
        return coupon.id

    def create_checkout_session(
        self,
        line_items: List[Dict[str, Any]],
        metadata: Dict[str, str],
        discount_coupon_id: Optional[str] = None,
    ) -> PaymentSession:
        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            line_items=line_items,
            mode="payment",
            success_url=f"{settings.CLIENT_URL}/purchase-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.CLIENT_URL}/purchase-cancel",
            discounts=[{"coupon": discount_coupon_id}] if discount_coupon_id else [],
            metadata=metadata,
        )
        logger.info(f"Created checkout session {session.id}")
        return self._to_session(session)

    def retrieve_session(self, session_id: str) -> PaymentSession:
        return self._to_session(stripe.checkout.Session.retrieve(session_id))

    @staticmethod
    def _to_session(session) -> PaymentSession:
        metadata = session.metadata.to_dict() if session.metadata else {}
        return PaymentSession(
            id=session.id,
            payment_status=session.payment_status or "unpaid",
            amount_total=session.amount_total or 0,
            metadata=metadata,
        )


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()
