from fastapi import APIRouter, Depends

from storefront.dependencies import get_checkout_service, get_current_user
from storefront.models.user import User
from storefront.schemas.payment import (
    CheckoutSessionRequest, CheckoutSessionResponse, CheckoutSuccessRequest, CheckoutSuccessResponse
)
from storefront.services.checkout_service import CheckoutService
from storefront.services.discount_calculator import DiscountCalculator

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    payload: CheckoutSessionRequest,
    user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    session_id, total = service.create_checkout_session(user, payload.products, payload.coupon_code)
    return {"id": session_id, "total_amount": DiscountCalculator.to_major(total)}


@router.post("/checkout-success", response_model=CheckoutSuccessResponse)
def checkout_success(
    payload: CheckoutSuccessRequest,
    user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    order = service.reconcile_payment(payload.session_id, user.id)
    return {"success": True, "message": "Checkout successful", "order_id": order.id}
