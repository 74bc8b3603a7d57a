from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import get_current_user
from storefront.models.user import User
from storefront.schemas.coupon import CouponResponse, ValidateCouponRequest, ValidateCouponResponse
from storefront.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.get("", response_model=Optional[CouponResponse])
def get_coupon(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CouponService.get_active_coupon(db, user.id)


@router.post("/validate", response_model=ValidateCouponResponse)
def validate_coupon(
    payload: ValidateCouponRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    coupon = CouponService.validate_coupon(db, payload.code, user.id)
    return {
        "message": "Coupon is valid",
        "code": coupon.code,
        "discount_percentage": coupon.discount_percentage,
    }
