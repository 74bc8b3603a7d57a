import logging
import random
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.models.coupon import Coupon

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


class CouponService:
    """Per-user one-time coupons"""

    @staticmethod
    def get_active_coupon(db: Session, user_id: int) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.user_id == user_id, Coupon.is_active == True).first()

    @staticmethod
    def find_active_coupon(db: Session, code: str, user_id: int) -> Optional[Coupon]:
        return db.query(Coupon).filter(
            Coupon.code == code,
            Coupon.user_id == user_id,
            Coupon.is_active == True,
        ).first()

    @staticmethod
    def validate_coupon(db: Session, code: str, user_id: int) -> Coupon:
        coupon = CouponService.find_active_coupon(db, code, user_id)
        if not coupon:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found or inactive")
        if coupon.is_expired():
            coupon.is_active = False
            db.commit()
            logger.info(f"Coupon {coupon.code} for user {user_id} expired")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coupon has expired")
        return coupon

    @staticmethod
    def generate_code() -> str:
        return "GIFT" + "".join(random.choices(CODE_ALPHABET, k=6))

    @staticmethod
    def issue_welcome_coupon(db: Session, user_id: int) -> Coupon:
        # at most one coupon per user: drop whatever was there
        db.query(Coupon).filter(Coupon.user_id == user_id).delete(synchronize_session=False)
        coupon = Coupon(
            code=CouponService.generate_code(),
            discount_percentage=settings.WELCOME_COUPON_PERCENTAGE,
            user_id=user_id,
            is_active=True,
            expiration_date=datetime.now(timezone.utc) + timedelta(days=settings.WELCOME_COUPON_DAYS),
        )
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        logger.info(f"Issued coupon {coupon.code} to user {user_id}")
        return coupon

    @staticmethod
    def deactivate(db: Session, code: str, user_id: int) -> None:
        """Already-inactive or missing coupons are left alone."""
        db.query(Coupon).filter(Coupon.code == code, Coupon.user_id == user_id).update(
            {Coupon.is_active: False}, synchronize_session=False
        )
