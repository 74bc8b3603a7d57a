from datetime import datetime
from pydantic import Field
from storefront.schemas.base import CamelModel


class CouponResponse(CamelModel):
    code: str
    discount_percentage: int
    is_active: bool
    expiration_date: datetime


class ValidateCouponRequest(CamelModel):
    code: str = Field(..., min_length=1)


class ValidateCouponResponse(CamelModel):
    message: str
    code: str
    discount_percentage: int
