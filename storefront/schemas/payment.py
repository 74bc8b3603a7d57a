from typing import List, Optional
from pydantic import Field
from storefront.schemas.base import CamelModel


class CheckoutProduct(CamelModel):
    id: int = Field(..., gt=0)
    name: str = ""
    image: Optional[str] = None
    price: float = Field(..., gt=0)
    quantity: int = Field(default=1, gt=0)


class CheckoutSessionRequest(CamelModel):
    # presence is checked by the service so an empty list is a 400
    products: List[CheckoutProduct] = []
    coupon_code: Optional[str] = None


class CheckoutSessionResponse(CamelModel):
    id: str
    total_amount: float


class CheckoutSuccessRequest(CamelModel):
    session_id: str = Field(..., min_length=1)


class CheckoutSuccessResponse(CamelModel):
    success: bool
    message: str
    order_id: int
