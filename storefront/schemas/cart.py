from typing import Optional
from pydantic import Field
from storefront.schemas.base import CamelModel
from storefront.schemas.product import ProductResponse


class AddToCartRequest(CamelModel):
    product_id: int = Field(..., gt=0)


class UpdateQuantityRequest(CamelModel):
    quantity: int = Field(..., ge=0)


class RemoveFromCartRequest(CamelModel):
    product_id: Optional[int] = None


class CartProductResponse(ProductResponse):
    quantity: int
