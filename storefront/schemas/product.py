from typing import List, Optional
from datetime import datetime
from pydantic import Field
from storefront.schemas.base import CamelModel


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., gt=0)
    # data URI or remote URL handed to image storage
    image: Optional[str] = None
    category: str = Field(..., min_length=1)


class ProductResponse(CamelModel):
    id: int
    name: str
    description: str
    price: float
    image: str
    category: str
    is_featured: bool
    created_at: Optional[datetime] = None


class ProductListResponse(CamelModel):
    products: List[ProductResponse]


class ProductCreatedResponse(CamelModel):
    message: str
    product: ProductResponse
