from typing import List

from fastapi import APIRouter, Depends

from storefront.dependencies import get_product_service, require_admin
from storefront.schemas.product import (
    ProductCreate, ProductResponse, ProductListResponse, ProductCreatedResponse
)
from storefront.schemas.auth import MessageResponse
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=ProductListResponse, dependencies=[Depends(require_admin)])
def get_all_products(service: ProductService = Depends(get_product_service)):
    return {"products": service.get_all_products()}


@router.get("/featured", response_model=List[ProductResponse])
def get_featured_products(service: ProductService = Depends(get_product_service)):
    return service.get_featured()


@router.get("/recommendations", response_model=List[ProductResponse])
def get_recommended_products(service: ProductService = Depends(get_product_service)):
    return service.get_recommended_products()


@router.get("/category/{category}", response_model=ProductListResponse)
def get_products_by_category(category: str, service: ProductService = Depends(get_product_service)):
    return {"products": service.get_products_by_category(category)}


@router.post("", response_model=ProductCreatedResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_product(payload: ProductCreate, service: ProductService = Depends(get_product_service)):
    product = service.create_product(payload)
    return {"message": "Product created successfully", "product": product}


@router.patch("/{product_id}", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def toggle_featured_product(product_id: int, service: ProductService = Depends(get_product_service)):
    return service.toggle_featured(product_id)


@router.delete("/{product_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_product(product_id: int, service: ProductService = Depends(get_product_service)):
    service.delete_product(product_id)
    return {"message": "Product deleted successfully"}
