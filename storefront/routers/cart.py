from typing import List

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import get_current_user
from storefront.models.user import User
from storefront.schemas.cart import (
    AddToCartRequest, CartProductResponse, RemoveFromCartRequest, UpdateQuantityRequest
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=List[CartProductResponse])
def get_cart_products(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartService.get_cart(db, user)


@router.post("", response_model=List[CartProductResponse])
def add_to_cart(payload: AddToCartRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartService.add_to_cart(db, user, payload.product_id)


@router.put("/{product_id}", response_model=List[CartProductResponse])
def update_quantity(
    product_id: int,
    payload: UpdateQuantityRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CartService.update_quantity(db, user, product_id, payload.quantity)


@router.delete("", response_model=List[CartProductResponse])
def remove_from_cart(
    payload: RemoveFromCartRequest = Body(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product_id = payload.product_id if payload else None
    return CartService.remove_from_cart(db, user, product_id)
