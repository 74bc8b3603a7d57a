from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from storefront.models.cart_item import CartItem
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services.product_service import serialize_product


class CartService:
    """Server-side cart, one row per (user, product)"""

    @staticmethod
    def get_cart(db: Session, user: User) -> List[Dict[str, Any]]:
        items = db.query(CartItem).filter(CartItem.user_id == user.id).order_by(CartItem.id).all()
        cart = []
        for item in items:
            if item.product is None:
                continue
            entry = serialize_product(item.product)
            entry["quantity"] = item.quantity
            cart.append(entry)
        return cart

    @staticmethod
    def _get_item(db: Session, user_id: int, product_id: int) -> Optional[CartItem]:
        return db.query(CartItem).filter(CartItem.user_id == user_id, CartItem.product_id == product_id).first()

    @staticmethod
    def add_to_cart(db: Session, user: User, product_id: int) -> List[Dict[str, Any]]:
        if not db.query(Product).filter(Product.id == product_id).first():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        item = CartService._get_item(db, user.id, product_id)
        if item:
            item.quantity += 1
        else:
            db.add(CartItem(user_id=user.id, product_id=product_id, quantity=1))
        db.commit()
        return CartService.get_cart(db, user)

    @staticmethod
    def update_quantity(db: Session, user: User, product_id: int, quantity: int) -> List[Dict[str, Any]]:
        item = CartService._get_item(db, user.id, product_id)
        if not item:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        if quantity == 0:
            db.delete(item)
        else:
            item.quantity = quantity
        db.commit()
        return CartService.get_cart(db, user)

    @staticmethod
    def remove_from_cart(db: Session, user: User, product_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Without a product id the whole cart is emptied."""
        query = db.query(CartItem).filter(CartItem.user_id == user.id)
        if product_id is not None:
            query = query.filter(CartItem.product_id == product_id)
        query.delete(synchronize_session=False)
        db.commit()
        return CartService.get_cart(db, user)
