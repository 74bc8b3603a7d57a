from typing import Optional

import redis
from fastapi import Cookie, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from storefront.cache import get_cache
from storefront.database import get_db
from storefront.gateways.images import ImageStorage, get_image_storage
from storefront.gateways.payments import PaymentGateway, get_payment_gateway
from storefront.models.user import User
from storefront.services.auth_service import AuthService
from storefront.services.checkout_service import CheckoutService
from storefront.services.product_service import ProductService
from storefront.services.token_service import TokenService


def get_token_service(cache: redis.Redis = Depends(get_cache)) -> TokenService:
    return TokenService(cache)


def get_product_service(
    db: Session = Depends(get_db),
    cache: redis.Redis = Depends(get_cache),
    images: ImageStorage = Depends(get_image_storage),
) -> ProductService:
    return ProductService(db, cache, images)


def get_checkout_service(
    db: Session = Depends(get_db),
    payments: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutService:
    return CheckoutService(db, payments)


def get_current_user(
    access_cookie: Optional[str] = Cookie(None, alias="accessToken"),
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """Cookie first, then the Authorization header."""
    token = None
    if access_cookie:
        token = access_cookie
    elif authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):]

    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - No access token provided")

    user_id = tokens.verify_access_token(token)
    user = AuthService.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access denied - Admin only")
    return user
