import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.database import get_db
from storefront.dependencies import get_current_user, get_token_service
from storefront.models.user import User
from storefront.schemas.auth import AuthResponse, LoginRequest, MessageResponse, SignupRequest, UserResponse
from storefront.services.auth_service import AuthService
from storefront.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def set_access_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


def start_session(response: Response, user: User, tokens: TokenService) -> None:
    access_token, refresh_token = tokens.issue_token_pair(user.id)
    tokens.persist_refresh_token(user.id, refresh_token)
    set_access_cookie(response, access_token)
    set_refresh_cookie(response, refresh_token)


@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(
    payload: SignupRequest,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = AuthService.create_user(db, payload)
    start_session(response, user, tokens)
    return {"user": user, "message": "User created successfully"}


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = AuthService.authenticate(db, payload.email, payload.password)
    start_session(response, user, tokens)
    return {"user": user, "message": "Login successful"}


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    tokens: TokenService = Depends(get_token_service),
):
    if refresh_cookie:
        tokens.revoke_token(refresh_cookie)

    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return {"message": "Logged out successfully"}


@router.post("/refresh-token", response_model=MessageResponse)
def refresh_access_token(
    response: Response,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    tokens: TokenService = Depends(get_token_service),
):
    if not refresh_cookie:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No refresh token provided")

    access_token = tokens.rotate_access_token(refresh_cookie)
    set_access_cookie(response, access_token)
    return {"message": "Access token refreshed successfully"}


@router.get("/profile", response_model=UserResponse)
def get_profile(user: User = Depends(get_current_user)):
    return user
