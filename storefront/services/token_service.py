import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Tuple

import redis
from fastapi import HTTPException, status
from jose import JWTError, ExpiredSignatureError, jwt

from storefront.config import settings

logger = logging.getLogger(__name__)

REFRESH_KEY_PREFIX = "refreshToken:"


def refresh_key(user_id: int) -> str:
    return f"{REFRESH_KEY_PREFIX}{user_id}"


class TokenService:
    """Issues, verifies and rotates the access/refresh token pair.

    The per-user session lives entirely in the cache entry
    ``refreshToken:<userId>``: present means authenticated, absent means
    anonymous or logged out, and a value that differs from the presented
    token means the token was superseded by a later login.
    """

    def __init__(self, cache: redis.Redis):
        self.cache = cache
        self.access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def _encode(self, user_id: int, secret: str, ttl: timedelta) -> str:
        payload = {
            "userId": user_id,
            "exp": datetime.now(timezone.utc) + ttl,
            # two logins within the same second must still yield distinct tokens
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)

    def issue_access_token(self, user_id: int) -> str:
        return self._encode(user_id, settings.ACCESS_TOKEN_SECRET, self.access_ttl)

    def issue_token_pair(self, user_id: int) -> Tuple[str, str]:
        access_token = self.issue_access_token(user_id)
        refresh_token = self._encode(user_id, settings.REFRESH_TOKEN_SECRET, self.refresh_ttl)
        return access_token, refresh_token

    def persist_refresh_token(self, user_id: int, refresh_token: str) -> None:
        self.cache.set(refresh_key(user_id), refresh_token, ex=int(self.refresh_ttl.total_seconds()))

    def verify_refresh_token(self, token: str) -> int:
        try:
            payload = jwt.decode(token, settings.REFRESH_TOKEN_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except JWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
        user_id = payload.get("userId")
        if user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
        return int(user_id)

    def verify_access_token(self, token: str) -> int:
        try:
            payload = jwt.decode(token, settings.ACCESS_TOKEN_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except ExpiredSignatureError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - Access token expired")
        except JWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - Invalid access token")
        user_id = payload.get("userId")
        if user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - Invalid access token")
        return int(user_id)

    def rotate_access_token(self, refresh_token: str) -> str:
        user_id = self.verify_refresh_token(refresh_token)
        stored = self.cache.get(refresh_key(user_id))
        if stored != refresh_token:
            logger.info(f"Rejected stale or revoked refresh token for user {user_id}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
        # the refresh token itself is not rotated
        return self.issue_access_token(user_id)

    def revoke(self, user_id: int) -> None:
        self.cache.delete(refresh_key(user_id))

    def revoke_token(self, refresh_token: str) -> None:
        """Logout path: an undecodable token has no session left to revoke."""
        try:
            user_id = self.verify_refresh_token(refresh_token)
        except HTTPException:
            logger.info("Logout with an invalid refresh token, clearing cookies only")
            return
        self.revoke(user_id)
