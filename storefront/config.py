import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # DATABASE
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")

    # CACHE
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # TOKENS
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "change-me-access")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "change-me-refresh")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
    REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    JWT_ALGORITHM = "HS256"

    # FRONTEND
    CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", CLIENT_URL).split(",") if o.strip()]

    # STRIPE
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")

    # CLOUDINARY
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

    # CHECKOUT
    # Totals are computed from request prices unless this is switched off,
    # in which case every line item is repriced from the catalog.
    CHECKOUT_TRUST_CLIENT_PRICES = _as_bool(os.getenv("CHECKOUT_TRUST_CLIENT_PRICES", "true"))
    COUPON_THRESHOLD_MINOR = int(os.getenv("COUPON_THRESHOLD_MINOR", "20000"))
    WELCOME_COUPON_PERCENTAGE = 10
    WELCOME_COUPON_DAYS = 30

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
