import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from storefront.config import settings
from storefront.database import Base, engine
from storefront.models import *  # noqa: F401,F403 register tables
from storefront.routers import analytics, auth, cart, coupons, payments, products

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Storefront API",
    description="Authentication, catalog, cart, coupons, checkout and analytics for the storefront",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


def error_response(status_code: int, detail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"status_code": status_code, "detail": detail}},
    )


# Added before CORS so CORS wraps it and 500s keep their CORS headers
@app.middleware("http")
async def catch_unhandled_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception(f"Error in {request.method} {request.url.path}: {exc}")
        return error_response(500, str(exc))


# Cookies need credentials, so origins must be explicit
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(coupons.router)
app.include_router(payments.router)
app.include_router(analytics.router)


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg")}
        for e in exc.errors()
    ]
    return error_response(400, errors)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=True)
