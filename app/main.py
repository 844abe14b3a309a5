from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import auth_routes, notify_routes
from app.core.config import get_settings
from app.db.session import engine
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from app.models.base import Base
from app.models import pending_code  # noqa: F401  registers the table
from app.services.auth_handlers import (
    INVALID_EMAIL_MESSAGE,
    MISSING_FIELDS_MESSAGE,
    to_http_exception,
)
from app.services.errors import InvalidInput

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Invalid request"


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("✅ Sweet Moments API started")
    yield


app = FastAPI(title="Sweet Moments storefront API", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.include_router(auth_routes.router, prefix="/api/auth", tags=["auth"])
app.include_router(notify_routes.router, prefix="/api", tags=["storefront"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().site_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # The validation detail is never echoed back
    path = request.url.path
    if path.endswith("/auth/verify-code"):
        message = MISSING_FIELDS_MESSAGE
    elif path.startswith("/api/auth/"):
        message = INVALID_EMAIL_MESSAGE
    else:
        message = INVALID_REQUEST_MESSAGE
    http_exc = to_http_exception(InvalidInput(message))
    return JSONResponse(status_code=http_exc.status_code, content={"error": http_exc.detail})


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
