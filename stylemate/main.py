"""
Stylemate API: appointment rescheduling and the product cart, served under /api.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401 - registers tables on Base
from .config import FRONTEND_URL
from .database import Base, engine
from .domain.cart.router import router as cart_router
from .domain.scheduling.router import router as scheduling_router
from .redis_client import get_redis_client

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# The Persistence Gateway logs every request through httpx otherwise
for noisy in ("httpx", "httpcore"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

API_PREFIX = "/api"
NOT_AUTHENTICATED = "Not authenticated. Please provide a valid Bearer token in the Authorization header."


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Stylemate API starting")
    Base.metadata.create_all(bind=engine, checkfirst=True)

    try:
        get_redis_client()
    except Exception as e:
        logger.warning(f"⚠️ Redis unreachable, appointment lists will not be cached: {e}")

    yield
    logger.info("👋 Stylemate API stopped")


app = FastAPI(title="Stylemate API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_error_body(request: Request, exc: StarletteHTTPException):
    """Every failure reaches the app as {"error": reason}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_body(request: Request, exc: RequestValidationError):
    errors = exc.errors()

    # HTTPBearer reports a missing header as a validation error
    if any("authorization" in str(err.get("loc", "")).lower() for err in errors):
        logger.warning(f"🔒 {request.url.path}: missing or malformed Authorization header")
        return JSONResponse(status_code=401, content={"error": NOT_AUTHENTICATED})

    logger.warning(f"Rejected {request.method} {request.url.path}: {errors}")
    reason = str(errors[0].get("msg", "Invalid request")) if errors else "Invalid request"
    return JSONResponse(status_code=422, content={"error": reason.removeprefix("Value error, ")})


@app.middleware("http")
async def log_unhandled_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} failed: {e}")
        raise


# Credentials are sent cross-origin, so origins are listed explicitly
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

for router in (scheduling_router, cart_router):
    app.include_router(router, prefix=API_PREFIX)


@app.get("/")
def root():
    return {"service": "stylemate", "status": "running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
