# bravebooks/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

from bravebooks.config import settings
from bravebooks.errors import AppError

# ---- DB + models ----
import bravebooks.models  # noqa: F401
from bravebooks.db.base import Base
from bravebooks.db.seed import seed
from bravebooks.db.session import SessionLocal, engine
from bravebooks.db.store import Store

# ---- Routers ----
from bravebooks.routers import admin as admin_router
from bravebooks.routers import auth as auth_router
from bravebooks.routers import book_access as book_access_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("bravebooks")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.using_insecure_secret:
        logger.warning("JWT_SECRET is not set; using an insecure development secret")
    if settings.DB_CREATE_ALL:
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(Store(db))
    finally:
        db.close()
    yield


app = FastAPI(title="Brave Things Books", lifespan=lifespan)

# =============================================================================
# Middleware
# =============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=500)


# =============================================================================
# Errors -> {"success": false, "error": "..."}
# =============================================================================
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    # validation endpoints never explain why a token was rejected
    if request.url.path.startswith("/book-access/validate"):
        return JSONResponse({"valid": False}, status_code=400)
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return _error(400, "; ".join(parts) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# =============================================================================
# Routes
# =============================================================================
@app.get("/")
def root():
    return {"success": True, "service": "Brave Things Books API"}


app.include_router(auth_router.router)          # /auth/...
app.include_router(book_access_router.router)   # /book-access/...
app.include_router(admin_router.router)         # /admin/...
