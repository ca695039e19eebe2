# app/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.exceptions import FileSearchGatewayException, VendorRequestError
from app.core.logging import get_logger

logger = get_logger(__name__)

# ===================
# Lifespan Management
# ===================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info("Metadata storage", backend=settings.STORAGE_BACKEND, model=settings.GEMINI_MODEL)
    yield
    logger.info("Shutting down...")

# ===================
# Application Setup
# ===================

app = FastAPI(
    title=settings.APP_NAME,
    description="Document stores and grounded Q&A over Gemini File Search",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# ===================
# CORS Middleware
# ===================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===================
# Exception Handlers
# ===================

@app.exception_handler(VendorRequestError)
async def vendor_request_error_handler(request: Request, exc: VendorRequestError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message}
    )

@app.exception_handler(FileSearchGatewayException)
async def gateway_exception_handler(request: Request, exc: FileSearchGatewayException):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}", path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', []))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {errors}"})

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})

# ===================
# Include Routers
# ===================

from app.api.v1.stores import router as stores_router
from app.api.v1.ask import router as ask_router

app.include_router(stores_router, prefix=f"{settings.API_PREFIX}/stores", tags=["stores"])
app.include_router(ask_router, prefix=settings.API_PREFIX, tags=["ask"])

# ===================
# Root Endpoints
# ===================

@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "stores": f"{settings.API_PREFIX}/stores",
            "ask": f"{settings.API_PREFIX}/ask"
        }
    }

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.APP_VERSION}
