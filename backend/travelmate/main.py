"""
TravelMate - FastAPI Application

Main entry point for the backend API.
Provides endpoints for authentication, pricing, checkout and Stripe webhooks.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from travelmate.config.settings import settings
from travelmate.infrastructure.exceptions import (
    AuthenticationError,
    ConflictError,
    GatewayError,
    InvalidRequestError,
    InvalidSignatureError,
    MalformedEventError,
    NotFoundError,
    TravelMateError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"TravelMate Backend starting in {settings.environment} mode...")

    try:
        from travelmate.infrastructure.db.database import init_db
        await init_db()
        logger.info("SQLModel database connection pool initialized")
    except Exception as e:
        logger.warning(f"SQLModel database initialization skipped: {e}")

    yield

    # Shutdown
    try:
        from travelmate.infrastructure.db.database import close_db
        await close_db()
        logger.info("SQLModel database connection pool closed")
    except Exception as e:
        logger.warning(f"SQLModel database shutdown error: {e}")

    logger.info("TravelMate Backend shutting down...")


app = FastAPI(
    title="TravelMate",
    description="Travel planning API with Stripe-backed subscriptions",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(InvalidRequestError)
@app.exception_handler(InvalidSignatureError)
@app.exception_handler(MalformedEventError)
async def bad_request_handler(request: Request, exc: TravelMateError):
    """Handle client input errors."""
    return JSONResponse(
        status_code=400,
        content=exc.to_dict(),
    )


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    """Handle bad credentials."""
    return JSONResponse(
        status_code=401,
        content=exc.to_dict(),
    )


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    """Handle not found errors."""
    return JSONResponse(
        status_code=404,
        content=exc.to_dict(),
    )


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    """Handle duplicate or mismatched records."""
    return JSONResponse(
        status_code=409,
        content=exc.to_dict(),
    )


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """Handle Stripe failures. The caller may retry."""
    logger.error(f"Billing provider error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=502,
        content={
            **exc.to_dict(),
            "message": "Payment provider is unavailable, please try again",
        },
    )


@app.exception_handler(TravelMateError)
async def general_error_handler(request: Request, exc: TravelMateError):
    """Handle all other application errors."""
    logger.error(f"Unhandled application error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "travelmate"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "TravelMate API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from travelmate.api.routes import auth, payment, webhooks  # noqa: E402

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(payment.router, prefix="/api/payment", tags=["Payment"])
app.include_router(webhooks.router, prefix="/api/payment", tags=["Webhooks"])
