"""REST API module for the storefront.

This module provides HTTP endpoints for:
- Registration, login and token verification
- Account profile management
- Shopping carts
- Placing orders, changing their status and listing them
- Health checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from database import get_pool
from database.exceptions import STORAGE_ERRORS
from .errors import request_validation_handler

logger = logging.getLogger(__name__)

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Initializing API...")
    # Database setup and teardown are handled in __main__.py
    yield
    logger.info("Shutting down API...")

# Create FastAPI app
app = FastAPI(
    title="Storefront API",
    description="Accounts, carts and dual-ledger orders for the storefront",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, request_validation_handler)

@app.get("/")
async def root():
    return {
        "name": "Storefront API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
async def health():
    """Check that the database answers."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval('SELECT 1')
    except (RuntimeError, *STORAGE_ERRORS) as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "database_unavailable", "message": str(e)}
        )
    return {"ok": True}

# Import and include all routers
from .auth import router as auth_router
from .accounts import router as accounts_router
from .cart import router as cart_router
from .orders import router as orders_router

app.include_router(auth_router)
app.include_router(accounts_router)
app.include_router(cart_router)
app.include_router(orders_router)
