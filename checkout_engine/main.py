"""Checkout service main application module.

This module initializes the FastAPI application and configures
logging, middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checkout_engine.api.checkout_sessions import router as checkout_sessions_router
from checkout_engine.api.health import router as health_router
from checkout_engine.api.middleware import setup_middleware
from checkout_engine.infrastructure.config import settings
from checkout_engine.infrastructure.logging import configure_logging

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    logger.info(
        "Starting checkout service",
        version=settings.api_version,
        debug=settings.debug,
        commerce_api_url=settings.commerce_api_url,
    )

    yield

    logger.info("Shutting down checkout service")


app = FastAPI(
    title="Carryofy Checkout",
    description="Checkout orchestration for carts and approved B2B quotes",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, bearer token, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(checkout_sessions_router)
