"""
FastAPI application entry point.
Configures routes, middleware, and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db
from app.logging_config import configure_logging

from app.api.webhooks.razorpay import router as razorpay_router
from app.api.invoices import router as invoices_router
from app.api.users import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle manager."""
    configure_logging()
    logging.info(f"Starting up {settings.app_name} ({settings.app_env})...")

    yield

    await close_db()
    logging.info("Shutting down...")


app = FastAPI(
    title="Stock Automation",
    description="Franchise stock ordering backend: payment webhooks, invoice e-mail and user registration",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logging.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error"},
    )


# CORS middleware (browser calls to /functions/*)
origins = list(settings.cors_origins)
if settings.is_development:
    origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "env": settings.app_env,
    }


app.include_router(
    razorpay_router,
    prefix="/webhooks",
    tags=["webhooks"],
)
app.include_router(
    invoices_router,
    prefix="/functions",
    tags=["invoices"],
)
app.include_router(
    users_router,
    prefix="/functions",
    tags=["users"],
)
