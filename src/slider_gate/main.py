# src/slider_gate/main.py
"""Main entry point for the Slider Gate application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from slider_gate.api.v1 import captcha_router, system_router
from slider_gate.core.settings import settings
from slider_gate.services.captcha import CaptchaService

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Slider Gate API",
    description="Slider puzzle human-verification challenges",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(captcha_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    service = CaptchaService(settings)
    await service.start()
    app.state.captcha_service = service


@app.on_event("shutdown")
async def on_shutdown() -> None:
    service: CaptchaService | None = getattr(app.state, "captcha_service", None)
    if service:
        await service.stop()
    app.state.captcha_service = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Slider puzzle human-verification challenges",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("slider_gate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
