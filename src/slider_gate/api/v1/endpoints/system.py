"""System and transparency endpoints for the Slider Gate API."""

from __future__ import annotations

from fastapi import APIRouter

from slider_gate.api.v1.dependencies import CaptchaServiceDep
from slider_gate.schemas.captcha import CleanupOut

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
def get_public_config(service: CaptchaServiceDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes storage locations and connection strings; suitable for widget
    integrators who need the canvas geometry and attempt limits.

    Args:
        service: Captcha service holding the active settings

    Returns:
        Dictionary containing app metadata, canvas geometry, lifecycle
        limits and the creation rate limit
    """
    cfg = service.settings
    return {
        "app": {
            "name": cfg.app_name,
            "version": cfg.app_version,
            "debug": cfg.debug,
        },
        "canvas": {
            "width": cfg.canvas_width,
            "height": cfg.canvas_height,
            "piece_size": cfg.piece_size,
            "slider_track_length": cfg.slider_track_length,
        },
        "challenge": {
            "expiry_seconds": cfg.expiry_seconds,
            "max_attempts": cfg.max_attempts,
            "max_trail_length": cfg.max_trail_length,
            "modes": ["slider", "freedrag"],
        },
        "rate_limit": {
            "per_window": cfg.rate_limit_per_minute,
            "window_seconds": cfg.rate_limit_window_seconds,
        },
        "storage": {
            "durable_backend": cfg.durable_backend,
            "sweeper_enabled": cfg.sweeper_enabled,
            "sweep_interval_seconds": cfg.sweep_interval_seconds,
        },
    }


@router.post("/cleanup", response_model=CleanupOut)
def run_cleanup(service: CaptchaServiceDep) -> CleanupOut:
    """Run one sweep pass immediately and report what it removed."""
    report = service.sweeper.sweep_once()
    return CleanupOut(cleaned=report.cleaned, memory=report.memory, durable=report.durable)
