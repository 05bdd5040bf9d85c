"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from slider_gate.services.captcha import CaptchaService


def get_captcha_service(request: Request) -> CaptchaService:
    """Return the service instance created at application startup.

    Raises:
        HTTPException: If the application has not finished starting up.
    """
    service: CaptchaService | None = getattr(request.app.state, "captcha_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Captcha service unavailable",
        )
    return service


# Type alias for the captcha service dependency
CaptchaServiceDep = Annotated[CaptchaService, Depends(get_captcha_service)]


def get_client_address(request: Request, service: CaptchaServiceDep) -> str:
    """Return the caller's address, honouring X-Forwarded-For only when trusted."""
    if service.settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client is None:
        return "unknown"
    return request.client.host


# Type alias for the client address dependency
ClientAddressDep = Annotated[str, Depends(get_client_address)]
