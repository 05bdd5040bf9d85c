"""Captcha challenge endpoints for the Slider Gate API."""

from __future__ import annotations

import time

from fastapi import APIRouter, HTTPException, status

from slider_gate.api.v1.dependencies import CaptchaServiceDep, ClientAddressDep
from slider_gate.core.challenge import ChallengeMode
from slider_gate.schemas.captcha import (
    ChallengeOut,
    RedeemOut,
    RedeemRequest,
    StatusOut,
    VerifyError,
    VerifyOut,
    VerifyRequest,
)
from slider_gate.services.lifecycle import VerificationOutcome

router = APIRouter(prefix="/captcha", tags=["captcha"])


@router.get("/challenge", response_model=ChallengeOut)
def create_challenge(
    service: CaptchaServiceDep,
    client_address: ClientAddressDep,
    mode: ChallengeMode = ChallengeMode.SLIDER,
) -> ChallengeOut:
    """Issue a new challenge.

    Args:
        service: Captcha service owning challenge state
        client_address: Caller address used for throttling and audit
        mode: Puzzle geometry to issue

    Returns:
        Public challenge fields; the target position is never included

    Raises:
        HTTPException: 429 if the caller exceeded the creation rate limit
    """
    if not service.rate_limiter.allow(client_address):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="rate_limited",
        )
    public, _ = service.manager.create(mode, client_address=client_address)
    return ChallengeOut(
        id=public.id,
        mode=public.mode,
        canvas_width=public.canvas_width,
        canvas_height=public.canvas_height,
        piece_size=public.piece_size,
    )


@router.post("/verify", response_model=VerifyOut, response_model_exclude_none=True)
def verify_challenge(
    payload: VerifyRequest,
    service: CaptchaServiceDep,
    client_address: ClientAddressDep,
) -> VerifyOut:
    """Verify a submitted drag trail against its challenge.

    Args:
        payload: Challenge id and ordered trail samples
        service: Captcha service owning challenge state
        client_address: Caller address, checked against the issuing client

    Returns:
        Verification result with a success token or a coarse error

    Raises:
        HTTPException: 422 if the trail exceeds the configured length
    """
    if len(payload.trail) > service.settings.max_trail_length:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Trail too long",
        )

    trail = [point.to_point() for point in payload.trail]
    result = service.manager.verify(payload.challenge_id, trail, client_address=client_address)

    if result.verified:
        return VerifyOut(verified=True, token=result.token)
    if result.outcome is VerificationOutcome.TOO_MANY_ATTEMPTS:
        return VerifyOut(verified=False, error=VerifyError.TOO_MANY_ATTEMPTS)
    return VerifyOut(
        verified=False,
        attempts_remaining=result.attempts_remaining,
        error=VerifyError.VERIFICATION_FAILED,
    )


@router.post("/redeem", response_model=RedeemOut)
def redeem_token(payload: RedeemRequest, service: CaptchaServiceDep) -> RedeemOut:
    """Consume a success token issued by a verified challenge."""
    return RedeemOut(valid=service.manager.redeem_token(payload.token))


@router.get("/status", response_model=StatusOut)
def captcha_status(service: CaptchaServiceDep) -> StatusOut:
    """Report process-wide counters. Read-only."""
    return StatusOut(
        status="online",
        version=service.settings.app_version,
        active_challenges=service.manager.active_count,
        timestamp=int(time.time()),
    )
