"""
Public verification endpoint.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ....models.enums import InvalidReason
from ....services.verification_service import VerificationService
from ..dependencies import get_verification_service
from ..schemas.scan import VerificationResponse

logger = structlog.get_logger(module=__name__)

router = APIRouter(prefix="/scan", tags=["scan"])


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer, else 'unknown'."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


@router.get("/verify",
            response_model=VerificationResponse,
            response_model_exclude_none=True,
            summary="Verify Product",
            description="Consume one scan of a product's budget and report whether it is genuine")
async def verify_product(
    request: Request,
    pid: Optional[str] = Query(None, description="16-digit product identifier"),
    verification_service: VerificationService = Depends(get_verification_service)
):
    """
    Verify a product by the identifier embedded in its QR code.

    Returns 200 for verified and last_valid scans, 400 for malformed
    identifiers and 404 for unknown or exhausted products. The payload's
    ``status`` field is the authoritative result.
    """
    result = await verification_service.verify(pid, get_client_ip(request))

    if result.is_successful:
        status_code = 200
    elif result.reason is InvalidReason.MALFORMED_IDENTIFIER:
        status_code = 400
    else:
        status_code = 404

    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json", exclude_none=True)
    )
