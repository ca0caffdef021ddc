"""Certificate generation endpoint."""

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from core.database import SessionMaker
from core.logger import get_logger
from core.ratelimit import GENERATE_LIMIT, limiter
from schemas import (
    CertificateFilesResponse,
    CertificateGenerateResponse,
    CertificateResultData,
    ErrorResponse,
)
from services.certificates_service import issue_certificate
from services.validation_service import (
    CertificateValidationError,
    validate_certificate_request,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/certificate", tags=["certificates"])

SUCCESS_MESSAGE = "Certificate generated, saved to database, and sent successfully"


def _error_response(status_code: int, error: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error.model_dump(exclude_none=True),
    )


@router.post(
    "/generate",
    response_model=CertificateGenerateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation failed"},
        429: {"description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Certificate processing failed"},
    },
)
@limiter.limit(GENERATE_LIMIT)
async def generate_certificate_endpoint(
    request: Request,
    session_maker: SessionMaker,
    payload: Any = Body(default=None),
) -> JSONResponse:
    """Validate a certificate request, then render, store and email it."""
    try:
        certificate_request = validate_certificate_request(payload)
    except CertificateValidationError as e:
        logger.info("certificate.validation_failed", error=e.error)
        return _error_response(
            400,
            ErrorResponse(error=e.error, message=e.message, required=e.required),
        )

    logger.info("certificate.validation_passed")

    try:
        issued = await issue_certificate(certificate_request, session_maker)
    except Exception as e:
        logger.exception("certificate.process_failed", exc_type=type(e).__name__)
        return _error_response(
            500,
            ErrorResponse(
                error="Failed to process certificate",
                message=str(e) or "Unknown error occurred",
            ),
        )

    body = CertificateGenerateResponse(
        message=SUCCESS_MESSAGE,
        data=CertificateResultData(
            email=issued.request.email,
            gst_number=issued.request.gst_number,
            files=CertificateFilesResponse(
                pdf=str(issued.files.pdf_path),
                jpg=str(issued.files.jpg_path),
            ),
        ),
    )
    return JSONResponse(status_code=200, content=body.model_dump(by_alias=True))
