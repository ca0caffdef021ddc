"""Pydantic schemas for API responses and service-layer data."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness check response."""

    status: str
    timestamp: datetime


class ReadyResponse(BaseModel):
    """Readiness check response."""

    status: str
    service: str


class PoolStatusResponse(BaseModel):
    """Database connection pool status."""

    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(BaseModel):
    """Detailed health check response with component status."""

    status: str
    service: str
    database: bool
    pool: PoolStatusResponse | None = None


class RootResponse(BaseModel):
    message: str


# ============ Certificate Schemas ============


class CertificateRequest(BaseModel):
    """A validated, normalised certificate request.

    Built by services.validation_service after the raw payload passes every
    check; field values are already trimmed and case-normalised.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    gst_number: str
    business_name: str
    business_address: str


class CertificateFiles(BaseModel):
    """Absolute paths of the rendered certificate artifacts."""

    model_config = ConfigDict(frozen=True)

    pdf_path: Path
    jpg_path: Path


class IssuedCertificate(BaseModel):
    """Outcome of a fully processed certificate request."""

    record_id: int
    request: CertificateRequest
    files: CertificateFiles


class CertificateFilesResponse(BaseModel):
    pdf: str
    jpg: str


class CertificateResultData(BaseModel):
    """Payload returned to the requester on success (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    gst_number: str = Field(serialization_alias="gstNumber")
    files: CertificateFilesResponse


class CertificateGenerateResponse(BaseModel):
    """Response for POST /api/certificate/generate."""

    success: bool = True
    message: str
    data: CertificateResultData


class ErrorResponse(BaseModel):
    """Error envelope shared by every failure response."""

    success: bool = False
    error: str
    message: str | None = None
    required: list[str] | None = None
