"""Certificate issuing workflow.

This module runs a validated request through three sequential stages:
- Rendering the certificate to PDF and JPEG files on disk
- Saving a certificate record to the database
- Emailing both files to the requester

Each stage raises its own exception type. There are no retries and no
compensating actions: a record saved before a failed email stays saved.

Routes should delegate all certificate business logic to this module.
"""

import asyncio
import secrets
import time
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import get_settings
from core.logger import get_logger
from rendering.certificates import (
    generate_certificate_svg as _render_certificate_svg,
)
from rendering.certificates import (
    svg_to_jpeg as _svg_to_jpeg,
)
from rendering.certificates import (
    svg_to_pdf as _svg_to_pdf,
)
from repositories.certificate_repository import CertificateRepository
from schemas import CertificateFiles, CertificateRequest, IssuedCertificate
from services.email_service import send_certificate_email

logger = get_logger(__name__)


class CertificateRenderError(Exception):
    """Raised when the certificate files could not be produced."""


class CertificateStorageError(Exception):
    """Raised when the certificate record could not be saved."""


def generate_certificate_svg(
    request: CertificateRequest, issued_at: datetime | None = None
) -> str:
    """Render the SVG for a request.

    Service-layer wrapper over the rendering module; callers should use this
    instead of the rendering module directly.
    """
    return _render_certificate_svg(
        name=request.name,
        email=request.email,
        gst_number=request.gst_number,
        business_name=request.business_name,
        business_address=request.business_address,
        issued_at=issued_at or datetime.now(UTC),
    )


def build_file_stem() -> str:
    """Unique base filename: epoch milliseconds plus a random suffix.

    The suffix keeps two requests landing in the same millisecond from
    overwriting each other's files.
    """
    return f"certificate-{time.time_ns() // 1_000_000}-{secrets.token_hex(3)}"


def _write_certificate_files(
    svg_content: str, output_dir: Path, stem: str
) -> CertificateFiles:
    output_dir.mkdir(parents=True, exist_ok=True)

    pdf_path = (output_dir / f"{stem}.pdf").resolve()
    jpg_path = (output_dir / f"{stem}.jpeg").resolve()

    pdf_path.write_bytes(_svg_to_pdf(svg_content))
    jpg_path.write_bytes(_svg_to_jpeg(svg_content))

    return CertificateFiles(pdf_path=pdf_path, jpg_path=jpg_path)


async def render_certificate_files(
    request: CertificateRequest,
    output_dir: Path | None = None,
) -> CertificateFiles:
    """Render the certificate and write PDF and JPEG files.

    Runs in a thread pool to avoid blocking the async event loop since
    CairoSVG rendering is CPU-bound.

    Args:
        request: Validated certificate request
        output_dir: Target directory (defaults to the configured output dir)

    Returns:
        Absolute paths of the written files

    Raises:
        CertificateRenderError: If rendering or writing fails
    """
    target_dir = output_dir or get_settings().output_dir_path
    stem = build_file_stem()

    try:
        svg_content = generate_certificate_svg(request)
        loop = asyncio.get_running_loop()
        files = await loop.run_in_executor(
            None, _write_certificate_files, svg_content, target_dir, stem
        )
    except Exception as e:
        logger.error(
            "certificate.render_failed",
            output_dir=str(target_dir),
            error=str(e),
            exc_info=True,
        )
        raise CertificateRenderError("Failed to generate certificate") from e

    logger.info(
        "certificate.rendered",
        pdf_path=str(files.pdf_path),
        jpg_path=str(files.jpg_path),
    )
    return files


async def save_certificate_record(
    session_maker: async_sessionmaker[AsyncSession],
    request: CertificateRequest,
    files: CertificateFiles,
) -> int:
    """Insert and commit a certificate record in its own transaction.

    Returns:
        The new record's ID

    Raises:
        CertificateStorageError: If the insert or commit fails
    """
    try:
        async with session_maker() as session:
            record = await CertificateRepository(session).create(
                name=request.name,
                email=request.email,
                gst_number=request.gst_number,
                business_name=request.business_name,
                business_address=request.business_address,
                pdf_path=str(files.pdf_path),
                jpg_path=str(files.jpg_path),
            )
            record_id = record.id
            await session.commit()
    except Exception as e:
        logger.error(
            "certificate.save_failed",
            gst_number=request.gst_number,
            error=str(e),
            exc_info=True,
        )
        raise CertificateStorageError("Failed to save certificate record") from e

    logger.info("certificate.saved", record_id=record_id)
    return record_id


async def issue_certificate(
    request: CertificateRequest,
    session_maker: async_sessionmaker[AsyncSession],
    output_dir: Path | None = None,
) -> IssuedCertificate:
    """Render, persist and email a certificate, in that order.

    Raises:
        CertificateRenderError: Rendering failed (nothing saved or sent)
        CertificateStorageError: Saving failed (files exist, nothing sent)
        EmailDeliveryError: Sending failed (files and record remain)
    """
    logger.info("certificate.generating", gst_number=request.gst_number)
    files = await render_certificate_files(request, output_dir)

    logger.info("certificate.saving")
    record_id = await save_certificate_record(session_maker, request, files)

    logger.info("certificate.emailing", recipient=request.email)
    await send_certificate_email(
        request.email,
        request.name,
        files.pdf_path,
        files.jpg_path,
    )

    logger.info("certificate.issued", record_id=record_id)
    return IssuedCertificate(record_id=record_id, request=request, files=files)
