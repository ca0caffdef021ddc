"""Certificate email delivery over SMTP.

Builds a multipart/alternative message (HTML + plain text) with the PDF and
JPEG certificate attached, and sends it with aiosmtplib. Connection settings
come from core.config (STARTTLS on smtp.gmail.com:587 by default).
"""

import asyncio
from email.message import EmailMessage
from pathlib import Path

import aiosmtplib

from core.config import get_settings
from core.logger import get_logger
from core.templates import templates

logger = get_logger(__name__)

EMAIL_SIGNATURE = "Certificate Generation System"

PDF_ATTACHMENT_NAME = "certificate.pdf"
JPEG_ATTACHMENT_NAME = "certificate.jpeg"


class EmailDeliveryError(Exception):
    """Raised when the certificate email could not be sent."""


def build_certificate_message(
    recipient_email: str,
    recipient_name: str,
    pdf_content: bytes,
    jpg_content: bytes,
) -> EmailMessage:
    """Assemble the certificate email with both attachments."""
    settings = get_settings()
    # Header values must be a single line
    display_name = " ".join(recipient_name.split())
    context = {"recipient_name": display_name, "signature": EMAIL_SIGNATURE}

    text_body = (
        templates.env.overlay(autoescape=False)
        .get_template("emails/certificate.txt")
        .render(context)
    )
    html_body = templates.get_template("emails/certificate.html").render(context)

    message = EmailMessage()
    message["From"] = settings.email_sender
    message["To"] = recipient_email
    message["Subject"] = f"Certificate for {display_name}"
    message.set_content(text_body)
    message.add_alternative(html_body, subtype="html")

    message.add_attachment(
        pdf_content,
        maintype="application",
        subtype="pdf",
        filename=PDF_ATTACHMENT_NAME,
    )
    message.add_attachment(
        jpg_content,
        maintype="image",
        subtype="jpeg",
        filename=JPEG_ATTACHMENT_NAME,
    )
    return message


async def send_certificate_email(
    recipient_email: str,
    recipient_name: str,
    pdf_path: Path,
    jpg_path: Path,
) -> None:
    """Email the rendered certificate files to the requester.

    Raises:
        EmailDeliveryError: If the attachments cannot be read, the message
            cannot be built, or SMTP fails.
    """
    settings = get_settings()

    try:
        pdf_content, jpg_content = await asyncio.gather(
            asyncio.to_thread(Path(pdf_path).read_bytes),
            asyncio.to_thread(Path(jpg_path).read_bytes),
        )
    except OSError as e:
        logger.error(
            "email.attachments_unreadable",
            recipient=recipient_email,
            error=str(e),
            exc_info=True,
        )
        raise EmailDeliveryError("Failed to send email") from e

    try:
        message = build_certificate_message(
            recipient_email, recipient_name, pdf_content, jpg_content
        )
    except Exception as e:
        logger.error(
            "email.build_failed",
            recipient=recipient_email,
            error=str(e),
            exc_info=True,
        )
        raise EmailDeliveryError("Failed to send email") from e

    try:
        errors, response = await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user or None,
            password=settings.smtp_password or None,
            start_tls=settings.smtp_start_tls,
            timeout=settings.smtp_timeout,
        )
    except (aiosmtplib.SMTPException, OSError) as e:
        logger.error(
            "email.send_failed",
            recipient=recipient_email,
            smtp_host=settings.smtp_host,
            error=str(e),
            exc_info=True,
        )
        raise EmailDeliveryError("Failed to send email") from e

    logger.info(
        "email.sent",
        recipient=recipient_email,
        smtp_response=response,
        refused=len(errors),
    )
