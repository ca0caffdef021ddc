#!/usr/bin/env python3
"""CLI for Certificate API management tasks.

Usage:
    python -m cli <command>

Commands:
    migrate        Run database migrations (default target: head)
    render-sample  Render a sample certificate to PDF and JPEG locally
    list           List certificate records issued to an email address
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_API_DIR = Path(__file__).resolve().parent

SAMPLE_REQUEST = {
    "name": "Asha Verma",
    "email": "asha.verma@example.com",
    "gstNumber": "29ABCDE1234F1Z5",
    "businessName": "Verma Textiles Private Limited",
    "businessAddress": "42 Residency Road, Shanthala Nagar, Bengaluru, Karnataka 560025",
}


def _get_alembic_config():
    from alembic.config import Config

    cfg = Config(str(_API_DIR / "alembic.ini"))
    # Absolute so it works from any working directory.
    cfg.set_main_option("script_location", str(_API_DIR / "alembic"))
    return cfg


def cmd_migrate(target: str) -> int:
    """Run database migrations."""
    from alembic import command

    logger.info("Running database migrations to %s...", target)
    command.upgrade(_get_alembic_config(), target)
    logger.info("Migrations complete")
    return 0


def cmd_render_sample(out_dir: Path) -> int:
    """Render a sample certificate without touching the database or SMTP."""
    from services.certificates_service import render_certificate_files
    from services.validation_service import validate_certificate_request

    request = validate_certificate_request(SAMPLE_REQUEST)
    files = asyncio.run(render_certificate_files(request, out_dir))
    logger.info("PDF written to %s", files.pdf_path)
    logger.info("JPEG written to %s", files.jpg_path)
    return 0


async def _list_records(email: str, limit: int) -> int:
    from core.database import create_engine, create_session_maker, dispose_engine
    from repositories.certificate_repository import CertificateRepository

    engine = create_engine()
    try:
        async with create_session_maker(engine)() as session:
            records = await CertificateRepository(session).list_by_email(
                email, limit=limit
            )
    finally:
        await dispose_engine(engine)

    if not records:
        logger.warning("No certificates found for %s", email)
        return 1

    for record in records:
        print(
            f"{record.id}\t{record.created_at:%Y-%m-%d %H:%M}\t"
            f"{record.gst_number}\t{record.business_name}\t{record.pdf_path}"
        )
    return 0


def cmd_list(email: str, limit: int) -> int:
    """List stored certificate records for an email address."""
    return asyncio.run(_list_records(email, limit))


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Certificate API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    migrate = subparsers.add_parser("migrate", help="Run database migrations")
    migrate.add_argument(
        "target", nargs="?", default="head", help="Target revision (default: head)"
    )

    render = subparsers.add_parser(
        "render-sample", help="Render a sample certificate locally"
    )
    render.add_argument(
        "--out",
        type=Path,
        default=Path("sample-output"),
        help="Output directory (default: ./sample-output)",
    )

    list_cmd = subparsers.add_parser("list", help="List certificates for an email")
    list_cmd.add_argument("--email", required=True)
    list_cmd.add_argument("--limit", type=int, default=20)

    args = parser.parse_args()

    if args.command == "migrate":
        return cmd_migrate(args.target)
    elif args.command == "render-sample":
        return cmd_render_sample(args.out)
    elif args.command == "list":
        return cmd_list(args.email, args.limit)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
