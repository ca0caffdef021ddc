"""Repository for certificate record operations."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import CertificateRecord


class CertificateRepository:
    """Repository for certificate record persistence and lookups."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, record_id: int) -> CertificateRecord | None:
        result = await self.db.execute(
            select(CertificateRecord).where(CertificateRecord.id == record_id)
        )
        return result.scalar_one_or_none()

    async def list_by_email(
        self,
        email: str,
        *,
        limit: int = 100,
    ) -> Sequence[CertificateRecord]:
        """Get certificates issued to an email address, most recent first.

        Args:
            email: Recipient address (matched case-insensitively)
            limit: Maximum number of records to return (default 100)
        """
        result = await self.db.execute(
            select(CertificateRecord)
            .where(CertificateRecord.email == email.strip().lower())
            .order_by(CertificateRecord.created_at.desc(), CertificateRecord.id.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def create(
        self,
        name: str,
        email: str,
        gst_number: str,
        business_name: str,
        business_address: str,
        pdf_path: str,
        jpg_path: str,
    ) -> CertificateRecord:
        """Create a new certificate record.

        Calls flush() but does NOT commit; the caller is responsible for
        transaction management.
        """
        record = CertificateRecord(
            name=name,
            email=email,
            gst_number=gst_number,
            business_name=business_name,
            business_address=business_address,
            pdf_path=pdf_path,
            jpg_path=jpg_path,
        )
        self.db.add(record)
        await self.db.flush()
        return record
