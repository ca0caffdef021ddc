"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping services free of SQL
and easy to test with a mocked session.
"""

from repositories.certificate_repository import CertificateRepository

__all__ = [
    "CertificateRepository",
]
