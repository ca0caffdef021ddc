"""create certificates table

Revision ID: 0001_create_certificates
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_create_certificates"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "certificates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("gst_number", sa.String(15), nullable=False),
        sa.Column("business_name", sa.String(200), nullable=False),
        sa.Column("business_address", sa.Text(), nullable=False),
        sa.Column("pdf_path", sa.Text(), nullable=False),
        sa.Column("jpg_path", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_certificates_email", "certificates", ["email"])
    op.create_index("ix_certificates_gst_number", "certificates", ["gst_number"])


def downgrade() -> None:
    op.drop_index("ix_certificates_gst_number", table_name="certificates")
    op.drop_index("ix_certificates_email", table_name="certificates")
    op.drop_table("certificates")
