"""Create affidavit_templates table

Revision ID: 001
Revises: None
Create Date: 2024-05-01 00:00:00.000000+00:00

What:  Creates `affidavit_templates`, one row per template version.
How:   PostgreSQL UUID primary key and JSONB for the canvas elements and
       placeholder definitions.

Rollback: downgrade() drops the table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "affidavit_templates",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
            comment="Template version identifier",
        ),
        sa.Column(
            "name",
            sa.String(255),
            nullable=False,
            comment="Display name, shared by every version of a template",
        ),
        sa.Column("description", sa.Text(), nullable=True),

        # Canvas objects in z-order; array order is paint order
        sa.Column(
            "elements",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment="Canvas objects, bottom first",
        ),
        sa.Column(
            "placeholders",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment="Placeholder definitions used by the layout",
        ),

        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
            comment="False once superseded by a newer version or deleted",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("version >= 1", name="ck_affidavit_templates_version_positive"),
    )

    # Serves the list query: WHERE is_active ORDER BY name, version DESC
    op.create_index(
        "idx_affidavit_templates_active_name",
        "affidavit_templates",
        ["is_active", "name", "version"],
    )


def downgrade() -> None:
    op.drop_index("idx_affidavit_templates_active_name", table_name="affidavit_templates")
    op.drop_table("affidavit_templates")
