"""
AffiDraft Backend: Affidavit Template SQLAlchemy Model
=======================================================

What:  ORM model for the `affidavit_templates` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   Used by TemplateService for CRUD and versioning.

Versioning:
    Templates are never edited in place. An update deactivates the current
    row and inserts a new row with the same name and `version + 1`:

        id=a1  name="Residency"  version=1  is_active=false
        id=b7  name="Residency"  version=2  is_active=true   ← what GET returns

    Column types are the portable SQLAlchemy generics (Uuid, JSON) so the
    test suite can run on SQLite; the migration creates the PostgreSQL
    UUID / JSONB columns.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from affidraft.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AffidavitTemplate(Base):
    """
    A saved template: canvas layout (`elements`) plus the placeholder
    definitions the layout references (`placeholders`).

    Query Patterns:
        - List active: WHERE is_active ORDER BY name ASC, version DESC
          → idx_affidavit_templates_active_name
        - Get by id: primary key lookup
    """

    __tablename__ = "affidavit_templates"

    # ── Primary Key ───────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Template version identifier",
    )

    # ── Content ───────────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name, shared by every version of a template",
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
    )

    # Serialized canvas objects in z-order (array order is paint order)
    elements: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Canvas objects, bottom first",
    )
    # De-duplicated placeholder definitions referenced by `elements`
    placeholders: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Placeholder definitions used by the layout",
    )

    # ── Versioning ────────────────────────────────────────────────────────
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="False once superseded by a newer version or deleted",
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_affidavit_templates_active_name", "is_active", "name", "version"),
    )

    def __repr__(self) -> str:
        return (
            f"<AffidavitTemplate(id={self.id}, name='{self.name}', "
            f"version={self.version}, is_active={self.is_active})>"
        )
