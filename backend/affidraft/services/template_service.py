"""
AffiDraft Backend: Template Service (Business Logic)
=====================================================

What:  Persistence and server-side processing of affidavit templates.
How:   Validated requests arrive as editor objects; the service re-runs
       placeholder extraction against the built-ins plus the submitted
       definitions, serializes the elements and writes a versioned row.
Who:   Called by the /api/affidavit-templates route handlers.

Save Flow (POST / PUT):
    ┌──────────────┐    ┌────────────────────┐    ┌──────────────────┐    ┌──────────┐
    │ SaveRequest  │───▶│ PlaceholderRegistry│───▶│ extract_         │───▶│  Store   │
    │ (validated   │    │ builtins +         │    │ placeholders()   │    │  (row,   │
    │  elements)   │    │ submitted defs     │    │ policy=settings  │    │  v + 1)  │
    └──────────────┘    └────────────────────┘    └──────────────────┘    └──────────┘

    The stored placeholder list is always derived from the stored elements,
    never taken on trust from the client.

Error Handling:
    Application exceptions (NotFoundError, ValidationError,
    UnresolvedPlaceholderError, FeatureNotAvailableError) propagate as-is.
    Anything else is logged and wrapped in DatabaseError.
"""

import logging
from typing import Any, Dict, List, Mapping, Tuple
from uuid import UUID

from sqlalchemy import asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from affidraft.config import settings
from affidraft.editor.export import export_pdf, export_png
from affidraft.editor.generation import fill_document
from affidraft.editor.placeholders import PlaceholderRegistry
from affidraft.editor.serialization import (
    TemplateDocument,
    deserialize,
    deserialize_placeholders,
    extract_placeholders,
    serialize,
    serialize_placeholders,
)
from affidraft.exceptions import AffiDraftError, DatabaseError, NotFoundError, ValidationError
from affidraft.models.template import AffidavitTemplate
from affidraft.schemas.template import (
    FillResponse,
    TemplateListItem,
    TemplateListResponse,
    TemplateResponse,
    TemplateSaveRequest,
)

logger = logging.getLogger(__name__)

RESOURCE = "affidavit template"


class TemplateService:
    """
    Business logic layer for affidavit templates.

    Responsibilities:
        - create_template() / update_template(): extraction + versioned persistence
        - get_template() / list_templates() / delete_template()
        - render_png() / render_pdf(): export a stored layout
        - fill_template(): apply placeholder values for document generation
    """

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def prepare_content(request: TemplateSaveRequest) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """
        Serialized elements and the placeholder definitions they actually use.

        Raises:
            UnresolvedPlaceholderError: strict policy and a dangling placeholder id
        """
        registry = PlaceholderRegistry()
        registry.register(request.placeholders)
        used = extract_placeholders(
            request.elements,
            registry.snapshot(),
            settings.missing_placeholder_policy,
        )
        return serialize(request.elements), serialize_placeholders(used)

    @staticmethod
    async def _load(db: AsyncSession, template_id: UUID) -> AffidavitTemplate:
        result = await db.execute(
            select(AffidavitTemplate).where(AffidavitTemplate.id == template_id)
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFoundError(resource=RESOURCE, resource_id=str(template_id))
        return template

    @staticmethod
    def _document(template: AffidavitTemplate) -> TemplateDocument:
        return TemplateDocument(
            name=template.name,
            elements=template.elements or [],
            placeholders=deserialize_placeholders(template.placeholders or []),
        )

    # ── CRUD ──────────────────────────────────────────────────────────────

    async def create_template(
        self,
        db: AsyncSession,
        request: TemplateSaveRequest,
    ) -> TemplateResponse:
        """
        Stores a new template at version 1.

        Raises:
            UnresolvedPlaceholderError: strict policy only (→ 422)
            DatabaseError: insert failed (→ 500)
        """
        try:
            elements, placeholders = self.prepare_content(request)
            template = AffidavitTemplate(
                name=request.name,
                description=request.description,
                elements=elements,
                placeholders=placeholders,
                version=1,
                is_active=True,
            )
            db.add(template)
            await db.flush()
            logger.info(
                "Created template %s '%s' (%d elements, %d placeholders)",
                template.id, template.name, len(elements), len(placeholders),
            )
            return TemplateResponse.model_validate(template)

        except AffiDraftError:
            raise
        except Exception as e:
            logger.error("Database error creating template: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the template. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_template(
        self,
        db: AsyncSession,
        template_id: UUID,
        request: TemplateSaveRequest,
    ) -> TemplateResponse:
        """
        Versioned update: the current row is deactivated and a new row with
        `version + 1` is inserted, both inside the request's transaction.

        Raises:
            NotFoundError: no template with this id (→ 404)
            ValidationError: the id names a superseded or deleted version (→ 400)
        """
        try:
            current = await self._load(db, template_id)
            if not current.is_active:
                raise ValidationError(
                    message="This template version is no longer active; update the latest version instead.",
                    field="id",
                    context={"template_id": str(template_id), "version": current.version},
                )

            elements, placeholders = self.prepare_content(request)
            current.is_active = False
            successor = AffidavitTemplate(
                name=request.name,
                description=request.description if request.description is not None else current.description,
                elements=elements,
                placeholders=placeholders,
                version=current.version + 1,
                is_active=True,
            )
            db.add(successor)
            await db.flush()
            logger.info(
                "Template '%s' updated: %s (v%d) superseded by %s (v%d)",
                successor.name, current.id, current.version, successor.id, successor.version,
            )
            return TemplateResponse.model_validate(successor)

        except AffiDraftError:
            raise
        except Exception as e:
            logger.error("Database error updating template %s: %s", template_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the template. Please try again.",
                context={"template_id": str(template_id)},
            )

    async def get_template(self, db: AsyncSession, template_id: UUID) -> TemplateResponse:
        try:
            return TemplateResponse.model_validate(await self._load(db, template_id))
        except AffiDraftError:
            raise
        except Exception as e:
            logger.error("Database error fetching template %s: %s", template_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the template. Please try again.",
                context={"template_id": str(template_id)},
            )

    async def list_templates(self, db: AsyncSession) -> TemplateListResponse:
        """Active templates ordered by name ascending, then version descending."""
        try:
            result = await db.execute(
                select(AffidavitTemplate)
                .where(AffidavitTemplate.is_active.is_(True))
                .order_by(asc(AffidavitTemplate.name), desc(AffidavitTemplate.version))
            )
            templates = list(result.scalars().all())
            items = [
                TemplateListItem(
                    id=template.id,
                    name=template.name,
                    description=template.description,
                    version=template.version,
                    element_count=len(template.elements or []),
                    placeholder_count=len(template.placeholders or []),
                    updated_at=template.updated_at,
                )
                for template in templates
            ]
            return TemplateListResponse(templates=items, total_count=len(items))

        except Exception as e:
            logger.error("Database error listing templates: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve templates. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def delete_template(self, db: AsyncSession, template_id: UUID) -> None:
        """
        Soft delete: the version is deactivated and disappears from the list,
        but stays readable by id for history.

        Raises:
            NotFoundError: unknown id, or the version is already inactive (→ 404)
        """
        try:
            template = await self._load(db, template_id)
            if not template.is_active:
                raise NotFoundError(resource=RESOURCE, resource_id=str(template_id))
            template.is_active = False
            await db.flush()
            logger.info("Deactivated template %s '%s' (v%d)", template.id, template.name, template.version)

        except AffiDraftError:
            raise
        except Exception as e:
            logger.error("Database error deleting template %s: %s", template_id, str(e))
            raise DatabaseError(
                message="Could not delete the template. Please try again.",
                context={"template_id": str(template_id)},
            )

    # ── Export & Generation ───────────────────────────────────────────────

    async def render_png(self, db: AsyncSession, template_id: UUID) -> bytes:
        template = await self._load(db, template_id)
        return export_png(deserialize(template.elements or []))

    async def render_pdf(self, db: AsyncSession, template_id: UUID) -> bytes:
        template = await self._load(db, template_id)
        return export_pdf(deserialize(template.elements or []))

    async def fill_template(
        self,
        db: AsyncSession,
        template_id: UUID,
        values: Mapping[str, Any],
    ) -> FillResponse:
        """Elements with `values` (keyed by placeholder id) applied."""
        template = await self._load(db, template_id)
        elements = fill_document(self._document(template), values)
        return FillResponse(template_id=template.id, name=template.name, elements=elements)


# ── Singleton Instance ────────────────────────────────────────────────────
template_service = TemplateService()
