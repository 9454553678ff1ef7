"""
AffiDraft Backend: Affidavit Template Route Handlers
=====================================================

What:  The template resource the editor saves into, plus export and fill.
How:   Thin handlers: FastAPI validates the body (including every canvas
       object), TemplateService does the work, handlers set status codes
       and headers.
Who:   The template editor (EditorSession / TemplateClient) and any
       document-generation client.

Endpoints:
    GET    /api/affidavit-templates                 list active templates
    POST   /api/affidavit-templates                 create (201)
    GET    /api/affidavit-templates/{id}            fetch one version
    PUT    /api/affidavit-templates/{id}            versioned update
    DELETE /api/affidavit-templates/{id}            deactivate (204)
    GET    /api/affidavit-templates/{id}/export.png rendered layout
    GET    /api/affidavit-templates/{id}/export.pdf 501, not available
    POST   /api/affidavit-templates/{id}/fill       apply placeholder values
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from affidraft.database import get_db_session
from affidraft.schemas.template import (
    ErrorResponse,
    FillRequest,
    FillResponse,
    TemplateListResponse,
    TemplateResponse,
    TemplateSaveRequest,
)
from affidraft.services.template_service import template_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/affidavit-templates", tags=["Affidavit Templates"])


@router.get(
    "",
    response_model=TemplateListResponse,
    responses={
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List active affidavit templates",
    description="Active templates ordered by name, newest version first.",
)
async def list_templates(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> TemplateListResponse:
    result = await template_service.list_templates(db=db)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Template created", "model": TemplateResponse},
        400: {"description": "Invalid template", "model": ErrorResponse},
        422: {"description": "Malformed body or unresolved placeholder", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create an affidavit template",
    description=(
        "Stores a new template at version 1. The placeholder list is recomputed "
        "from the elements on the server."
    ),
)
async def create_template(
    request: TemplateSaveRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TemplateResponse:
    return await template_service.create_template(db=db, request=request)


@router.get(
    "/{template_id}",
    response_model=TemplateResponse,
    responses={
        404: {"description": "Template not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get an affidavit template by ID",
)
async def get_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> TemplateResponse:
    return await template_service.get_template(db=db, template_id=template_id)


@router.put(
    "/{template_id}",
    response_model=TemplateResponse,
    responses={
        200: {"description": "New template version", "model": TemplateResponse},
        400: {"description": "Version is no longer active", "model": ErrorResponse},
        404: {"description": "Template not found", "model": ErrorResponse},
        422: {"description": "Malformed body or unresolved placeholder", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Update an affidavit template",
    description=(
        "Creates version N+1 and deactivates version N in one transaction. "
        "The response carries the id of the new version."
    ),
)
async def update_template(
    template_id: UUID,
    request: TemplateSaveRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TemplateResponse:
    return await template_service.update_template(db=db, template_id=template_id, request=request)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"description": "Template not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Deactivate an affidavit template",
)
async def delete_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await template_service.delete_template(db=db, template_id=template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{template_id}/export.png",
    response_class=Response,
    responses={
        200: {"description": "PNG rendering of the layout", "content": {"image/png": {}}},
        404: {"description": "Template not found", "model": ErrorResponse},
    },
    summary="Export a template layout as PNG",
)
async def export_template_png(
    template_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    png = await template_service.render_png(db=db, template_id=template_id)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="template-{template_id}.png"'},
    )


@router.get(
    "/{template_id}/export.pdf",
    response_class=Response,
    responses={
        404: {"description": "Template not found", "model": ErrorResponse},
        501: {"description": "PDF export is not available", "model": ErrorResponse},
    },
    summary="Export a template layout as PDF (not available)",
)
async def export_template_pdf(
    template_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    pdf = await template_service.render_pdf(db=db, template_id=template_id)
    return Response(content=pdf, media_type="application/pdf")


@router.post(
    "/{template_id}/fill",
    response_model=FillResponse,
    responses={
        404: {"description": "Template not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Fill a template's placeholders",
    description=(
        "Returns the template's elements with placeholder values applied. "
        "Missing values fall back to the placeholder's default, then to `[Name]`."
    ),
)
async def fill_template(
    template_id: UUID,
    request: FillRequest,
    db: AsyncSession = Depends(get_db_session),
) -> FillResponse:
    return await template_service.fill_template(db=db, template_id=template_id, values=request.values)
