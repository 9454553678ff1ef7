"""
AffiDraft Backend: Placeholder Catalog Route
=============================================

GET /api/placeholders returns the built-in placeholder definitions in the
order the editor's picker shows them. Custom placeholders are session-local
and only exist inside saved templates.
"""

from fastapi import APIRouter, Response

from affidraft.editor.placeholders import PlaceholderRegistry
from affidraft.editor.serialization import serialize_placeholders
from affidraft.schemas.template import PlaceholderCatalogResponse

router = APIRouter(prefix="/api", tags=["Placeholders"])


@router.get(
    "/placeholders",
    response_model=PlaceholderCatalogResponse,
    summary="List built-in placeholders",
)
async def list_placeholders(response: Response) -> PlaceholderCatalogResponse:
    # Built-ins never change at runtime
    response.headers["Cache-Control"] = "public, max-age=3600"
    return PlaceholderCatalogResponse(
        placeholders=serialize_placeholders(PlaceholderRegistry().list_builtins()),
    )
