"""
AffiDraft Backend: Pydantic Request/Response Schemas
=====================================================

What:  The API contract of the affidavit template resource.
How:   FastAPI validates request bodies against these models (the canvas
       elements go through the editor's discriminated union, so a malformed
       object is rejected with 422 before any service code runs) and
       serializes responses from ORM rows via from_attributes.
Who:   Route handlers; the editor's TemplateClient speaks the same shapes.

Casing:
    Envelope fields are snake_case (`is_active`, `created_at`). The stored
    `elements` and `placeholders` keep the editor's camelCase wire format.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from affidraft.editor.objects import CanvasObject
from affidraft.editor.placeholders import PlaceholderDefinition


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class TemplateSaveRequest(BaseModel):
    """
    Body of POST and PUT /api/affidavit-templates.

    `placeholders` is what the editor extracted; the server recomputes the
    list from `elements`, using these definitions to resolve custom ids.
    """
    name: str = Field(min_length=1, max_length=255, description="Template name")
    description: Optional[str] = Field(default=None, description="Optional free-text description")
    elements: List[CanvasObject] = Field(
        default_factory=list,
        description="Canvas objects in z-order (bottom first)",
    )
    placeholders: List[PlaceholderDefinition] = Field(
        default_factory=list,
        description="Placeholder definitions referenced by the elements",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Template name must not be blank")
        return stripped

    @model_validator(mode="after")
    def validate_unique_element_ids(self) -> "TemplateSaveRequest":
        ids = [element.id for element in self.elements]
        if len(ids) != len(set(ids)):
            raise ValueError("Element ids must be unique within a template")
        return self


class FillRequest(BaseModel):
    """Values keyed by placeholder id, e.g. {"name": "Jane Roe", "date": "2024-05-01"}."""
    values: Dict[str, Union[str, int, float, bool, None]] = Field(
        default_factory=dict,
        description="Placeholder values keyed by placeholder id",
    )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TemplateResponse(BaseModel):
    """Full template version, as returned by create, update and get."""
    id: uuid.UUID = Field(description="Template version identifier")
    name: str
    description: Optional[str] = None
    elements: List[Dict[str, Any]] = Field(description="Serialized canvas objects in z-order")
    placeholders: List[Dict[str, Any]] = Field(description="Placeholder definitions in use")
    version: int = Field(description="Version number, starting at 1")
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TemplateListItem(BaseModel):
    """Compact row for the template picker."""
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    version: int
    element_count: int = Field(description="Number of canvas objects")
    placeholder_count: int = Field(description="Number of distinct placeholders used")
    updated_at: datetime


class TemplateListResponse(BaseModel):
    templates: List[TemplateListItem] = Field(description="Active templates, name asc, version desc")
    total_count: int


class FillResponse(BaseModel):
    template_id: uuid.UUID
    name: str
    elements: List[Dict[str, Any]] = Field(description="Elements with placeholder values applied")


class PlaceholderCatalogResponse(BaseModel):
    placeholders: List[Dict[str, Any]] = Field(description="Built-in placeholders in picker order")


# ══════════════════════════════════════════════════════════════════════════
# Error & Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for every endpoint.

    Example:
        {
            "error": "not_found",
            "message": "affidavit template with ID '1b4e...' was not found",
            "details": null,
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
