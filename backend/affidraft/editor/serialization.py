"""
AffiDraft Editor: Serialization & Placeholder Extraction
=========================================================

What:  Produces the two persisted artifacts of a template from live canvas
       objects: the element snapshot and the list of placeholders in use.
How:   Pure functions over a sequence of objects; nothing here mutates the
       canvas. Array order of the snapshot is the z-order.
Who:   EditorSession.document() on save, the template service when a
       template is created or updated, and the fill/export paths that
       rebuild objects from stored elements.

Extraction (single pass, first-seen order):

    objects (z-order) ──▶ placeholder? ──▶ seen? ──▶ resolve in snapshot
                              │ no           │ yes        │ missing
                              ▼              ▼            ▼
                            ignore         ignore    MissingPlaceholderPolicy
                                                      skip        → log warning, drop
                                                      reconstruct → rebuild from metadata
                                                      strict      → UnresolvedPlaceholderError
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from affidraft.config import settings
from affidraft.editor.objects import (
    CanvasModel,
    CanvasObjectBase,
    canvas_object_list_adapter,
    to_validation_error,
)
from affidraft.editor.placeholders import (
    PlaceholderDefinition,
    PlaceholderRegistry,
    token_name,
)
from affidraft.exceptions import UnresolvedPlaceholderError, ValidationError

logger = logging.getLogger(__name__)


class MissingPlaceholderPolicy(str, Enum):
    """What extraction does with a placeholder id the registry cannot resolve."""

    SKIP = "skip"
    RECONSTRUCT = "reconstruct"
    STRICT = "strict"


class TemplateDocument(CanvasModel):
    """The payload persisted on save. Built fresh for every save call."""

    name: str
    elements: List[Dict[str, Any]]
    placeholders: List[PlaceholderDefinition]

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the template endpoint: {name, elements, placeholders}."""
        return {
            "name": self.name,
            "elements": self.elements,
            "placeholders": serialize_placeholders(self.placeholders),
        }


# ── Elements ──────────────────────────────────────────────────────────────


def serialize(objects: Iterable[CanvasObjectBase]) -> List[Dict[str, Any]]:
    """One camelCase record per object, in z-order."""
    return [obj.model_dump(by_alias=True, mode="json") for obj in objects]


def deserialize(elements: Any) -> List[CanvasObjectBase]:
    """
    Rebuilds canvas objects from serialized records, preserving order.

    Raises:
        ValidationError: Not a list, unknown kind, or a record violating
                         its kind's shape
    """
    try:
        return canvas_object_list_adapter.validate_python(elements)
    except PydanticValidationError as exc:
        raise to_validation_error(exc, "canvas elements") from exc


# ── Placeholders ──────────────────────────────────────────────────────────


def serialize_placeholders(definitions: Iterable[PlaceholderDefinition]) -> List[Dict[str, Any]]:
    return [
        definition.model_dump(by_alias=True, mode="json", exclude_none=True)
        for definition in definitions
    ]


def deserialize_placeholders(records: Any) -> List[PlaceholderDefinition]:
    if not isinstance(records, list):
        raise ValidationError(message="Placeholder definitions must be a list", field="placeholders")
    try:
        return [PlaceholderDefinition.model_validate(record) for record in records]
    except PydanticValidationError as exc:
        raise to_validation_error(exc, "placeholder definitions") from exc


def reconstruct_definition(obj: CanvasObjectBase) -> PlaceholderDefinition:
    """
    Minimal definition recovered from a placeholder object's own data:
    id and type from metadata, name from its `{{Name}}` text when present.
    """
    placeholder_id = obj.metadata.placeholder_id
    name = token_name(getattr(obj, "text", "")) or placeholder_id
    return PlaceholderDefinition(
        id=placeholder_id,
        name=name,
        description="Recovered from canvas",
        type=obj.metadata.placeholder_type,
    )


def extract_placeholders(
    objects: Iterable[CanvasObjectBase],
    registry_snapshot: Mapping[str, PlaceholderDefinition],
    policy: Union[MissingPlaceholderPolicy, str] = MissingPlaceholderPolicy.SKIP,
) -> List[PlaceholderDefinition]:
    """
    Definitions referenced by the canvas, de-duplicated, in first-seen z-order.

    Raises:
        UnresolvedPlaceholderError: Only under the strict policy
    """
    policy = MissingPlaceholderPolicy(policy)
    seen = set()
    used: List[PlaceholderDefinition] = []

    for obj in objects:
        if not obj.is_placeholder:
            continue
        placeholder_id = obj.metadata.placeholder_id
        if placeholder_id in seen:
            continue
        seen.add(placeholder_id)

        definition = registry_snapshot.get(placeholder_id)
        if definition is None:
            if policy is MissingPlaceholderPolicy.STRICT:
                raise UnresolvedPlaceholderError(placeholder_id, context={"object_id": obj.id})
            if policy is MissingPlaceholderPolicy.SKIP:
                logger.warning(
                    "Placeholder '%s' on object %s has no definition; leaving it out",
                    placeholder_id, obj.id,
                )
                continue
            definition = reconstruct_definition(obj)
            logger.info("Reconstructed definition for placeholder '%s'", placeholder_id)

        used.append(definition)

    return used


def build_document(
    name: str,
    objects: Sequence[CanvasObjectBase],
    registry: PlaceholderRegistry,
    policy: Optional[Union[MissingPlaceholderPolicy, str]] = None,
) -> TemplateDocument:
    """Snapshot + extraction in one synchronous step."""
    if policy is None:
        policy = settings.missing_placeholder_policy
    return TemplateDocument(
        name=name,
        elements=serialize(objects),
        placeholders=extract_placeholders(objects, registry.snapshot(), policy),
    )
