"""
AffiDraft Editor: Template Filling
===================================

Replaces placeholder tokens in a saved template with real values.

    placeholder-text object  → value for its placeholderId
                               → else the definition's defaultValue
                               → else `[Name]`
    text object              → each `{{Name}}` token replaced by the value of
                               the placeholder with that name, else `[Name]`
    everything else          → unchanged
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from affidraft.editor.objects import ObjectKind
from affidraft.editor.placeholders import TOKEN_PATTERN, PlaceholderDefinition, token_name
from affidraft.editor.serialization import TemplateDocument, deserialize, serialize

logger = logging.getLogger(__name__)


def _missing(name: str) -> str:
    return f"[{name}]"


def _present(value: Any) -> bool:
    return value is not None and value != ""


def fill_text(text: str, values: Mapping[str, Any]) -> str:
    """Substitutes `{{Name}}` tokens (names trimmed) from values keyed by name."""

    def replace(match) -> str:
        name = match.group(1).strip()
        value = values.get(name)
        return str(value) if _present(value) else _missing(name)

    return TOKEN_PATTERN.sub(replace, text)


def resolve_value(
    definition: PlaceholderDefinition,
    values: Mapping[str, Any],
) -> Optional[str]:
    value = values.get(definition.id)
    if _present(value):
        return str(value)
    if _present(definition.default_value):
        return definition.default_value
    return None


def fill_document(
    document: TemplateDocument,
    values: Mapping[str, Any],
) -> List[Dict[str, Any]]:
    """
    Returns the document's element records with placeholder values applied.
    `values` is keyed by placeholder id. The document itself is not modified.
    """
    definitions = {definition.id: definition for definition in document.placeholders}

    by_name: Dict[str, str] = {}
    for definition in document.placeholders:
        value = resolve_value(definition, values)
        if value is not None:
            by_name.setdefault(definition.name, value)

    filled = []
    unresolved = 0
    for obj in deserialize(document.elements):
        if obj.is_placeholder and "text" in type(obj).model_fields:
            placeholder_id = obj.metadata.placeholder_id
            definition = definitions.get(placeholder_id)
            if definition is not None:
                value = resolve_value(definition, values)
                name = definition.name
            else:
                value = values.get(placeholder_id)
                value = str(value) if _present(value) else None
                name = token_name(getattr(obj, "text", "")) or placeholder_id
            if value is None:
                unresolved += 1
                value = _missing(name)
            obj = obj.model_copy(update={"text": value})
        elif obj.kind == ObjectKind.TEXT:
            obj = obj.model_copy(update={"text": fill_text(obj.text, by_name)})
        filled.append(obj)

    if unresolved:
        logger.info("Filled template '%s' with %d placeholders left blank", document.name, unresolved)
    return serialize(filled)
