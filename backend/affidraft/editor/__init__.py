"""
AffiDraft Editor Core
======================

What:  The in-memory template editor: canvas objects, the placeholder
       registry, serialization/extraction, filling, export, and the
       editing session with its save client.
How:   Synchronous and single-owner. Only EditorSession.save() awaits.

Module Inventory:
    - objects.py:        Canvas object types (discriminated union on `kind`)
    - canvas.py:         CanvasController, the owned, ordered object list
    - placeholders.py:   PlaceholderDefinition, built-ins, PlaceholderRegistry
    - serialization.py:  serialize / deserialize / extract_placeholders
    - generation.py:     Fill `{{Name}}` tokens with data
    - export.py:         PNG rendering with Pillow (PDF not available)
    - session.py:        EditorSession and the httpx TemplateClient
"""

from affidraft.editor.canvas import CanvasController, ReorderDirection
from affidraft.editor.objects import CanvasObject, ObjectKind, PlaceholderInfo, PlaceholderType, Style
from affidraft.editor.placeholders import BUILTIN_PLACEHOLDERS, PlaceholderDefinition, PlaceholderRegistry
from affidraft.editor.serialization import (
    MissingPlaceholderPolicy,
    TemplateDocument,
    build_document,
    deserialize,
    extract_placeholders,
    serialize,
)

__all__ = [
    "BUILTIN_PLACEHOLDERS",
    "CanvasController",
    "CanvasObject",
    "MissingPlaceholderPolicy",
    "ObjectKind",
    "PlaceholderDefinition",
    "PlaceholderInfo",
    "PlaceholderRegistry",
    "PlaceholderType",
    "ReorderDirection",
    "Style",
    "TemplateDocument",
    "build_document",
    "deserialize",
    "extract_placeholders",
    "serialize",
]
