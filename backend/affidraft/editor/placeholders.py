"""
AffiDraft Editor: Placeholder Registry
=======================================

What:  The catalog of placeholder fields a template can reference, and the
       factory that turns a definition into a live placeholder-text object.
How:   Fourteen built-in definitions in a fixed order, plus session-local
       custom definitions with `custom_<uuid4>` ids. A registry is never
       shared between sessions; loading a template re-derives it from the
       template's stored placeholder list via register().
Who:   EditorSession, the template service (server-side extraction) and
       GET /api/placeholders.

Token format:
    A placeholder renders on the canvas as `{{<name>}}`, e.g. `{{Full Name}}`.
    The same token is what generation later replaces with real data.
"""

import logging
import re
import uuid
from typing import Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ConfigDict, Field, model_validator

from affidraft.editor.canvas import CanvasController
from affidraft.editor.objects import (
    CanvasModel,
    CanvasObjectBase,
    ObjectKind,
    PlaceholderInfo,
    PlaceholderType,
)

logger = logging.getLogger(__name__)

CUSTOM_ID_PREFIX = "custom_"
TOKEN_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

# Accent styling that sets placeholders apart from ordinary text
PLACEHOLDER_STYLE = {
    "fill": "#0066cc",
    "stroke": "#0066cc",
    "stroke_width": 1,
    "background_color": "#e6f7ff",
    "font_family": "Arial",
    "font_size": 18,
    "font_weight": "bold",
}
PLACEHOLDER_SPAWN_SPREAD = 150.0


def placeholder_token(name: str) -> str:
    """`Full Name` → `{{Full Name}}`"""
    return "{{" + name + "}}"


def token_name(text: str) -> Optional[str]:
    """Returns the name inside the first `{{...}}` token of text, trimmed, or None."""
    match = TOKEN_PATTERN.search(text or "")
    if match is None:
        return None
    name = match.group(1).strip()
    return name or None


class PlaceholderDefinition(CanvasModel):
    """
    A named, typed field that a template can reference.

    `id` is the identity; `name` is display text and need not be unique.
    `options` lists the choices of a `select` placeholder.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: Optional[str] = None
    default_value: Optional[str] = None
    type: PlaceholderType = PlaceholderType.TEXT
    options: Optional[List[str]] = None

    @model_validator(mode="after")
    def _options_only_for_select(self) -> "PlaceholderDefinition":
        if self.options is not None and self.type is not PlaceholderType.SELECT:
            raise ValueError("options are only allowed on select placeholders")
        return self

    @property
    def token(self) -> str:
        return placeholder_token(self.name)

    @property
    def is_custom(self) -> bool:
        return self.id.startswith(CUSTOM_ID_PREFIX)


def _builtin(id: str, name: str, description: Optional[str] = None,
             type: PlaceholderType = PlaceholderType.TEXT) -> PlaceholderDefinition:
    return PlaceholderDefinition(id=id, name=name, description=description, type=type)


# ── Built-in Catalog ──────────────────────────────────────────────────────
# Order is user-visible in the picker and must not change.
BUILTIN_PLACEHOLDERS = (
    _builtin("name", "Full Name", "Full name of the person making the affidavit"),
    _builtin("address", "Address", "Current address"),
    _builtin("city", "City"),
    _builtin("state", "State"),
    _builtin("zip", "ZIP Code"),
    _builtin("date", "Date", "Date of affidavit", PlaceholderType.DATE),
    _builtin("signature", "Signature", "Electronic signature"),
    _builtin("caseNumber", "Case Number", "Legal case number"),
    _builtin("courtName", "Court Name"),
    _builtin("partyName", "Party Name", "Name of legal party"),
    _builtin("attorneyName", "Attorney Name"),
    _builtin("phoneNumber", "Phone Number"),
    _builtin("email", "Email"),
    _builtin("declarationText", "Declaration", "Standard declaration text"),
)


class PlaceholderRegistry:
    """
    Session-local catalog: the built-ins followed by customs in creation order.
    """

    def __init__(self, builtins: Optional[Iterable[PlaceholderDefinition]] = None):
        self._builtins = tuple(BUILTIN_PLACEHOLDERS if builtins is None else builtins)
        self._customs: List[PlaceholderDefinition] = []

    def list_builtins(self) -> List[PlaceholderDefinition]:
        return list(self._builtins)

    def list_custom(self) -> List[PlaceholderDefinition]:
        return list(self._customs)

    def list_all(self) -> List[PlaceholderDefinition]:
        return list(self._builtins) + list(self._customs)

    def resolve(self, placeholder_id: str) -> Optional[PlaceholderDefinition]:
        for definition in self._builtins:
            if definition.id == placeholder_id:
                return definition
        for definition in self._customs:
            if definition.id == placeholder_id:
                return definition
        return None

    def snapshot(self) -> Dict[str, PlaceholderDefinition]:
        """Ordered id → definition view used by extraction."""
        return {definition.id: definition for definition in self.list_all()}

    def create_custom(
        self,
        name: str,
        type: Union[PlaceholderType, str] = PlaceholderType.TEXT,
    ) -> PlaceholderDefinition:
        """
        Adds a custom definition with an id that collides with no built-in
        and no earlier custom. Names are not checked; two customs may share one.
        """
        new_id = f"{CUSTOM_ID_PREFIX}{uuid.uuid4()}"
        while self.resolve(new_id) is not None:
            new_id = f"{CUSTOM_ID_PREFIX}{uuid.uuid4()}"
        definition = PlaceholderDefinition(
            id=new_id,
            name=name,
            description="Custom placeholder",
            type=PlaceholderType(type),
        )
        self._customs.append(definition)
        logger.info("Created custom placeholder %s (%r)", definition.id, name)
        return definition

    def register(
        self,
        definitions: Iterable[Union[PlaceholderDefinition, Mapping]],
    ) -> List[PlaceholderDefinition]:
        """
        Adds definitions from a loaded template. Ids the registry already
        knows are kept as they are. Returns the definitions actually added.
        """
        added = []
        for item in definitions:
            definition = (
                item if isinstance(item, PlaceholderDefinition)
                else PlaceholderDefinition.model_validate(item)
            )
            if self.resolve(definition.id) is not None:
                continue
            self._customs.append(definition)
            added.append(definition)
        if added:
            logger.debug("Registered %d placeholder definitions", len(added))
        return added

    def instantiate(
        self,
        definition: PlaceholderDefinition,
        canvas: CanvasController,
    ) -> CanvasObjectBase:
        """
        Places a `{{<name>}}` placeholder-text object on the canvas with
        accent styling, linked to the definition through its metadata.
        """
        return canvas.add_object(
            ObjectKind.PLACEHOLDER_TEXT,
            style=PLACEHOLDER_STYLE,
            metadata=PlaceholderInfo(
                placeholder_id=definition.id,
                placeholder_type=definition.type,
            ),
            spawn_spread=PLACEHOLDER_SPAWN_SPREAD,
            text=definition.token,
        )
