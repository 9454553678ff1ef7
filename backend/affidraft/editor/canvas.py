"""
AffiDraft Editor: Canvas Controller
====================================

What:  The single owner of the ordered object list for one editing session.
How:   Every structural operation is a method on CanvasController. List
       order is z-order (index 0 is painted first, the last object is on top).
       Listeners are notified synchronously after each effective mutation,
       so anything rendering from get_objects() is consistent by construction.
Who:   Driven by EditorSession, PlaceholderRegistry.instantiate(), the
       template service (rebuilding a stored layout) and tests.

Operation contract:
    ┌──────────────────┬──────────────────────────┬──────────────────────────┐
    │ Operation        │ Unknown id               │ Closed canvas            │
    ├──────────────────┼──────────────────────────┼──────────────────────────┤
    │ add_object       │ n/a                      │ CanvasUnavailableError   │
    │ remove_object    │ no-op (False)            │ CanvasUnavailableError   │
    │ duplicate_object │ no-op (None)             │ CanvasUnavailableError   │
    │ reorder          │ no-op (False)            │ CanvasUnavailableError   │
    │ update_property  │ no-op (False)            │ CanvasUnavailableError   │
    │ get_objects      │ n/a                      │ still readable           │
    └──────────────────┴──────────────────────────┴──────────────────────────┘
"""

import logging
import random
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from affidraft.config import settings
from affidraft.editor.objects import (
    CanvasObjectBase,
    LineGeometry,
    ObjectKind,
    PlaceholderInfo,
    Style,
    default_geometry_for,
    field_name_for,
    geometry_class_for,
    normalize_keys,
    object_class_for,
    to_validation_error,
)
from affidraft.exceptions import CanvasUnavailableError, ValidationError

logger = logging.getLogger(__name__)

ChangeListener = Callable[["CanvasController"], None]

# Fields that identify an object rather than describe it
_IMMUTABLE_FIELDS = frozenset({"id", "kind", "geometry", "style", "metadata"})

# Line end points follow the start point when the position is randomized
_LINE_ENDS = {"x": "end_x", "y": "end_y"}


class ReorderDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


# ── Default Styles ────────────────────────────────────────────────────────
# Applied under any caller-supplied style when an object is added.
DEFAULT_STYLES: Dict[ObjectKind, Dict[str, Any]] = {
    ObjectKind.TEXT: {
        "fill": "#555555",
        "stroke": "rgba(200,200,200,0.5)",
        "stroke_width": 0.5,
        "opacity": 0.9,
        "font_family": "Arial",
        "font_size": 24,
    },
    ObjectKind.RECTANGLE: {
        "fill": "rgba(66,135,245,0.5)",
        "stroke": "rgba(0,0,0,0.3)",
        "stroke_width": 1,
        "opacity": 0.8,
    },
    ObjectKind.CIRCLE: {
        "fill": "rgba(255,0,0,0.4)",
        "stroke": "rgba(0,0,0,0.3)",
        "stroke_width": 2,
        "opacity": 0.9,
    },
    ObjectKind.LINE: {
        "stroke": "rgba(255,0,0,0.6)",
        "stroke_width": 3,
        "opacity": 0.9,
    },
    ObjectKind.IMAGE: {
        "stroke": "#999999",
        "stroke_width": 1,
    },
    ObjectKind.PLACEHOLDER_TEXT: {},
}


def _as_field_mapping(model_cls, value: Union[BaseModel, Mapping[str, Any], None]) -> Dict[str, Any]:
    """Accepts a model instance or a partial camelCase/snake_case mapping."""
    if value is None:
        return {}
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_unset=True)
    return normalize_keys(model_cls, value)


class CanvasController:
    """
    Owns and mutates the objects on one template canvas.

    Args:
        spawn_origin:      Lower bound of randomized placement (defaults from settings)
        spawn_spread:      Width of the randomized placement band
        duplicate_offset:  Translation applied to duplicates on both axes
        rng:               Random source, injectable for deterministic tests
        id_factory:        Callable producing fresh object ids
    """

    def __init__(
        self,
        spawn_origin: Optional[float] = None,
        spawn_spread: Optional[float] = None,
        duplicate_offset: Optional[float] = None,
        rng: Optional[random.Random] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.spawn_origin = settings.spawn_origin if spawn_origin is None else spawn_origin
        self.spawn_spread = settings.spawn_spread if spawn_spread is None else spawn_spread
        self.duplicate_offset = (
            settings.duplicate_offset if duplicate_offset is None else duplicate_offset
        )
        self._rng = rng or random.Random()
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

        self._objects: List[CanvasObjectBase] = []
        self._selected_id: Optional[str] = None
        self._listeners: List[ChangeListener] = []
        self._revision = 0
        self._closed = False

    # ── Read API ──────────────────────────────────────────────────────────

    def get_objects(self) -> List[CanvasObjectBase]:
        """All objects in z-order, bottom first. The list is a snapshot."""
        return list(self._objects)

    def get_object(self, object_id: str) -> Optional[CanvasObjectBase]:
        index = self._index_of(object_id)
        return None if index is None else self._objects[index]

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def revision(self) -> int:
        """Incremented on every mutation that changed the canvas."""
        return self._revision

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, object_id: object) -> bool:
        return isinstance(object_id, str) and self._index_of(object_id) is not None

    # ── Structural Operations ─────────────────────────────────────────────

    def add_object(
        self,
        kind: Union[ObjectKind, str],
        geometry: Union[BaseModel, Mapping[str, Any], None] = None,
        style: Union[Style, Mapping[str, Any], None] = None,
        metadata: Union[PlaceholderInfo, Mapping[str, Any], None] = None,
        spawn_spread: Optional[float] = None,
        **fields: Any,
    ) -> CanvasObjectBase:
        """
        Creates an object on top of the z-order and selects it.

        Missing x/y coordinates are drawn from
        [spawn_origin, spawn_origin + spread) so objects added in quick
        succession do not stack exactly. Missing sizes come from the kind's
        defaults; style fields are merged over the kind's default style.

        Raises:
            CanvasUnavailableError: The canvas has been closed
            ValidationError: Supplied values violate the object's constraints
        """
        self._ensure_open("add_object")
        kind = ObjectKind(kind)
        object_cls = object_class_for(kind)
        geometry_cls = geometry_class_for(kind)
        spread = self.spawn_spread if spawn_spread is None else spawn_spread

        given = _as_field_mapping(geometry_cls, geometry)
        data = default_geometry_for(kind).model_dump()
        data.update(given)
        for axis in ("x", "y"):
            if axis in given:
                continue
            offset = self.spawn_origin + self._rng.random() * spread
            data[axis] = data.get(axis, 0.0) + offset
            end = _LINE_ENDS[axis]
            if end in data and end not in given:
                data[end] += offset

        style_data = dict(DEFAULT_STYLES.get(kind, {}))
        style_data.update(_as_field_mapping(Style, style))

        if isinstance(metadata, Mapping):
            metadata = normalize_keys(PlaceholderInfo, metadata) or None
        content = {
            key: value
            for key, value in normalize_keys(object_cls, fields).items()
            if key not in _IMMUTABLE_FIELDS
        }

        try:
            obj = object_cls.model_validate(
                {
                    "id": self._new_id(),
                    "geometry": geometry_cls.model_validate(data),
                    "style": Style.model_validate(style_data),
                    "metadata": metadata,
                    **content,
                }
            )
        except PydanticValidationError as exc:
            raise to_validation_error(exc, f"{kind.value} object") from exc

        self._objects.append(obj)
        self._selected_id = obj.id
        self._changed()
        logger.debug("Added %s object %s (%d on canvas)", kind.value, obj.id, len(self._objects))
        return obj

    def remove_object(self, object_id: str) -> bool:
        """Deletes an object. Unknown ids are ignored. Returns whether anything was removed."""
        self._ensure_open("remove_object")
        index = self._index_of(object_id)
        if index is None:
            return False
        del self._objects[index]
        if self._selected_id == object_id:
            self._selected_id = None
        self._changed()
        return True

    def duplicate_object(self, object_id: str) -> Optional[CanvasObjectBase]:
        """
        Deep-copies an object under a fresh id, translated by duplicate_offset
        on both axes. The copy goes on top and becomes the selection.
        Returns None when the source id is unknown.
        """
        self._ensure_open("duplicate_object")
        source = self.get_object(object_id)
        if source is None:
            return None
        offset = self.duplicate_offset
        copy = source.model_copy(
            deep=True,
            update={
                "id": self._new_id(),
                "geometry": source.geometry.translated(offset, offset),
            },
        )
        self._objects.append(copy)
        self._selected_id = copy.id
        self._changed()
        logger.debug("Duplicated %s as %s", object_id, copy.id)
        return copy

    def reorder(self, object_id: str, direction: Union[ReorderDirection, str]) -> bool:
        """Moves an object one step forward (up) or backward (down) in z-order."""
        self._ensure_open("reorder")
        direction = ReorderDirection(direction)
        index = self._index_of(object_id)
        if index is None:
            return False
        target = index + 1 if direction is ReorderDirection.FORWARD else index - 1
        if target < 0 or target >= len(self._objects):
            return False
        self._objects[index], self._objects[target] = self._objects[target], self._objects[index]
        self._changed()
        return True

    def update_property(self, object_id: str, name: str, value: Any) -> bool:
        """
        Sets one content, geometry or style field, addressed by its
        camelCase or snake_case name (`strokeWidth`, `font_size`, `x`, `text`).
        On a line, `x`/`y` move the whole segment; `endX`/`endY` move only
        the end point.

        Equal values are skipped. Unknown ids are ignored; unknown property
        names are ignored with a warning. Returns whether the object changed.
        """
        self._ensure_open("update_property")
        obj = self.get_object(object_id)
        if obj is None:
            return False

        target, field = self._resolve_property(obj, name)
        if target is None:
            logger.warning(
                "Ignoring update of unknown property '%s' on %s object %s",
                name, obj.kind, object_id,
            )
            return False

        if getattr(target, field) == value:
            return False

        try:
            if isinstance(target, LineGeometry) and field in _LINE_ENDS:
                # Moving a line's start point carries its end point along
                moved = LineGeometry.model_validate({**target.model_dump(), field: value})
                delta = getattr(moved, field) - getattr(target, field)
                end = _LINE_ENDS[field]
                setattr(moved, end, getattr(target, end) + delta)
                obj.geometry = moved
            else:
                setattr(target, field, value)
        except PydanticValidationError as exc:
            raise to_validation_error(exc, f"value for '{name}'") from exc

        self._changed()
        return True

    # ── Selection & Lifecycle ─────────────────────────────────────────────

    def select(self, object_id: Optional[str]) -> bool:
        """Selects an object, or clears the selection with None."""
        self._ensure_open("select")
        if object_id is not None and self._index_of(object_id) is None:
            return False
        self._selected_id = object_id
        return True

    def load(self, objects: Iterable[CanvasObjectBase]) -> None:
        """
        Replaces the canvas contents with already-validated objects,
        keeping their order. Clears the selection.

        Raises:
            ValidationError: Two objects share an id
        """
        self._ensure_open("load")
        loaded = list(objects)
        seen = set()
        for obj in loaded:
            if obj.id in seen:
                raise ValidationError(
                    message=f"Duplicate object id '{obj.id}' in canvas snapshot",
                    field="id",
                )
            seen.add(obj.id)
        self._objects = loaded
        self._selected_id = None
        self._changed()
        logger.info("Loaded %d objects onto canvas", len(loaded))

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Registers a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Releases the canvas. Further mutations raise CanvasUnavailableError."""
        self._closed = True
        self._listeners.clear()
        self._selected_id = None

    # ── Internals ─────────────────────────────────────────────────────────

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise CanvasUnavailableError(context={"operation": operation})

    def _index_of(self, object_id: str) -> Optional[int]:
        for index, obj in enumerate(self._objects):
            if obj.id == object_id:
                return index
        return None

    def _new_id(self) -> str:
        new_id = self._id_factory()
        while self._index_of(new_id) is not None:
            new_id = self._id_factory()
        return new_id

    def _changed(self) -> None:
        self._revision += 1
        for listener in list(self._listeners):
            listener(self)

    @staticmethod
    def _resolve_property(obj: CanvasObjectBase, name: str) -> Tuple[Optional[BaseModel], str]:
        field = field_name_for(type(obj), name)
        if field is not None and field not in _IMMUTABLE_FIELDS:
            return obj, field
        for part in (obj.geometry, obj.style):
            field = field_name_for(type(part), name)
            if field is not None:
                return part, field
        return None, name
