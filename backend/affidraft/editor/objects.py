"""
AffiDraft Editor: Canvas Object Types
======================================

What:  Pydantic models for everything that can be drawn on a template page.
How:   A discriminated union on `kind`. Each kind fixes its geometry shape
       and its kind-specific fields; every kind shares `id`, `style` and an
       optional, fixed-shape `metadata` (PlaceholderInfo).
Who:   Built by CanvasController, validated from JSON by the serialization
       engine and by the template API request schemas.

Wire format (camelCase, one record per object):
    {
        "id": "3f0c...",
        "kind": "placeholder-text",
        "geometry": {"x": 120.0, "y": 88.5, "width": 200.0, "height": 40.0},
        "style": {"fill": "#0066cc", "strokeWidth": 1.0, "opacity": 1.0, ...},
        "metadata": {"isPlaceholder": true, "placeholderId": "name", "placeholderType": "text"},
        "text": "{{Full Name}}"
    }

    Objects without placeholder info serialize `metadata` as `{}`.

Geometry by kind:
    text, rectangle, image, placeholder-text  → BoxGeometry    (x, y, width, height)
    circle                                    → CircleGeometry (x, y, radius)
    line                                      → LineGeometry   (x, y, endX, endY)
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Type, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_serializer,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from affidraft.exceptions import ValidationError


class ObjectKind(str, Enum):
    """Variant tag of a canvas object."""

    TEXT = "text"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    LINE = "line"
    IMAGE = "image"
    PLACEHOLDER_TEXT = "placeholder-text"


class PlaceholderType(str, Enum):
    """Data type of a placeholder field."""

    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"


class CanvasModel(BaseModel):
    """Shared config: camelCase on the wire, snake_case in Python, validated assignment."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        allow_inf_nan=False,
    )


def field_name_for(model_cls: Type[BaseModel], key: str) -> Optional[str]:
    """Maps a snake_case name or its camelCase alias to the model's field name."""
    for name, info in model_cls.model_fields.items():
        if key == name or key == info.alias:
            return name
    return None


def normalize_keys(model_cls: Type[BaseModel], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Re-keys a partial mapping by field name, dropping keys the model does not know."""
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        name = field_name_for(model_cls, key)
        if name is not None:
            normalized[name] = value
    return normalized


# ══════════════════════════════════════════════════════════════════════════
# Geometry
# ══════════════════════════════════════════════════════════════════════════


class BoxGeometry(CanvasModel):
    """Top-left anchored box."""

    x: float = 0.0
    y: float = 0.0
    width: float = Field(default=100.0, ge=0)
    height: float = Field(default=100.0, ge=0)

    def translated(self, dx: float, dy: float) -> "BoxGeometry":
        return self.model_copy(update={"x": self.x + dx, "y": self.y + dy})


class CircleGeometry(CanvasModel):
    """Circle anchored at the top-left of its bounding box, like the editor surface."""

    x: float = 0.0
    y: float = 0.0
    radius: float = Field(default=40.0, ge=0)

    def translated(self, dx: float, dy: float) -> "CircleGeometry":
        return self.model_copy(update={"x": self.x + dx, "y": self.y + dy})


class LineGeometry(CanvasModel):
    """Segment from (x, y) to (end_x, end_y), both in page coordinates."""

    x: float = 0.0
    y: float = 0.0
    end_x: float = 150.0
    end_y: float = 0.0

    def translated(self, dx: float, dy: float) -> "LineGeometry":
        return self.model_copy(
            update={
                "x": self.x + dx,
                "y": self.y + dy,
                "end_x": self.end_x + dx,
                "end_y": self.end_y + dy,
            }
        )


Geometry = Union[BoxGeometry, CircleGeometry, LineGeometry]


# ══════════════════════════════════════════════════════════════════════════
# Style & Metadata
# ══════════════════════════════════════════════════════════════════════════


class Style(CanvasModel):
    """
    Paint attributes. Colors are CSS color strings (`#rrggbb`, `rgba(...)`).
    Font attributes only affect text kinds.
    """

    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = Field(default=1.0, ge=0)
    opacity: float = Field(default=1.0, ge=0, le=1)
    background_color: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[float] = Field(default=None, gt=0)
    font_weight: Optional[str] = None


class PlaceholderInfo(CanvasModel):
    """Marks an object as a reference to a PlaceholderDefinition."""

    is_placeholder: Literal[True] = True
    placeholder_id: str = Field(min_length=1)
    placeholder_type: PlaceholderType = PlaceholderType.TEXT


# ══════════════════════════════════════════════════════════════════════════
# Object Variants
# ══════════════════════════════════════════════════════════════════════════


class CanvasObjectBase(CanvasModel):
    """Fields shared by every kind."""

    id: str = Field(min_length=1)
    style: Style = Field(default_factory=Style)
    metadata: Optional[PlaceholderInfo] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _coerce_metadata(cls, v: Any) -> Any:
        # An empty bag, or a bag without the placeholder flag, carries no placeholder info
        if v is None:
            return None
        if isinstance(v, Mapping):
            if not v:
                return None
            if not (v.get("isPlaceholder") or v.get("is_placeholder")):
                return None
        return v

    @field_serializer("metadata")
    def _serialize_metadata(self, v: Optional[PlaceholderInfo], info) -> Dict[str, Any]:
        if v is None:
            return {}
        return v.model_dump(by_alias=info.by_alias, mode=info.mode)

    @property
    def is_placeholder(self) -> bool:
        return self.metadata is not None and self.metadata.is_placeholder


class TextObject(CanvasObjectBase):
    kind: Literal["text"] = "text"
    geometry: BoxGeometry = Field(default_factory=lambda: BoxGeometry(width=200.0, height=30.0))
    text: str = "New Text"


class RectangleObject(CanvasObjectBase):
    kind: Literal["rectangle"] = "rectangle"
    geometry: BoxGeometry = Field(default_factory=BoxGeometry)


class CircleObject(CanvasObjectBase):
    kind: Literal["circle"] = "circle"
    geometry: CircleGeometry = Field(default_factory=CircleGeometry)


class LineObject(CanvasObjectBase):
    kind: Literal["line"] = "line"
    geometry: LineGeometry = Field(default_factory=LineGeometry)


class ImageObject(CanvasObjectBase):
    kind: Literal["image"] = "image"
    geometry: BoxGeometry = Field(default_factory=BoxGeometry)
    src: str = ""


class PlaceholderTextObject(CanvasObjectBase):
    """Text rendered as a `{{Name}}` token; metadata is mandatory for this kind."""

    kind: Literal["placeholder-text"] = "placeholder-text"
    geometry: BoxGeometry = Field(default_factory=lambda: BoxGeometry(width=200.0, height=40.0))
    text: str = ""
    metadata: PlaceholderInfo


CanvasObject = Annotated[
    Union[
        TextObject,
        RectangleObject,
        CircleObject,
        LineObject,
        ImageObject,
        PlaceholderTextObject,
    ],
    Field(discriminator="kind"),
]

OBJECT_CLASSES: Dict[ObjectKind, Type[CanvasObjectBase]] = {
    ObjectKind.TEXT: TextObject,
    ObjectKind.RECTANGLE: RectangleObject,
    ObjectKind.CIRCLE: CircleObject,
    ObjectKind.LINE: LineObject,
    ObjectKind.IMAGE: ImageObject,
    ObjectKind.PLACEHOLDER_TEXT: PlaceholderTextObject,
}

canvas_object_list_adapter: TypeAdapter[List[CanvasObject]] = TypeAdapter(List[CanvasObject])


def object_class_for(kind: Union[ObjectKind, str]) -> Type[CanvasObjectBase]:
    """Looks up the model class for a kind tag. Raises ValueError on unknown kinds."""
    return OBJECT_CLASSES[ObjectKind(kind)]


def geometry_class_for(kind: Union[ObjectKind, str]) -> Type[CanvasModel]:
    return object_class_for(kind).model_fields["geometry"].annotation


def default_geometry_for(kind: Union[ObjectKind, str]) -> Geometry:
    return object_class_for(kind).model_fields["geometry"].default_factory()


def to_validation_error(exc: PydanticValidationError, subject: str) -> ValidationError:
    """
    Converts a pydantic error into the application's ValidationError,
    naming the first offending location (e.g. `2.geometry.width`).
    """
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return ValidationError(
        message=f"Invalid {subject}: {first.get('msg', 'validation failed')}",
        field=location or None,
        context={"error_count": exc.error_count()},
    )
