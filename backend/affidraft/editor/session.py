"""
AffiDraft Editor: Editor Session & Save Client
===============================================

What:  One editing session (a canvas plus its placeholder registry) and the
       HTTP client it saves through.
How:   EditorSession owns exactly one CanvasController and one
       PlaceholderRegistry. save() builds the TemplateDocument synchronously,
       then awaits TemplateClient.save(), the only async boundary in the editor.
Who:   Scripts and services that author templates against a running
       AffiDraft API (or any endpoint speaking the same contract).

Save flow:
    ┌──────────────┐   document()   ┌──────────────────┐   POST / PUT    ┌──────────────┐
    │ EditorSession│───────────────▶│ TemplateDocument │───────────────▶│ Template API │
    │  (canvas +   │  (sync, before │ {name, elements, │   attempt once  │ /api/affida- │
    │   registry)  │   any await)   │  placeholders}   │   no retry      │ vit-templates│
    └──────────────┘                └──────────────────┘                 └──────────────┘

    template_id unknown → POST /api/affidavit-templates
    template_id known   → PUT  /api/affidavit-templates/{template_id}
    The id in the response becomes the session's template_id.

One save at a time: calling save() while a save is in flight raises
SaveInProgressError rather than issuing a second, racing request.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import httpx

from affidraft.config import settings
from affidraft.editor.canvas import CanvasController
from affidraft.editor.export import export_pdf, export_png
from affidraft.editor.objects import CanvasObjectBase, ObjectKind, PlaceholderType
from affidraft.editor.placeholders import PlaceholderDefinition, PlaceholderRegistry
from affidraft.editor.serialization import (
    MissingPlaceholderPolicy,
    TemplateDocument,
    build_document,
    deserialize,
    deserialize_placeholders,
)
from affidraft.exceptions import SaveInProgressError, TemplateSaveError, ValidationError

logger = logging.getLogger(__name__)

TEMPLATES_PATH = "/api/affidavit-templates"


def _error_message(response: httpx.Response) -> str:
    """Pulls the server's message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    text = response.text.strip()
    return text or f"Template service responded with HTTP {response.status_code}"


class TemplateClient:
    """
    Async client for the affidavit template resource.

    Every request is attempted once. Failures of any kind surface as
    TemplateSaveError so callers have a single thing to catch.

    Args:
        base_url:   Service root (default: settings.template_api_url)
        timeout:    Seconds before a request is abandoned (default: settings.save_timeout_seconds)
        transport:  Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.template_api_url,
            timeout=timeout or settings.save_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "TemplateClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def save(
        self,
        document: TemplateDocument,
        template_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Creates (POST) or updates (PUT) a template. Returns the persisted record."""
        if template_id:
            method, url = "PUT", f"{TEMPLATES_PATH}/{template_id}"
        else:
            method, url = "POST", TEMPLATES_PATH
        return await self._request(method, url, json=document.to_payload())

    async def fetch(self, template_id: str) -> Dict[str, Any]:
        """Loads one persisted template record."""
        return await self._request("GET", f"{TEMPLATES_PATH}/{template_id}")

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TemplateSaveError(
                message="The template service did not respond in time",
                context={"method": method, "url": url},
            ) from exc
        except httpx.HTTPError as exc:
            raise TemplateSaveError(
                message=f"Could not reach the template service: {exc}",
                context={"method": method, "url": url},
            ) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s failed with %d: %s", method, url, response.status_code, message)
            raise TemplateSaveError(message=message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise TemplateSaveError(
                message="The template service returned a malformed response",
                status_code=response.status_code,
            ) from exc


class EditorSession:
    """
    A single template being edited.

    Attributes:
        name:         Template name sent on save
        template_id:  Id of the persisted template, None until first saved
        canvas:       The session's CanvasController
        registry:     The session's PlaceholderRegistry
    """

    def __init__(
        self,
        name: str,
        template_id: Optional[str] = None,
        canvas: Optional[CanvasController] = None,
        registry: Optional[PlaceholderRegistry] = None,
        policy: Optional[Union[MissingPlaceholderPolicy, str]] = None,
    ):
        self.name = name
        self.template_id = template_id
        self.canvas = canvas or CanvasController()
        self.registry = registry or PlaceholderRegistry()
        self.policy = policy
        self.saved_revision: Optional[int] = None
        self._saving = False

    @classmethod
    def from_template(cls, record: Mapping[str, Any], **kwargs) -> "EditorSession":
        """
        Rebuilds a session from a persisted template record: the stored
        placeholders are registered first, then the elements are loaded
        in their saved order.
        """
        template_id = record.get("id")
        session = cls(
            name=record.get("name", ""),
            template_id=str(template_id) if template_id else None,
            **kwargs,
        )
        session.registry.register(deserialize_placeholders(record.get("placeholders") or []))
        session.canvas.load(deserialize(record.get("elements") or []))
        session.saved_revision = session.canvas.revision
        return session

    # ── Editing ───────────────────────────────────────────────────────────

    def add_shape(
        self,
        kind: Union[ObjectKind, str],
        geometry: Optional[Mapping[str, Any]] = None,
        style: Optional[Mapping[str, Any]] = None,
        **fields: Any,
    ) -> CanvasObjectBase:
        return self.canvas.add_object(kind, geometry=geometry, style=style, **fields)

    def add_placeholder(self, placeholder_id: str) -> CanvasObjectBase:
        """Instantiates a known placeholder on the canvas."""
        definition = self.registry.resolve(placeholder_id)
        if definition is None:
            raise ValidationError(
                message=f"Unknown placeholder '{placeholder_id}'",
                field="placeholder_id",
            )
        return self.registry.instantiate(definition, self.canvas)

    def create_custom_placeholder(
        self,
        name: str,
        type: Union[PlaceholderType, str] = PlaceholderType.TEXT,
    ) -> Tuple[PlaceholderDefinition, CanvasObjectBase]:
        """Creates a custom definition and places it on the canvas right away."""
        definition = self.registry.create_custom(name, type)
        return definition, self.registry.instantiate(definition, self.canvas)

    # ── Persistence ───────────────────────────────────────────────────────

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def is_dirty(self) -> bool:
        """True when the canvas changed since the last successful save or load."""
        return self.saved_revision != self.canvas.revision

    def document(self) -> TemplateDocument:
        return build_document(self.name, self.canvas.get_objects(), self.registry, self.policy)

    async def save(self, client: TemplateClient) -> Dict[str, Any]:
        """
        Persists the current canvas through the client.

        Raises:
            SaveInProgressError: A previous save has not completed
            TemplateSaveError:   The endpoint rejected the request or was unreachable
            UnresolvedPlaceholderError: Strict policy and a dangling placeholder
        """
        if self._saving:
            raise SaveInProgressError(context={"template_id": self.template_id})

        document = self.document()
        revision = self.canvas.revision
        self._saving = True
        try:
            record = await client.save(document, self.template_id)
        finally:
            self._saving = False

        saved_id = record.get("id") if isinstance(record, dict) else None
        if saved_id:
            self.template_id = str(saved_id)
        self.saved_revision = revision
        logger.info(
            "Saved template '%s' as %s (%d elements, %d placeholders)",
            self.name, self.template_id, len(document.elements), len(document.placeholders),
        )
        return record

    # ── Export & Lifecycle ────────────────────────────────────────────────

    def export_png(self) -> bytes:
        return export_png(self.canvas.get_objects())

    def export_pdf(self) -> bytes:
        return export_pdf(self.canvas.get_objects())

    def close(self) -> None:
        self.canvas.close()
