"""Protocol interfaces for swappable collaborators.

The pipeline references these protocols, not concrete implementations, so
that tests can run against in-memory storage, a fake document tree and a
recording UI surface.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from webdigest.errors import MessageCategory
    from webdigest.models.content import DigestMode
    from webdigest.status import StatusView


class StorageProtocol(Protocol):
    """Async key/value store for settings, secrets and serialised state."""

    async def get(self, key: str, default: Any = "") -> Any: ...

    async def set(self, key: str, value: Any) -> bool: ...

    async def delete(self, key: str) -> bool: ...


class DocumentProtocol(Protocol):
    """Read-only view over a document tree.

    Elements are opaque handles. Invalid selectors never raise: lookups
    return ``None`` / ``[]`` / ``False`` instead.
    """

    def selection_text(self) -> str: ...

    def query(self, selector: str, root: Any | None = None) -> Any | None: ...

    def query_all(self, selector: str, root: Any | None = None) -> list[Any]: ...

    def text(self, element: Any) -> str: ...

    def matches(self, element: Any, selector: str) -> bool: ...

    def closest(self, element: Any, selector: str) -> Any | None: ...

    def parent(self, element: Any) -> Any | None: ...

    def has_attribute(self, element: Any, name: str) -> bool: ...


class BackendProtocol(Protocol):
    """A text-summarization API endpoint."""

    async def create_response(self, api_key: str, body: dict[str, Any]) -> dict[str, Any]: ...


class UISurfaceProtocol(Protocol):
    """Whatever renders digest state to the user."""

    def render_status(self, view: StatusView) -> None: ...

    def render_result(self, text: str, mode: DigestMode, has_container: bool) -> None: ...

    def clear_result(self) -> None: ...

    def render_error(self, category: MessageCategory, message: str) -> None: ...

    def render_info(self, message: str) -> None: ...

    def request_credential(self, reason: str) -> None: ...
