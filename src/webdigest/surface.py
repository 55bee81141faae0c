"""A UI surface that records what it was asked to render.

Used by the MCP server to return the status/result/error stream of a tool
call, and by tests to assert on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from webdigest.errors import MessageCategory
    from webdigest.models.content import DigestMode
    from webdigest.status import StatusView


@dataclass
class RecordingSurface:
    statuses: list[StatusView] = field(default_factory=list)
    result: dict[str, Any] | None = None
    errors: list[dict[str, str]] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    credential_requests: list[str] = field(default_factory=list)

    def render_status(self, view: StatusView) -> None:
        self.statuses.append(view)

    def render_result(self, text: str, mode: DigestMode, has_container: bool) -> None:
        self.result = {"text": text, "mode": str(mode), "has_container": has_container}

    def clear_result(self) -> None:
        self.result = None

    def render_error(self, category: MessageCategory, message: str) -> None:
        self.errors.append({"category": str(category), "message": message})

    def render_info(self, message: str) -> None:
        self.infos.append(message)

    def request_credential(self, reason: str) -> None:
        self.credential_requests.append(reason)

    @property
    def last_status(self) -> StatusView | None:
        return self.statuses[-1] if self.statuses else None

    def drain(self) -> dict[str, Any]:
        """Snapshot the events recorded since the last drain and reset them."""
        snapshot = {
            "statuses": [view.model_dump(mode="json") for view in self.statuses],
            "result": self.result,
            "errors": list(self.errors),
            "infos": list(self.infos),
            "credential_requests": list(self.credential_requests),
        }
        self.statuses.clear()
        self.errors.clear()
        self.infos.clear()
        self.credential_requests.clear()
        return snapshot
