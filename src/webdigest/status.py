"""Digest status state machine.

``ready → processing → digested → ready`` (restore), plus
``processing → ready`` on failure. Every transition is pushed to the UI
surface as a ``StatusView`` describing which affordances are enabled.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from webdigest.models.content import DigestMode

if TYPE_CHECKING:
    from webdigest.protocols import UISurfaceProtocol

log = structlog.get_logger()


class OverlayStatus(StrEnum):
    READY = "ready"
    PROCESSING = "processing"
    DIGESTED = "digested"


class InvalidTransition(RuntimeError):
    pass


class StatusView(BaseModel):
    status: OverlayStatus
    mode: DigestMode | None = None
    from_cache: bool = False
    label: str
    digest_enabled: bool
    restore_enabled: bool
    active_mode: DigestMode | None = None


def _size_label(mode: DigestMode | None) -> str:
    return "Large" if mode == DigestMode.LARGE else "Small"


class StatusMachine:
    def __init__(self, surface: UISurfaceProtocol) -> None:
        self._surface = surface
        self.status = OverlayStatus.READY
        self.mode: DigestMode | None = None
        self.from_cache = False

    @property
    def busy(self) -> bool:
        return self.status == OverlayStatus.PROCESSING

    def view(self) -> StatusView:
        if self.status == OverlayStatus.PROCESSING:
            verb = "Applying" if self.from_cache else "Processing"
            return StatusView(
                status=self.status,
                mode=self.mode,
                from_cache=self.from_cache,
                label=f"{verb} {_size_label(self.mode)}...",
                digest_enabled=False,
                restore_enabled=False,
            )
        if self.status == OverlayStatus.DIGESTED:
            return StatusView(
                status=self.status,
                mode=self.mode,
                label=f"{_size_label(self.mode)} summary applied",
                digest_enabled=True,
                restore_enabled=True,
                active_mode=self.mode,
            )
        return StatusView(
            status=self.status,
            label="Ready",
            digest_enabled=True,
            restore_enabled=False,
        )

    def start(self, mode: DigestMode, *, from_cache: bool = False) -> None:
        if self.busy:
            raise InvalidTransition("a digest is already processing")
        self._enter(OverlayStatus.PROCESSING, mode, from_cache)

    def succeed(self, mode: DigestMode) -> None:
        if not self.busy:
            raise InvalidTransition(f"cannot finish a digest from {self.status}")
        self._enter(OverlayStatus.DIGESTED, mode)

    def fail(self) -> None:
        if not self.busy:
            raise InvalidTransition(f"cannot fail a digest from {self.status}")
        self._enter(OverlayStatus.READY, None)

    def restore(self) -> bool:
        """Return to ready. Only meaningful from ``digested``."""
        if self.status != OverlayStatus.DIGESTED:
            log.debug("restore_ignored", status=str(self.status))
            return False
        self._enter(OverlayStatus.READY, None)
        return True

    def _enter(
        self, status: OverlayStatus, mode: DigestMode | None, from_cache: bool = False
    ) -> None:
        log.debug("status_transition", old=str(self.status), new=str(status))
        self.status = status
        self.mode = mode
        self.from_cache = from_cache
        self._surface.render_status(self.view())
