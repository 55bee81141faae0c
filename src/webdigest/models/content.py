from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class DigestMode(StrEnum):
    LARGE = "large"  # ~50% of the original length
    SMALL = "small"  # ~20% of the original length


class SourceKind(StrEnum):
    SELECTION = "selection"
    ARTICLE = "article"


@dataclass(frozen=True)
class ExtractedContent:
    """Text picked from the current document for one digest request.

    Element references are opaque handles owned by the document tree that
    produced them. They are all ``None`` for selections.
    """

    text: str
    source_kind: SourceKind
    elements: list[Any] | None = None
    container: Any | None = None
    title: Any | None = None


@dataclass
class ArticleState:
    """The digest currently displayed for the page. All-None when idle."""

    original: str | None = None
    digested: str | None = None
    mode: DigestMode | None = None
    elements: list[Any] | None = field(default=None)
    source: SourceKind | None = None
    container: Any | None = None
    title: Any | None = None

    @property
    def is_empty(self) -> bool:
        return self.digested is None
