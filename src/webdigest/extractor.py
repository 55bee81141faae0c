"""Article and selection extraction.

Pure reads over a ``DocumentProtocol`` tree; nothing here mutates the page.
A long enough selection wins outright. Otherwise the first configured
container selector that matches is mined for text-bearing leaf elements.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from webdigest.defaults import TEXT_SELECTORS, TITLE_SELECTORS, UI_ATTR
from webdigest.models.content import ExtractedContent, SourceKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from webdigest.models.policy import ExclusionRules
    from webdigest.protocols import DocumentProtocol

log = structlog.get_logger()

MIN_TITLE_LENGTH = 10
MAX_TITLE_LENGTH = 300


def extract(
    document: DocumentProtocol,
    selectors: Sequence[str],
    excludes: ExclusionRules,
    *,
    min_selection_length: int = 100,
    min_element_length: int = 40,
) -> ExtractedContent | None:
    """Return the text to digest, or None when the page offers nothing."""
    selected = document.selection_text().strip()
    if len(selected) > min_selection_length:
        log.debug("extract_selection", length=len(selected))
        return ExtractedContent(text=selected, source_kind=SourceKind.SELECTION)
    if selected:
        log.debug("extract_selection_too_short", length=len(selected), minimum=min_selection_length)

    container = find_container(document, selectors)
    if container is None:
        log.debug("extract_no_container")
        return None

    elements = collect_text_elements(document, container, excludes, min_element_length)
    if not elements:
        log.debug("extract_no_text_elements")
        return None

    text = "\n\n".join(document.text(el).strip() for el in elements)
    log.debug("extract_article", elements=len(elements), length=len(text))
    return ExtractedContent(
        text=text,
        source_kind=SourceKind.ARTICLE,
        elements=elements,
        container=container,
        title=find_title(document, container),
    )


def find_container(document: DocumentProtocol, selectors: Sequence[str]) -> Any | None:
    for selector in selectors:
        container = document.query(selector)
        if container is not None:
            log.debug("extract_container_found", selector=selector)
            return container
    return None


def is_excluded(document: DocumentProtocol, element: Any, excludes: ExclusionRules) -> bool:
    if any(document.matches(element, sel) for sel in excludes.self_selectors):
        return True
    return any(document.closest(element, sel) is not None for sel in excludes.ancestors)


def collect_text_elements(
    document: DocumentProtocol,
    container: Any,
    excludes: ExclusionRules,
    min_length: int,
) -> list[Any]:
    """Text-bearing leaves of ``container`` in document order, after filtering."""
    candidates = document.query_all(TEXT_SELECTORS, container)
    # Element handles may compare by value, so track candidates by identity.
    candidate_ids = {id(el) for el in candidates}

    kept: list[Any] = []
    for element in candidates:
        if len(document.text(element).strip()) < min_length:
            continue
        if document.closest(element, f"[{UI_ATTR}]") is not None:
            continue
        if is_excluded(document, element, excludes):
            continue
        parent = document.parent(element)
        enclosing = document.closest(parent, TEXT_SELECTORS) if parent is not None else None
        if enclosing is not None and id(enclosing) in candidate_ids:
            continue
        kept.append(element)
    return kept


def find_title(document: DocumentProtocol, container: Any) -> Any | None:
    """Best-effort headline lookup; a missing title never blocks extraction."""
    for selector in TITLE_SELECTORS:
        element = document.query(selector, container)
        if element is None:
            continue
        length = len(document.text(element).strip())
        if MIN_TITLE_LENGTH < length < MAX_TITLE_LENGTH:
            return element
    return None
