"""HTML document tree backed by BeautifulSoup and soupsieve.

Implements ``DocumentProtocol`` for pages fetched as HTML. The user's text
selection, when there is one, is supplied alongside the markup.
"""

from __future__ import annotations

from typing import Any

import soupsieve
import structlog
from bs4 import BeautifulSoup, Tag

log = structlog.get_logger()


class HtmlDocument:
    def __init__(self, html: str, selection: str = "", *, parser: str = "html.parser") -> None:
        self._soup = BeautifulSoup(html, parser)
        self._selection = selection

    def selection_text(self) -> str:
        return self._selection

    def query(self, selector: str, root: Tag | None = None) -> Tag | None:
        scope = root if root is not None else self._soup
        try:
            return scope.select_one(selector)
        except soupsieve.SelectorSyntaxError:
            log.debug("selector_invalid", selector=selector)
            return None

    def query_all(self, selector: str, root: Tag | None = None) -> list[Tag]:
        scope = root if root is not None else self._soup
        try:
            return list(scope.select(selector))
        except soupsieve.SelectorSyntaxError:
            log.debug("selector_invalid", selector=selector)
            return []

    def text(self, element: Tag) -> str:
        return element.get_text()

    def matches(self, element: Tag, selector: str) -> bool:
        try:
            return soupsieve.match(selector, element)
        except soupsieve.SelectorSyntaxError:
            return False

    def closest(self, element: Tag, selector: str) -> Tag | None:
        try:
            return soupsieve.closest(selector, element)
        except soupsieve.SelectorSyntaxError:
            return None

    def parent(self, element: Tag) -> Tag | None:
        parent = element.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return parent

    def has_attribute(self, element: Any, name: str) -> bool:
        return isinstance(element, Tag) and element.has_attr(name)
