"""Read-only view over a parsed HTML page.

Checks only see :class:`Document` and :class:`Element`, never the underlying
BeautifulSoup tree, so no check can modify what the others are looking at.
"""

from __future__ import annotations

from typing import Any, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag


def _attr_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(str(part) for part in value)
    return str(value)


class Element:
    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def name(self) -> str:
        return self._tag.name or ""

    def attr(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = _attr_text(self._tag.get(name))
        return default if value is None else value

    @property
    def text(self) -> str:
        return self._tag.get_text(" ", strip=True)

    @property
    def markup(self) -> str:
        return str(self._tag)

    def find_all(self, *names: str) -> List["Element"]:
        return [Element(tag) for tag in self._tag.find_all(list(names) if names else True)]

    def __repr__(self) -> str:
        return f"Element(<{self.name}>)"


class Document:
    """Parsed page. Same HTML in, equivalent tree out."""

    def __init__(self, html: str) -> None:
        self._html = html or ""
        self._soup = BeautifulSoup(self._html, "html.parser")

    @classmethod
    def parse(cls, html: str) -> "Document":
        return cls(html)

    def select(self, selector: str) -> List[Element]:
        return [Element(tag) for tag in self._soup.select(selector)]

    def elements(self, *names: str) -> List[Element]:
        return [Element(tag) for tag in self._soup.find_all(list(names))]

    def count(self, *names: str) -> int:
        return len(self._soup.find_all(list(names)))

    def exists(self, selector: str) -> bool:
        return self._soup.select_one(selector) is not None

    def first(self, selector: str) -> Optional[Element]:
        tag = self._soup.select_one(selector)
        return Element(tag) if tag is not None else None

    def title_text(self) -> Optional[str]:
        title = self._soup.find("title")
        if title is None:
            return None
        return title.get_text().strip()

    def meta_content(self, *, name: Optional[str] = None, prop: Optional[str] = None) -> Optional[str]:
        """Content of the first ``<meta name=..>`` or ``<meta property=..>`` tag (case-insensitive)."""
        for tag in self._soup.find_all("meta"):
            if name is not None and (_attr_text(tag.get("name")) or "").lower() == name.lower():
                return _attr_text(tag.get("content"))
            if prop is not None and (_attr_text(tag.get("property")) or "").lower() == prop.lower():
                return _attr_text(tag.get("content"))
        return None
