from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from extraction.identity import ADDRESS_SEGMENTS, RECORD_LINK_ID
from extraction.lines import lineize


_HIDDEN_TAGS = frozenset(["script", "style", "noscript", "template", "head"])
_BLOCK_TAGS = frozenset([
    "address", "article", "aside", "blockquote", "dd", "details", "div", "dl", "dt",
    "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4",
    "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
    "summary", "table", "tbody", "tfoot", "thead", "tr", "ul",
])
_CELL_TAGS = frozenset(["td", "th"])
_WHITESPACE = re.compile(r"\s+")
_ROW_CLASS_MARKERS = ("listItem", "card")


@dataclass
class RecordLink:
    id: str
    name: str
    row_text: str = ""


@dataclass
class PageSnapshot:
    """One read of a rendered page.

    ``text`` is the page's visible text when the caller already has it (e.g. a
    browser's innerText); otherwise it is derived from ``html``.
    """

    url: str
    html: str = ""
    text: Optional[str] = None

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html or "", "html.parser")

    def visible_text(self) -> str:
        if self.text is not None:
            return self.text
        return rendered_text(self.soup)

    def lines(self) -> List[str]:
        return lineize(self.visible_text())

    def primary_field_text(self) -> Optional[str]:
        node = self.soup.select_one('lightning-formatted-text[slot="primaryField"]')
        if node is None:
            return None
        text = node.get_text().strip()
        return text or None

    def path_text(self) -> Optional[str]:
        node = self.soup.select_one('[class*="path" i]')
        if node is None:
            return None
        return rendered_text(node)

    def record_links(self, object_type: str) -> List[RecordLink]:
        """Links to detail pages of ``object_type``, de-duplicated by record id."""
        segment = ADDRESS_SEGMENTS[object_type]
        id_pattern = RECORD_LINK_ID[object_type]
        links: List[RecordLink] = []
        seen: set[str] = set()
        for anchor in self.soup.select(f'a[href*="/lightning/r/{segment}/"]'):
            m = id_pattern.search(anchor.get("href") or "")
            if not m:
                continue
            record_id = m.group(1)
            name = anchor.get_text().strip()
            if not name or name == segment or record_id in seen:
                continue
            seen.add(record_id)
            row = _closest_row(anchor)
            links.append(RecordLink(id=record_id, name=name, row_text=rendered_text(row) if row else ""))
        return links


def rendered_text(node: Tag) -> str:
    """Text of ``node`` laid out the way a browser renders it.

    Block elements and ``<br>`` start new lines, table cells are tab separated,
    and inline markup stays on the line of its surrounding text.
    """
    parts: List[str] = []
    _render(node, parts)
    return "".join(parts)


def _render(node: Tag, parts: List[str]) -> None:
    for child in node.children:
        if isinstance(child, Tag):
            name = child.name
            if name in _HIDDEN_TAGS:
                continue
            if name == "br":
                parts.append("\n")
                continue
            if name in _BLOCK_TAGS:
                parts.append("\n")
                _render(child, parts)
                parts.append("\n")
            elif name in _CELL_TAGS:
                _render(child, parts)
                parts.append("\t")
            else:
                _render(child, parts)
        elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            parts.append(_WHITESPACE.sub(" ", str(child)))


def _closest_row(node: Tag) -> Optional[Tag]:
    for parent in node.parents:
        if not isinstance(parent, Tag):
            continue
        if parent.name == "tr":
            return parent
        classes = " ".join(parent.get("class") or [])
        if any(marker in classes for marker in _ROW_CLASS_MARKERS):
            return parent
    return None


@dataclass
class InMemoryPage:
    """A page whose rendered content can change without the address changing."""

    url: str
    html: str = ""
    text: Optional[str] = None

    def navigate(self, url: str, html: str = "", text: Optional[str] = None) -> None:
        self.url = url
        self.render(html=html, text=text)

    def render(self, html: str = "", text: Optional[str] = None) -> None:
        self.html = html
        self.text = text

    def snapshot(self) -> PageSnapshot:
        return PageSnapshot(url=self.url, html=self.html, text=self.text)
