"""
BeautifulSoup wrapper over a rendered profile page.

Every reader returns a default on a miss; nothing here raises for a missing
field. Readers are meant to be layered: meta tags first, then CSS selectors,
then a regex over the visible body text.
"""

from __future__ import annotations

import copy
import re
from functools import cached_property

from bs4 import BeautifulSoup, Tag


def clean_text(value: str | None) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


class PageDocument:
    def __init__(self, html: str, *, url: str = "") -> None:
        self.html = html or ""
        self.url = url
        self.soup = BeautifulSoup(self.html, "html.parser")

    @property
    def is_blank(self) -> bool:
        """True when the page has no markup or no visible text at all."""

        return not self.html.strip() or (not self.body_text and not self.soup.find("meta"))

    def meta(self, key: str) -> str:
        """
        Content of ``<meta property=key>`` or ``<meta name=key>``.
        """

        node = self.soup.find("meta", attrs={"property": key}) or self.soup.find(
            "meta", attrs={"name": key}
        )
        if not isinstance(node, Tag):
            return ""
        return clean_text(str(node.get("content") or ""))

    def first(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def exists(self, selector: str) -> bool:
        return self.first(selector) is not None

    def select_all(self, selector: str) -> list[Tag]:
        return list(self.soup.select(selector))

    def text(self, selector: str) -> str:
        node = self.first(selector)
        if node is None:
            return ""
        return clean_text(node.get_text(" ", strip=True))

    def attr(self, selector: str, name: str) -> str:
        node = self.first(selector)
        if node is None:
            return ""
        value = node.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return clean_text(str(value or ""))

    @cached_property
    def body_text(self) -> str:
        body = copy.copy(self.soup.body or self.soup)
        for node in body.find_all(["script", "style", "noscript"]):
            node.decompose()
        return clean_text(body.get_text(" ", strip=True))

    def search(self, pattern: re.Pattern[str], *, text: str | None = None, group: int = 1) -> str:
        """
        First regex match over ``text`` (the body text by default), or "".
        """

        haystack = self.body_text if text is None else text
        match = pattern.search(haystack)
        if match is None:
            return ""
        return clean_text(match.group(group))
