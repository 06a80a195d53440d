"""Scraper for the public model library."""
from __future__ import annotations

import logging
import re
from typing import List, Optional

import requests
from bs4 import BeautifulSoup, NavigableString, Tag

from constants import CATALOG
from errors import FetchError
from model_types import CatalogEntry

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")


def clean_text(value: str) -> str:
    return _WS_RE.sub(" ", value or "").strip()


def _own_text(node: Optional[Tag]) -> str:
    # Only the text nodes directly under ``node``; nested spans carry labels.
    if node is None:
        return ""
    return clean_text("".join(str(child) for child in node.children if isinstance(child, NavigableString)))


def _first_span(node: Optional[Tag]) -> Optional[Tag]:
    if node is None:
        return None
    return node.find("span")


def _last_span(node: Optional[Tag]) -> Optional[Tag]:
    if node is None:
        return None
    spans = node.find_all("span")
    return spans[-1] if spans else None


def parse_library(html: str) -> List[CatalogEntry]:
    soup = BeautifulSoup(html, "html.parser")
    entries: List[CatalogEntry] = []
    for item in soup.select("#repo > ul > li"):
        root = item.select_one("a > div")
        if root is None:
            continue
        name_node = root.select_one("h2 > div > span") or root.select_one("h2")
        name = clean_text(name_node.get_text()) if name_node else ""
        if not name:
            continue
        desc_node = root.find("p")
        info = item.select("p > span")
        pulls = _own_text(_first_span(info[0])) if info else ""
        tag_count = _own_text(_first_span(info[1])) if len(info) > 1 else ""
        updated = _own_text(_last_span(info[-1])) if info else ""
        labels = tuple(
            text for text in (clean_text(span.get_text()) for span in root.select("div > span")) if text and text != name
        )
        entries.append(
            CatalogEntry(
                name=name,
                desc=clean_text(desc_node.get_text()) if desc_node else "",
                pulls=pulls,
                tag_count=tag_count,
                updated=updated,
                labels=labels,
            )
        )
    return entries


def parse_tags(html: str, model_name: str) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    prefix = f"/library/{model_name}:"
    tags: List[str] = []
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if not href.startswith(prefix):
            continue
        tag = href[len(prefix):]
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class Catalog:
    def __init__(
        self,
        library_url: str = CATALOG.LIBRARY_URL,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.library_url = library_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", CATALOG.USER_AGENT)

    def _fetch(self, url: str) -> str:
        try:
            resp = self.session.get(url, timeout=CATALOG.TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("catalog request %s failed: %s", url, exc)
            raise FetchError(f"could not reach catalog: {exc}") from exc
        return resp.text

    def installable_models(self) -> List[CatalogEntry]:
        entries = parse_library(self._fetch(self.library_url))
        logger.info("catalog lists %d installable model(s)", len(entries))
        return entries

    def tags(self, model_name: str) -> List[str]:
        """Return the tags published for ``model_name``; empty means none exist."""
        tags = parse_tags(self._fetch(f"{self.library_url}/{model_name}/tags"), model_name)
        logger.info("catalog lists %d tag(s) for %s", len(tags), model_name)
        return tags
