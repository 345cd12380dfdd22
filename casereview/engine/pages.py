"""Per-document page numbering reconstructed from the packet's global page list."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def as_page_number(value: Any) -> int | None:
    """Coerce a JSON page number to int, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


@dataclass
class PageIndex:
    """Global-to-local page mapping for one run's packet."""

    global_to_local: dict[int, int] = field(default_factory=dict)
    pages_per_document: dict[str, int] = field(default_factory=dict)

    def local_page(self, global_page: int | None) -> int | None:
        """Local number for a global page; unmapped pages keep their global number."""
        if global_page is None:
            return None
        return self.global_to_local.get(global_page, global_page)


def build_page_index(pages: Any) -> PageIndex:
    """Number each document's pages 1..n in ascending global page order.

    Args:
        pages: The graph's ``pages`` array of ``{source_document_id, page_number}``.

    Returns:
        PageIndex with the global-to-local map and per-document page counts.
    """
    index = PageIndex()
    if not isinstance(pages, list):
        return index

    entries: list[tuple[int, str]] = []
    for page in pages:
        if not isinstance(page, dict):
            continue
        doc_id = page.get("source_document_id")
        number = as_page_number(page.get("page_number"))
        if not doc_id or number is None:
            continue
        entries.append((number, str(doc_id)))

    entries.sort(key=lambda entry: entry[0])
    for number, doc_id in entries:
        counter = index.pages_per_document.get(doc_id, 0) + 1
        index.pages_per_document[doc_id] = counter
        index.global_to_local[number] = counter
    return index
