"""Citation indexes keyed by id and by originating global page."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from casereview.engine.models import Citation
from casereview.engine.pages import PageIndex, as_page_number


@dataclass
class CitationIndex:
    by_id: dict[str, Citation] = field(default_factory=dict)
    ids_by_global_page: dict[int, list[str]] = field(default_factory=dict)

    def ids_for_page(self, global_page: int) -> list[str]:
        return self.ids_by_global_page.get(global_page, [])


def _snippet(raw: dict[str, Any]) -> str | None:
    snippet = raw.get("snippet")
    if isinstance(snippet, str) and snippet.strip():
        return snippet.strip()
    return None


def build_citation_index(citations: Any, page_index: PageIndex) -> CitationIndex:
    """Resolve citations to local page numbers and index them.

    Citations without an id are dropped: nothing can reference or display
    them. The page index uses the original global page number.
    """
    index = CitationIndex()
    if not isinstance(citations, list):
        return index

    for raw in citations:
        if not isinstance(raw, dict):
            continue
        raw_id = raw.get("citation_id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)) or raw_id == "":
            continue
        citation_id = str(raw_id)
        if citation_id in index.by_id:
            continue
        doc_id = str(raw.get("source_document_id") or "")
        global_page = as_page_number(raw.get("page_number"))

        index.by_id[citation_id] = Citation(
            citation_id=citation_id,
            source_document_id=doc_id,
            page_number=page_index.local_page(global_page),
            global_page_number=global_page,
            snippet=_snippet(raw),
            document_page_count=page_index.pages_per_document.get(doc_id),
        )
        if global_page is not None:
            index.ids_by_global_page.setdefault(global_page, []).append(citation_id)

    return index
