"""Semantic search and listing over local search vectors.

Search is brute force: every vector in the selected localities is loaded,
filtered and scored against the query. Helpers at the bottom turn remote
server records into the same SearchResult shape.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from .embeddings import EmbeddingResolver, cosine_similarity
from .models import (
    SECTION_KEYS,
    DateRange,
    Locality,
    Scope,
    SearchResult,
    SearchVector,
    render_sections,
    section_titles,
)
from .store import EntryStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_MIN_SCORE = 0.1
EXCERPT_LENGTH = 200
LISTING_EXCERPT_LENGTH = 150
EXCERPT_STEP = 20


def generate_excerpt(text: str, query: str, max_length: int = EXCERPT_LENGTH) -> str:
    """Pick the window of text that mentions the most query terms.

    Windows of max_length start every EXCERPT_STEP characters. Only a
    strictly better window replaces the current one, so ties go to the
    earliest. Ellipses mark a window that does not reach the text's ends.
    """
    if not query or not query.strip():
        return text[:max_length] + ("..." if len(text) > max_length else "")

    terms = set(query.lower().split())
    text_lower = text.lower()

    best_position = 0
    best_score = 0
    for i in range(0, len(text) - max_length + 1, EXCERPT_STEP):
        window = text_lower[i:i + max_length]
        score = sum(1 for term in terms if term in window)
        if score > best_score:
            best_score = score
            best_position = i

    excerpt = text[best_position:best_position + max_length]
    if best_position > 0:
        excerpt = "..." + excerpt
    if best_position + max_length < len(text):
        excerpt += "..."
    return excerpt


def matches_sections(vector_sections: Sequence[str], wanted: Optional[Sequence[str]]) -> bool:
    """True if no filter is given or any wanted name is a case-insensitive
    substring of one of the vector's section titles."""
    if not wanted:
        return True
    labels = [s.lower() for s in vector_sections]
    return any(w.lower() in label for w in wanted for label in labels)


class SearchEngine:
    """Ranks local entries against a query using their search vectors."""

    def __init__(self, store: EntryStore, resolver: EmbeddingResolver):
        self.store = store
        self.resolver = resolver

    def _load(self, scope: Scope) -> list[tuple[SearchVector, Locality]]:
        loaded: list[tuple[SearchVector, Locality]] = []
        for locality in scope.localities:
            loaded.extend((vector, locality) for vector in self.store.load_vectors(locality))
        return loaded

    async def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
        sections: Optional[Sequence[str]] = None,
        date_range: Optional[DateRange] = None,
        scope: Scope = Scope.BOTH,
    ) -> list[SearchResult]:
        """Entries most similar to query, best first.

        Raises:
            DerivationError: If the query cannot be embedded.
        """
        query_embedding = await self.resolver.embed(query)

        scored: list[tuple[float, SearchVector, Locality]] = []
        for vector, locality in self._load(scope):
            if not matches_sections(vector.sections, sections):
                continue
            if date_range is not None and not date_range.contains(vector.timestamp):
                continue
            if len(vector.embedding) != len(query_embedding):
                logger.warning(
                    "Skipping %s: vector has %d dimensions, query has %d",
                    vector.path, len(vector.embedding), len(query_embedding),
                )
                continue
            score = cosine_similarity(query_embedding, vector.embedding)
            if score >= min_score:
                scored.append((score, vector, locality))

        # sort() is stable, so equal scores keep load order
        scored.sort(key=lambda item: item[0], reverse=True)

        return [
            SearchResult(
                identifier=vector.path,
                score=score,
                text=vector.text,
                sections=list(vector.sections),
                timestamp=vector.timestamp,
                excerpt=generate_excerpt(vector.text, query),
                locality=locality,
            )
            for score, vector, locality in scored[:max(limit, 0)]
        ]

    async def list_recent(
        self,
        limit: int = DEFAULT_LIMIT,
        date_range: Optional[DateRange] = None,
        scope: Scope = Scope.BOTH,
    ) -> list[SearchResult]:
        """Most recent entries first. Every result scores 1.0."""
        loaded = self._load(scope)
        if date_range is not None:
            loaded = [(v, loc) for v, loc in loaded if date_range.contains(v.timestamp)]

        loaded.sort(key=lambda item: item[0].timestamp, reverse=True)

        return [
            SearchResult(
                identifier=vector.path,
                score=1.0,
                text=vector.text,
                sections=list(vector.sections),
                timestamp=vector.timestamp,
                excerpt=generate_excerpt(vector.text, "", LISTING_EXCERPT_LENGTH),
                locality=locality,
            )
            for vector, locality in loaded[:max(limit, 0)]
        ]


# ========== Remote records ==========

def remote_text(record: dict[str, Any]) -> str:
    """Plain text of a remote entry: its content, or its rendered sections."""
    content = record.get("content")
    if content:
        return str(content)
    sections = record.get("sections")
    if isinstance(sections, dict):
        return render_sections({k: sections.get(k) for k in SECTION_KEYS})
    return ""


def remote_section_titles(record: dict[str, Any]) -> list[str]:
    sections = record.get("sections")
    if not isinstance(sections, dict):
        return []
    return section_titles({k: sections.get(k) for k in SECTION_KEYS})


def results_from_remote_search(response: dict[str, Any], query: str) -> list[SearchResult]:
    """Convert a remote search response. Remote entries have no locality;
    they are reported as project entries."""
    records = response.get("results")
    if not isinstance(records, list):
        logger.error("Invalid remote search response structure: %r", response)
        return []

    results = []
    for record in records:
        text = remote_text(record)
        results.append(SearchResult(
            identifier=str(record.get("id", "")),
            score=float(record.get("similarity_score", 0.0)),
            text=text,
            sections=list(record.get("matched_sections") or []),
            timestamp=int(record.get("timestamp", 0)),
            excerpt=generate_excerpt(text, query),
            locality=Locality.PROJECT,
        ))
    return results


def results_from_remote_listing(response: dict[str, Any]) -> list[SearchResult]:
    """Convert a remote listing response."""
    records = response.get("entries")
    if not isinstance(records, list):
        logger.error("Invalid remote entries response structure: %r", response)
        return []

    results = []
    for record in records:
        text = remote_text(record)
        results.append(SearchResult(
            identifier=str(record.get("id", "")),
            score=1.0,
            text=text,
            sections=remote_section_titles(record),
            timestamp=int(record.get("timestamp", 0)),
            excerpt=generate_excerpt(text, "", LISTING_EXCERPT_LENGTH),
            locality=Locality.PROJECT,
        ))
    return results
