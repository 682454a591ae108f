"""Where each journal operation runs: local disk, the remote server, or both.

One strategy is picked from the RemoteConfig when the engine is built, and
every operation goes through it:

================  ==========================  ==============================
Operation         HybridMode                  RemoteOnlyMode
================  ==========================  ==============================
write             local, then mirror remote   remote only, failure raised
                  (mirror failure logged)
search / list     local                       remote, failure raised
read one          local file                  remote fetch by id
================  ==========================  ==============================

LocalMode is HybridMode without the mirror.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from .config import RemoteConfig
from .embeddings import EmbeddingResolver
from .errors import DerivationError, JournalError, TransportError, UsageError
from .models import (
    SECTION_KEYS,
    DateRange,
    Scope,
    SearchResult,
    extract_searchable_text,
    local_now,
    render_sections,
    split_sections,
    timestamp_ms,
)
from .remote import RemoteClient, build_search_request
from .search import (
    DEFAULT_LIMIT,
    DEFAULT_MIN_SCORE,
    SearchEngine,
    remote_text,
    results_from_remote_listing,
    results_from_remote_search,
)
from .store import EntryStore

logger = logging.getLogger(__name__)


def build_entry_payload(
    team_id: str,
    timestamp: int,
    content: Optional[str] = None,
    sections: Optional[Mapping[str, Optional[str]]] = None,
    embedding: Optional[list[float]] = None,
) -> dict[str, Any]:
    """Body for POST /teams/{team}/entries.

    Exactly one of content or sections is sent. Only populated section keys
    are included.
    """
    payload: dict[str, Any] = {"team_id": team_id, "timestamp": timestamp}
    if content is not None:
        payload["content"] = content
    else:
        payload["sections"] = {k: sections[k] for k in SECTION_KEYS if sections and sections.get(k)}
    if embedding is not None:
        payload["embedding"] = list(embedding)
    return payload


class LocalMode:
    """Local disk only."""

    name = "local"

    def __init__(self, store: EntryStore, search_engine: SearchEngine):
        self.store = store
        self.search_engine = search_engine

    async def write_entry(self, text: str, now: Optional[datetime] = None) -> list[str]:
        path = await self.store.write_entry(text, now)
        return [str(path)]

    async def write_sections(
        self,
        sections: Mapping[str, Optional[str]],
        now: Optional[datetime] = None,
    ) -> list[str]:
        written = await self.store.write_sections(sections, now)
        return [str(p) for p in written.values()]

    async def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
        sections: Optional[Sequence[str]] = None,
        date_range: Optional[DateRange] = None,
        scope: Scope = Scope.BOTH,
    ) -> list[SearchResult]:
        return await self.search_engine.search(
            query,
            limit=limit,
            min_score=min_score,
            sections=sections,
            date_range=date_range,
            scope=scope,
        )

    async def list_recent(
        self,
        limit: int = DEFAULT_LIMIT,
        date_range: Optional[DateRange] = None,
        scope: Scope = Scope.BOTH,
    ) -> list[SearchResult]:
        return await self.search_engine.list_recent(limit=limit, date_range=date_range, scope=scope)

    async def read_one(self, identifier: str) -> Optional[str]:
        return await self.store.read_entry(identifier)

    async def backfill(self) -> int:
        return await self.store.generate_missing_embeddings()

    async def aclose(self) -> None:
        pass


class _RemoteWriter:
    """Builds and sends remote entry payloads."""

    def __init__(self, remote: RemoteConfig, client: RemoteClient, resolver: EmbeddingResolver):
        self.remote = remote
        self.client = client
        self.resolver = resolver

    async def _embedding_for(self, body: str) -> Optional[list[float]]:
        text, _ = extract_searchable_text(body)
        if not text.strip():
            return None
        try:
            return await self.resolver.embed(text)
        except DerivationError as e:
            logger.warning("Sending entry without embedding: %s", e)
            return None

    async def post(
        self,
        now: datetime,
        content: Optional[str] = None,
        sections: Optional[Mapping[str, Optional[str]]] = None,
    ) -> None:
        """Post one entry.

        Raises:
            TransportError: Prefixed with "Remote journal posting failed:".
        """
        body = content if content is not None else render_sections(sections or {})
        payload = build_entry_payload(
            self.remote.team_id,
            timestamp_ms(now),
            content=content,
            sections=sections,
            embedding=await self._embedding_for(body),
        )
        try:
            await self.client.post_entry(payload)
        except TransportError as e:
            raise TransportError(f"Remote journal posting failed: {e}") from e


class HybridMode(LocalMode):
    """Local disk is authoritative; writes are mirrored to the remote server
    on a best-effort basis."""

    name = "hybrid"

    def __init__(
        self,
        store: EntryStore,
        search_engine: SearchEngine,
        remote: RemoteConfig,
        client: RemoteClient,
    ):
        super().__init__(store, search_engine)
        self.client = client
        self._writer = _RemoteWriter(remote, client, store.resolver)

    async def write_entry(self, text: str, now: Optional[datetime] = None) -> list[str]:
        now = now or local_now()
        paths = await super().write_entry(text, now)
        await self._mirror(now, content=text)
        return paths

    async def write_sections(
        self,
        sections: Mapping[str, Optional[str]],
        now: Optional[datetime] = None,
    ) -> list[str]:
        now = now or local_now()
        paths = await super().write_sections(sections, now)
        await self._mirror(now, sections=sections)
        return paths

    async def _mirror(self, now: datetime, **entry: Any) -> None:
        try:
            await self._writer.post(now, **entry)
        except JournalError as e:
            logger.warning("%s", e)

    async def aclose(self) -> None:
        await self.client.aclose()


class RemoteOnlyMode:
    """The remote server is authoritative. Nothing touches local disk and
    there is no fallback: every remote failure is raised."""

    name = "remote-only"

    def __init__(self, remote: RemoteConfig, client: RemoteClient, resolver: EmbeddingResolver):
        self.client = client
        self._writer = _RemoteWriter(remote, client, resolver)

    async def write_entry(self, text: str, now: Optional[datetime] = None) -> list[str]:
        await self._writer.post(now or local_now(), content=text)
        return []

    async def write_sections(
        self,
        sections: Mapping[str, Optional[str]],
        now: Optional[datetime] = None,
    ) -> list[str]:
        if not split_sections(sections):
            raise UsageError("At least one thought category must be provided")
        await self._writer.post(now or local_now(), sections=sections)
        return []

    async def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
        sections: Optional[Sequence[str]] = None,
        date_range: Optional[DateRange] = None,
        scope: Scope = Scope.BOTH,
    ) -> list[SearchResult]:
        request = build_search_request(query, limit, min_score, list(sections or []), date_range)
        try:
            response = await self.client.search(request)
        except JournalError as e:
            raise TransportError(f"Remote search failed: {e}") from e
        return results_from_remote_search(response, query)[:max(limit, 0)]

    async def list_recent(
        self,
        limit: int = DEFAULT_LIMIT,
        date_range: Optional[DateRange] = None,
        scope: Scope = Scope.BOTH,
    ) -> list[SearchResult]:
        try:
            response = await self.client.list_entries(limit=limit)
        except JournalError as e:
            raise TransportError(f"Remote listing failed: {e}") from e
        return results_from_remote_listing(response)[:max(limit, 0)]

    async def read_one(self, identifier: str) -> Optional[str]:
        """Fetch an entry by remote id.

        Raises:
            UsageError: If identifier looks like a file path.
        """
        if "/" in identifier or "\\" in identifier:
            raise UsageError(
                "Cannot read local files in remote-only mode. Use search to find entry content."
            )
        record = await self.client.get_entry(identifier)
        if record is None:
            return None
        return remote_text(record)

    async def backfill(self) -> int:
        return 0

    async def aclose(self) -> None:
        await self.client.aclose()


def select_mode(
    remote: Optional[RemoteConfig],
    store: EntryStore,
    search_engine: SearchEngine,
    client: Optional[RemoteClient] = None,
):
    """Pick the strategy for this process from the remote configuration."""
    if remote is None or not remote.enabled:
        return LocalMode(store, search_engine)

    client = client or RemoteClient(remote)
    if remote.remote_only:
        return RemoteOnlyMode(remote, client, store.resolver)
    return HybridMode(store, search_engine, remote, client)
