"""Journal engine - the single entry point used by tools, resources and the server."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from .addressing import encode_uri, is_path_safe, parse_uri
from .config import JournalConfig
from .embeddings import EmbeddingResolver
from .errors import UsageError
from .modes import select_mode
from .models import DateRange, Scope, SearchResult
from .remote import RemoteClient
from .search import DEFAULT_LIMIT, DEFAULT_MIN_SCORE, SearchEngine
from .store import EntryStore

logger = logging.getLogger(__name__)

RESOURCE_LIMIT = 50
RESOURCE_MIME_TYPE = "text/markdown"


class JournalEngine:
    """Writes, searches and reads journal entries according to the
    configured storage mode."""

    def __init__(
        self,
        config: JournalConfig,
        resolver: Optional[EmbeddingResolver] = None,
        remote_client: Optional[RemoteClient] = None,
    ):
        self.config = config
        self.resolver = resolver or EmbeddingResolver(model_name=config.embedding_model)
        self.store = EntryStore(
            config.project_journal_path,
            config.user_journal_path,
            self.resolver,
        )
        self.search_engine = SearchEngine(self.store, self.resolver)

        if remote_client is None and config.remote_enabled:
            remote_client = RemoteClient(config.remote, timeout=config.remote_timeout)  # type: ignore[arg-type]
        self.mode = select_mode(config.remote, self.store, self.search_engine, remote_client)

        if config.remote_enabled:
            logger.info("Remote journal posting enabled: %s", config.remote.server_url)  # type: ignore[union-attr]
        logger.info("Journal storage mode: %s", self.mode.name)

    @property
    def remote_only(self) -> bool:
        return self.config.remote_only

    # ========== Writing ==========

    async def write_entry(self, text: str) -> list[str]:
        """Write a free-text entry. Returns local paths written (none in remote-only mode)."""
        return await self.mode.write_entry(text)

    async def write_thoughts(self, sections: Mapping[str, Optional[str]]) -> list[str]:
        """Write sectioned thoughts. Returns local paths written."""
        return await self.mode.write_sections(sections)

    async def generate_missing_embeddings(self) -> int:
        return await self.mode.backfill()

    # ========== Retrieval ==========

    async def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
        sections: Optional[Sequence[str]] = None,
        date_range: Optional[DateRange] = None,
        scope: Scope = Scope.BOTH,
    ) -> list[SearchResult]:
        return await self.mode.search(
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
        return await self.mode.list_recent(limit=limit, date_range=date_range, scope=scope)

    async def read_entry(self, identifier: str) -> Optional[str]:
        """Read one entry by local path, or by remote id in remote-only mode.

        Returns:
            The entry text, or None if it does not exist.

        Raises:
            UsageError: If a local path fails the safety check, or a
                remote-only identifier contains a path separator.
        """
        if not self.remote_only and not is_path_safe(identifier):
            raise UsageError("Access denied: Invalid file path")
        return await self.mode.read_one(identifier)

    # ========== Resources ==========

    async def list_resources(self, limit: int = RESOURCE_LIMIT) -> list[dict[str, Any]]:
        """Recent entries as journal:// resources."""
        resources = []
        for entry in await self.list_recent(limit=limit):
            date = datetime.fromtimestamp(entry.timestamp / 1000).strftime("%Y-%m-%d")
            resources.append({
                "uri": encode_uri(entry.identifier, entry.locality),
                "name": f"Journal Entry - {date} ({entry.locality.value})",
                "description": f"{', '.join(entry.sections)}: {entry.excerpt}",
                "mimeType": RESOURCE_MIME_TYPE,
            })
        return resources

    async def read_resource(self, uri: str) -> Optional[str]:
        """Read the entry behind a journal:// URI.

        Raises:
            UsageError: If the URI is malformed or its path is unsafe.
        """
        _, identifier = parse_uri(uri)
        if not self.remote_only and not is_path_safe(identifier):
            raise UsageError("Access denied: Path outside allowed directories")
        return await self.mode.read_one(identifier)

    async def aclose(self) -> None:
        await self.mode.aclose()
