"""Entry store - content documents and their search vectors on local disk.

Layout under each locality root::

    <root>/YYYY-MM-DD/HH-MM-SS-uuuuuu.md          content document
    <root>/YYYY-MM-DD/HH-MM-SS-uuuuuu.embedding   search vector (JSON)

A content document is always fully written before its vector is derived.
Vectors are optional: a failed derivation is logged and left for
generate_missing_embeddings() to fill in later.
"""

from __future__ import annotations

import json
import logging
import random
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

import portalocker

from .embeddings import EmbeddingResolver
from .errors import DerivationError, StorageError, UsageError
from .locking import create_exclusive, file_lock, write_json_atomic
from .models import (
    DAY_DIR_PATTERN,
    ENTRY_SUFFIX,
    FREE_TEXT_LOCALITY,
    VECTOR_SUFFIX,
    Locality,
    SearchVector,
    extract_searchable_text,
    format_date_key,
    format_entry_document,
    format_time_key,
    local_now,
    parse_document_timestamp,
    render_sections,
    split_sections,
    timestamp_from_path,
    timestamp_ms,
)

logger = logging.getLogger(__name__)

# Name collisions need the same millisecond and the same random draw
MAX_CREATE_ATTEMPTS = 16


def vector_path(entry_path: Path) -> Path:
    """Sibling .embedding path for a content document."""
    return entry_path.with_suffix(VECTOR_SUFFIX)


class EntryStore:
    """Local persistence for journal entries in two locality roots."""

    def __init__(
        self,
        project_path: Path,
        user_path: Path,
        resolver: EmbeddingResolver,
        rng: Optional[random.Random] = None,
    ):
        self.roots = {
            Locality.PROJECT: Path(project_path),
            Locality.USER: Path(user_path),
        }
        self.resolver = resolver
        self._rng = rng or random.Random()

    def root(self, locality: Locality) -> Path:
        return self.roots[locality]

    # ========== Writing ==========

    async def write_entry(self, text: str, now: Optional[datetime] = None) -> Path:
        """Write a free-text entry to the project journal.

        Returns:
            Path of the content document.

        Raises:
            StorageError: If the document cannot be written.
        """
        now = now or local_now()
        return await self._write_document(FREE_TEXT_LOCALITY, text, now)

    async def write_sections(
        self,
        sections: Mapping[str, Optional[str]],
        now: Optional[datetime] = None,
    ) -> dict[Locality, Path]:
        """Write sectioned thoughts, one document per locality that has content.

        project_notes go to the project journal, everything else to the user
        journal. A locality with nothing to write is not touched at all.

        Returns:
            Mapping of locality to the content document written there.

        Raises:
            UsageError: If no section has content or a key is unknown.
            StorageError: If a document cannot be written.
        """
        routed = split_sections(sections)
        if not routed:
            raise UsageError("At least one thought category must be provided")

        now = now or local_now()
        written: dict[Locality, Path] = {}
        for locality, values in routed.items():
            written[locality] = await self._write_document(locality, render_sections(values), now)
        return written

    async def _write_document(self, locality: Locality, body: str, now: datetime) -> Path:
        document = format_entry_document(body, now)
        day_dir = self.roots[locality] / format_date_key(now)
        path = self._create_document(day_dir, document, now)
        logger.debug("Wrote %s entry %s", locality.value, path)
        await self.derive_vector(path, document, timestamp_ms(now))
        return path

    def _create_document(self, day_dir: Path, document: str, now: datetime) -> Path:
        try:
            day_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create journal directory at {day_dir}: {e}") from e

        for _ in range(MAX_CREATE_ATTEMPTS):
            path = day_dir / f"{format_time_key(now, self._rng)}{ENTRY_SUFFIX}"
            try:
                create_exclusive(path, document)
            except FileExistsError:
                logger.debug("Entry name %s taken, drawing another", path.name)
                continue
            except OSError as e:
                raise StorageError(f"Failed to write journal entry {path}: {e}") from e
            return path

        raise StorageError(f"No free entry name in {day_dir} after {MAX_CREATE_ATTEMPTS} attempts")

    # ========== Search vectors ==========

    async def derive_vector(self, entry_path: Path, document: str, timestamp: int) -> bool:
        """Derive and save the search vector for a content document.

        Failures are logged, never raised: an entry must not be lost because
        the embedding model is unavailable.

        Returns:
            True if a vector was written.
        """
        text, sections = extract_searchable_text(document)
        if not text.strip():
            return False

        try:
            embedding = await self.resolver.embed(text)
            vector = SearchVector(
                embedding=embedding,
                text=text,
                sections=sections,
                timestamp=timestamp,
                path=str(entry_path),
            )
            write_json_atomic(vector_path(entry_path), vector.to_dict())
        except (DerivationError, OSError) as e:
            logger.warning("Could not save search vector for %s: %s", entry_path, e)
            return False
        return True

    async def generate_missing_embeddings(self) -> int:
        """Backfill vectors for entries that lack one, in both roots.

        Safe to re-run. Unreadable documents are skipped, and scan errors
        (missing root, permissions) end that root's scan without raising.

        Returns:
            Number of vectors generated.
        """
        count = 0
        for locality, root in self.roots.items():
            try:
                count += await self._backfill_root(root)
            except portalocker.LockException:
                logger.info("Another process is backfilling %s, skipping", root)
            except OSError as e:
                logger.warning("Failed to scan %s journal at %s: %s", locality.value, root, e)
        if count:
            logger.info("Generated search vectors for %d existing entries", count)
        return count

    async def _backfill_root(self, root: Path) -> int:
        if not root.is_dir():
            return 0

        count = 0
        with file_lock(root / ".backfill", timeout=0.1, fail_when_locked=True):
            for day_dir in sorted(root.iterdir()):
                if not DAY_DIR_PATTERN.match(day_dir.name) or not day_dir.is_dir():
                    continue
                try:
                    entries = sorted(day_dir.glob(f"*{ENTRY_SUFFIX}"))
                except OSError as e:
                    logger.warning("Failed to list %s: %s", day_dir, e)
                    continue
                for entry_path in entries:
                    if vector_path(entry_path).exists():
                        continue
                    if await self._regenerate(entry_path):
                        count += 1
        return count

    async def _regenerate(self, entry_path: Path) -> bool:
        try:
            document = entry_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable entry %s: %s", entry_path, e)
            return False

        timestamp = (
            parse_document_timestamp(document)
            or timestamp_from_path(entry_path)
            or timestamp_ms(local_now())
        )
        return await self.derive_vector(entry_path, document, timestamp)

    def load_vectors(self, locality: Locality) -> list[SearchVector]:
        """Load every readable search vector under a locality root.

        A missing root yields an empty list. Corrupt or unreadable vector
        files are skipped with a warning.
        """
        root = self.roots[locality]
        vectors: list[SearchVector] = []

        try:
            day_dirs = sorted(root.iterdir())
        except FileNotFoundError:
            return vectors
        except OSError as e:
            logger.error("Failed to read search vectors from %s: %s", root, e)
            return vectors

        for day_dir in day_dirs:
            if not DAY_DIR_PATTERN.match(day_dir.name) or not day_dir.is_dir():
                continue
            for path in sorted(day_dir.glob(f"*{VECTOR_SUFFIX}")):
                try:
                    data = json.loads(path.read_text(encoding="utf-8"))
                    vectors.append(SearchVector.from_dict(data))
                except (OSError, ValueError) as e:
                    logger.warning("Failed to load search vector %s: %s", path.name, e)

        return vectors

    # ========== Reading ==========

    async def read_entry(self, path: str) -> Optional[str]:
        """Read a content document; None if it does not exist.

        Raises:
            UsageError: If path cannot name a file (e.g. embedded NUL).
            StorageError: For I/O failures other than not-found.
        """
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read journal entry {path}: {e}") from e
        except ValueError as e:
            raise UsageError(f"Invalid journal entry path {path!r}: {e}") from e
