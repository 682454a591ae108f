"""Shared pytest fixtures for private-journal tests."""

import json
import math
import re
import zlib
from pathlib import Path

import httpx
import pytest

from private_journal.config import JournalConfig, RemoteConfig
from private_journal.embeddings import EmbeddingResolver
from private_journal.engine import JournalEngine
from private_journal.remote import RemoteClient
from private_journal.search import SearchEngine
from private_journal.store import EntryStore


class HashingEmbedding:
    """Deterministic bag-of-words embedding.

    Each lowercase word bumps one of `dims` buckets, so texts sharing words
    score higher than texts that don't.
    """

    model_name = "test-hashing"

    def __init__(self, dims: int = 64):
        self.dims = dims
        self.calls = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = [0.0] * self.dims
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(word.encode("utf-8")) % self.dims] += 1.0
        norm = math.sqrt(sum(x * x for x in vector))
        return [x / norm for x in vector] if norm else vector


class FixedEmbedding:
    """Returns the same vector for every text."""

    model_name = "test-fixed"

    def __init__(self, vector):
        self.vector = list(vector)

    def embed(self, text: str) -> list[float]:
        return list(self.vector)


class FailingEmbedding:
    """Inference always fails."""

    model_name = "test-failing"

    def embed(self, text: str) -> list[float]:
        raise RuntimeError("inference exploded")


class RecordingTransport:
    """httpx.MockTransport that remembers every request it answers."""

    def __init__(self, handler=None):
        self.requests = []
        self._handler = handler or (lambda request: httpx.Response(201, json={"id": "new"}))
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def json_bodies(self):
        return [json.loads(r.content) for r in self.requests if r.content]


def write_vector(root: Path, name: str, embedding, text="entry text",
                 timestamp=1_700_000_000_000, sections=None, day="2026-10-18"):
    """Place a search vector (and its content document) directly on disk."""
    day_dir = root / day
    day_dir.mkdir(parents=True, exist_ok=True)
    entry = day_dir / f"{name}.md"
    entry.write_text(f"---\ntimestamp: {timestamp}\n---\n\n{text}\n", encoding="utf-8")
    vector = {
        "embedding": list(embedding),
        "text": text,
        "sections": list(sections or []),
        "timestamp": timestamp,
        "path": str(entry),
    }
    (day_dir / f"{name}.embedding").write_text(json.dumps(vector, indent=2), encoding="utf-8")
    return entry


def unit_vector_with_score(score: float) -> list[float]:
    """2-d unit vector whose cosine with [1, 0] is `score`."""
    return [score, math.sqrt(1 - score * score)]


@pytest.fixture
def project_root(tmp_path):
    """A temporary project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def project_path(project_root):
    return project_root / ".private-journal"


@pytest.fixture
def user_path(tmp_path):
    return tmp_path / "home" / ".private-journal"


@pytest.fixture
def provider():
    return HashingEmbedding()


@pytest.fixture
def resolver(provider):
    """A resolver that is already READY with the hashing provider."""
    return EmbeddingResolver.from_provider(provider)


@pytest.fixture
def store(project_path, user_path, resolver):
    return EntryStore(project_path, user_path, resolver)


@pytest.fixture
def search_engine(store, resolver):
    return SearchEngine(store, resolver)


@pytest.fixture
def config(project_path, user_path):
    """Local-only configuration over temporary journal roots."""
    return JournalConfig(
        project_journal_path=project_path,
        user_journal_path=user_path,
    )


@pytest.fixture
def engine(config, resolver):
    """Local-only engine using the hashing provider."""
    return JournalEngine(config, resolver=resolver)


@pytest.fixture
def remote_config():
    return RemoteConfig(
        server_url="https://journal.example.test",
        team_id="team-1",
        api_key="secret-key",
    )


@pytest.fixture
def remote_only_config(remote_config):
    return RemoteConfig(
        server_url=remote_config.server_url,
        team_id=remote_config.team_id,
        api_key=remote_config.api_key,
        remote_only=True,
    )


@pytest.fixture
def recording():
    """Transport that accepts every request with 201."""
    return RecordingTransport()


@pytest.fixture
def remote_client_factory():
    """Build RemoteClients over a RecordingTransport."""

    def _create(remote, recording):
        return RemoteClient(remote, transport=recording.transport)

    return _create


@pytest.fixture
def engine_factory(project_path, user_path, resolver):
    """Build engines over the temporary roots with a given remote setup.

    Usage:
        engine = engine_factory(remote_config, recording)
    """

    def _create(remote=None, recording=None, engine_resolver=None):
        config = JournalConfig(
            project_journal_path=project_path,
            user_journal_path=user_path,
            remote=remote,
        )
        client = None
        if remote is not None:
            client = RemoteClient(remote, transport=(recording or RecordingTransport()).transport)
        return JournalEngine(config, resolver=engine_resolver or resolver, remote_client=client)

    return _create


def files_under(root: Path):
    """Every regular file below root, excluding lock files."""
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and not p.name.endswith(".lock"))
