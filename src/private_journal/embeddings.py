"""Embedding capability: providers, the lazy resolver, and vector math.

The journal only needs "given text, return a fixed-length list of floats".
Providers satisfy that structurally; the default loads a
sentence-transformers model on first use.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence, runtime_checkable

from .errors import DerivationError, UsageError

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "all-MiniLM-L6-v2"


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Generates vector embeddings from text.

    The same provider must be used for writing vectors and for queries,
    otherwise scores are meaningless.
    """

    def embed(self, text: str) -> list[float]:
        """Return the embedding vector for text."""
        ...


class SentenceTransformerEmbedding:
    """Mean-pooled, normalized sentence-transformers embeddings."""

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL):
        from sentence_transformers import SentenceTransformer

        self.model_name = model_name
        self._model = SentenceTransformer(model_name)

    def embed(self, text: str) -> list[float]:
        return self._model.encode(text, normalize_embeddings=True).tolist()


class ResolverState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FAILED = "failed"


class EmbeddingResolver:
    """Lazily builds one shared EmbeddingProvider.

    The first caller runs the factory. Callers arriving while it runs wait on
    the lock and get the same outcome. A failed initialization stays failed
    (every later call raises the same DerivationError) until reset().
    """

    def __init__(
        self,
        factory: Optional[Callable[[], EmbeddingProvider]] = None,
        model_name: str = DEFAULT_EMBEDDING_MODEL,
    ):
        self.model_name = model_name
        self._factory = factory or (lambda: SentenceTransformerEmbedding(model_name))
        self._lock = threading.Lock()
        self._state = ResolverState.UNINITIALIZED
        self._provider: Optional[EmbeddingProvider] = None
        self._error: Optional[DerivationError] = None

    @classmethod
    def from_provider(cls, provider: EmbeddingProvider) -> "EmbeddingResolver":
        """Resolver that is already READY with a given provider."""
        resolver = cls(factory=lambda: provider, model_name=getattr(provider, "model_name", "custom"))
        resolver.get()
        return resolver

    @property
    def state(self) -> ResolverState:
        return self._state

    def get(self) -> EmbeddingProvider:
        """Return the provider, initializing it on first use.

        Raises:
            DerivationError: If initialization failed, now or earlier
        """
        with self._lock:
            if self._state is ResolverState.READY:
                return self._provider  # type: ignore[return-value]
            if self._state is ResolverState.FAILED:
                raise self._error  # type: ignore[misc]

            logger.info("Loading embedding model %s", self.model_name)
            try:
                self._provider = self._factory()
            except Exception as e:
                self._error = DerivationError(f"Failed to load embedding model: {e}")
                self._state = ResolverState.FAILED
                logger.error("%s", self._error)
                raise self._error from e
            self._state = ResolverState.READY
            return self._provider

    def reset(self) -> None:
        """Forget the provider or failure; the next call initializes again."""
        with self._lock:
            self._state = ResolverState.UNINITIALIZED
            self._provider = None
            self._error = None

    def embed_sync(self, text: str) -> list[float]:
        """Embed text in the calling thread.

        Raises:
            DerivationError: If the model is unavailable or inference fails
        """
        provider = self.get()
        try:
            return [float(x) for x in provider.embed(text)]
        except Exception as e:
            raise DerivationError(f"Failed to generate embedding: {e}") from e

    async def embed(self, text: str) -> list[float]:
        """Embed text in a worker thread so the event loop keeps running."""
        return await asyncio.to_thread(self.embed_sync, text)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between a and b.

    Returns exactly 0.0 when either vector has zero magnitude.

    Raises:
        UsageError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise UsageError(f"Vectors must have same length ({len(a)} != {len(b)})")

    # hypot does not underflow for tiny components, so scale before multiplying
    norm_a = math.hypot(*a)
    norm_b = math.hypot(*b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return sum((x / norm_a) * (y / norm_b) for x, y in zip(a, b))
