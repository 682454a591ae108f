"""Tests for the embedding resolver and cosine similarity."""

import asyncio
import threading
import time

import pytest
from hypothesis import given, settings, strategies as st

from private_journal.embeddings import (
    EmbeddingProvider,
    EmbeddingResolver,
    ResolverState,
    cosine_similarity,
)
from private_journal.errors import DerivationError, UsageError

from conftest import FailingEmbedding, FixedEmbedding, HashingEmbedding

finite = st.floats(min_value=-1e300, max_value=1e300, allow_nan=False, allow_infinity=False)


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite(self):
        assert cosine_similarity([1.0, 0.0], [-2.0, 0.0]) == pytest.approx(-1.0)

    def test_zero_vector(self):
        """Zero magnitude gives exactly 0, not NaN."""
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([1.0, 1.0], [0.0, 0.0]) == 0.0

    def test_length_mismatch(self):
        with pytest.raises(UsageError):
            cosine_similarity([1.0], [1.0, 2.0])

    @given(st.lists(finite, min_size=1, max_size=16), st.data())
    @settings(max_examples=100)
    def test_symmetric_and_bounded(self, a, data):
        b = data.draw(st.lists(finite, min_size=len(a), max_size=len(a)))
        ab = cosine_similarity(a, b)
        assert ab == pytest.approx(cosine_similarity(b, a))
        assert -1.0 - 1e-9 <= ab <= 1.0 + 1e-9

    @given(st.lists(finite, min_size=1, max_size=16).filter(lambda v: any(v)))
    @settings(max_examples=100)
    def test_self_similarity(self, a):
        assert cosine_similarity(a, a) == pytest.approx(1.0)
        assert cosine_similarity(a, [-x for x in a]) == pytest.approx(-1.0)

    @pytest.mark.parametrize("v", [[1e-200], [5e-324], [1e-170, 2e-170], [1e300, -1e300]])
    def test_extreme_magnitudes(self, v):
        assert cosine_similarity(v, v) == pytest.approx(1.0)
        assert cosine_similarity(v, [-x for x in v]) == pytest.approx(-1.0)


class TestEmbeddingResolver:
    """Tests for lazy provider initialization."""

    def test_providers_satisfy_protocol(self):
        assert isinstance(HashingEmbedding(), EmbeddingProvider)
        assert isinstance(FixedEmbedding([1.0]), EmbeddingProvider)

    def test_lazy(self):
        """The factory runs on first use, not at construction."""
        calls = []

        def factory():
            calls.append(1)
            return HashingEmbedding()

        resolver = EmbeddingResolver(factory=factory)
        assert resolver.state is ResolverState.UNINITIALIZED
        assert calls == []

        resolver.get()
        resolver.get()
        assert resolver.state is ResolverState.READY
        assert calls == [1]

    def test_from_provider_is_ready(self):
        provider = FixedEmbedding([0.5, 0.5])
        resolver = EmbeddingResolver.from_provider(provider)
        assert resolver.state is ResolverState.READY
        assert resolver.get() is provider

    def test_failure_is_sticky(self):
        calls = []

        def factory():
            calls.append(1)
            raise OSError("model download failed")

        resolver = EmbeddingResolver(factory=factory)
        with pytest.raises(DerivationError, match="Failed to load embedding model"):
            resolver.get()
        with pytest.raises(DerivationError, match="model download failed"):
            resolver.get()

        assert resolver.state is ResolverState.FAILED
        assert calls == [1]

    def test_reset_retries(self):
        attempts = []

        def factory():
            attempts.append(1)
            if len(attempts) == 1:
                raise OSError("offline")
            return HashingEmbedding()

        resolver = EmbeddingResolver(factory=factory)
        with pytest.raises(DerivationError):
            resolver.get()

        resolver.reset()
        assert resolver.state is ResolverState.UNINITIALIZED
        assert isinstance(resolver.get(), HashingEmbedding)
        assert len(attempts) == 2

    def test_concurrent_callers_share_initialization(self):
        """Callers arriving during initialization wait and get the same provider."""
        calls = []

        def factory():
            calls.append(1)
            time.sleep(0.05)
            return HashingEmbedding()

        resolver = EmbeddingResolver(factory=factory)
        results = []
        threads = [threading.Thread(target=lambda: results.append(resolver.get())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == [1]
        assert len(results) == 8
        assert all(r is results[0] for r in results)

    def test_inference_failure(self):
        resolver = EmbeddingResolver.from_provider(FailingEmbedding())
        with pytest.raises(DerivationError, match="Failed to generate embedding"):
            resolver.embed_sync("text")
        # A failed inference does not poison the resolver
        assert resolver.state is ResolverState.READY

    @pytest.mark.asyncio
    async def test_async_embed(self):
        resolver = EmbeddingResolver.from_provider(FixedEmbedding([1, 2]))
        assert await resolver.embed("anything") == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_async_embed_concurrent(self):
        resolver = EmbeddingResolver(factory=HashingEmbedding)
        vectors = await asyncio.gather(*(resolver.embed("same words") for _ in range(5)))
        assert all(v == vectors[0] for v in vectors)
