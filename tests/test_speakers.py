"""
Tests for speaker clustering.
"""

import threading

import numpy as np
import pytest

from config import SpeakerConfig
from subgen.errors import EmbeddingDimensionError
from subgen.speakers import SpeakerRegistry, cosine_similarity


@pytest.fixture
def registry():
    return SpeakerRegistry(SpeakerConfig(similarity_threshold=0.8, ema_alpha=0.1))


class TestCosineSimilarity:

    def test_identical_vectors(self):
        v = np.array([0.3, 0.4, 0.5])
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 1.0])) == 0.0

    def test_zero_norm_is_zero(self):
        assert cosine_similarity(np.zeros(3), np.array([1.0, 2.0, 3.0])) == 0.0

    def test_shape_mismatch_raises(self):
        with pytest.raises(EmbeddingDimensionError):
            cosine_similarity(np.ones(3), np.ones(4))


class TestIdentify:
    """Test matching and creation of speaker profiles."""

    def test_same_embedding_same_speaker(self, registry):
        v = [0.2, 0.9, 0.1, 0.4]
        assert registry.identify(v) == registry.identify(v) == "speaker_1"
        assert len(registry) == 1

    def test_orthogonal_embeddings_distinct_speakers(self, registry):
        first = registry.identify([1.0, 0.0, 0.0])
        second = registry.identify([0.0, 1.0, 0.0])
        assert first == "speaker_1"
        assert second == "speaker_2"
        assert registry.names() == {"speaker_1": "Speaker 1", "speaker_2": "Speaker 2"}

    def test_similarity_at_threshold_creates_new_profile(self):
        registry = SpeakerRegistry(SpeakerConfig(similarity_threshold=1.0))
        registry.identify([1.0, 0.0])
        assert registry.identify([1.0, 0.0]) == "speaker_2"

    def test_tie_goes_to_earliest_profile(self):
        registry = SpeakerRegistry(SpeakerConfig(similarity_threshold=0.5))
        registry.identify([1.0, 0.0])
        registry.identify([0.0, 1.0])
        assert registry.identify([1.0, 1.0]) == "speaker_1"

    def test_ema_update(self, registry):
        registry.identify([1.0, 0.0], timestamp_ms=1000)
        registry.identify([1.0, 0.1], timestamp_ms=5000)
        profile = registry.get("speaker_1")
        np.testing.assert_allclose(profile.average_embedding, [1.0, 0.01])
        assert profile.sample_count == 2
        assert profile.first_seen_ms == 1000
        assert profile.last_seen_ms == 5000
        assert 0.99 < profile.confidence <= 1.0

    def test_stored_embedding_is_read_only_copy(self, registry):
        v = np.array([1.0, 2.0])
        registry.identify(v)
        v[0] = 100.0
        stored = registry.get("speaker_1").average_embedding
        assert stored[0] == 1.0
        with pytest.raises(ValueError):
            stored[0] = 5.0


class TestDimensionChecks:

    def test_mismatch_after_first_embedding(self, registry):
        registry.identify([1.0, 0.0, 0.0])
        with pytest.raises(EmbeddingDimensionError):
            registry.identify([1.0, 0.0])

    def test_configured_dimension_enforced(self):
        registry = SpeakerRegistry(SpeakerConfig(embedding_dim=4))
        with pytest.raises(EmbeddingDimensionError):
            registry.identify([1.0, 0.0, 0.0])

    def test_non_vector_rejected(self, registry):
        with pytest.raises(EmbeddingDimensionError):
            registry.identify([[1.0, 0.0], [0.0, 1.0]])

    def test_mismatch_does_not_create_profile(self, registry):
        registry.identify([1.0, 0.0, 0.0])
        with pytest.raises(EmbeddingDimensionError):
            registry.identify([0.0, 1.0])
        assert len(registry) == 1


class TestNames:

    def test_rename(self, registry):
        sid = registry.identify([1.0, 0.0])
        registry.rename(sid, "Alice")
        assert registry.name_of(sid) == "Alice"
        assert registry.names() == {sid: "Alice"}

    def test_rename_unknown_raises(self, registry):
        with pytest.raises(KeyError):
            registry.rename("speaker_9", "Nobody")

    def test_name_of_none(self, registry):
        assert registry.name_of(None) is None
        assert registry.name_of("speaker_1") is None


class TestConcurrency:
    """Test match-or-create under parallel callers."""

    def test_parallel_identical_embeddings_create_one_profile(self, registry):
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            sid = registry.identify([0.5, 0.5, 0.5, 0.5])
            with lock:
                results.append(sid)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert set(results) == {"speaker_1"}
        assert len(registry) == 1
        assert registry.get("speaker_1").sample_count == 8
