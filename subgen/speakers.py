"""
Speaker Registry — clusters voice embeddings into persistent speaker profiles.

identify() compares an embedding against every profile by cosine
similarity. The best match above the similarity threshold absorbs the
embedding through an exponential moving average; otherwise a new profile
is created. Match-then-create runs under a single lock so concurrent
chunks cannot both create a profile for the same voice.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional

import numpy as np

from .errors import EmbeddingDimensionError
from .models import SpeakerProfile

logger = logging.getLogger(__name__)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm."""
    if a.shape != b.shape:
        raise EmbeddingDimensionError(
            f"Cannot compare embeddings of shape {a.shape} and {b.shape}"
        )
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


class SpeakerRegistry:
    """
    Owns all SpeakerProfiles for a session.

    Profiles are only ever created or updated, never deleted. Each update
    stores a new immutable SpeakerProfile in place of the old one.
    """

    def __init__(self, config=None):
        self.similarity_threshold = getattr(config, "similarity_threshold", 0.8)
        self.alpha = getattr(config, "ema_alpha", 0.1)
        self._dimension: Optional[int] = getattr(config, "embedding_dim", None)
        self._profiles: Dict[str, SpeakerProfile] = {}
        self._lock = threading.Lock()

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _as_vector(self, embedding) -> np.ndarray:
        vector = np.asarray(embedding, dtype=np.float64)
        if vector.ndim != 1 or vector.shape[0] == 0:
            raise EmbeddingDimensionError(
                f"Embedding must be a non-empty 1-D vector, got shape {vector.shape}"
            )
        if self._dimension is not None and vector.shape[0] != self._dimension:
            raise EmbeddingDimensionError(
                f"Embedding dimension {vector.shape[0]} does not match "
                f"registry dimension {self._dimension}"
            )
        return vector

    def identify(self, embedding, timestamp_ms: int = 0) -> str:
        """
        Return the speaker id for an embedding, creating a profile if needed.

        Args:
            embedding: 1-D float vector of the registry's dimension.
            timestamp_ms: Absolute time of the voiced range, recorded as
                first/last seen.

        Raises:
            EmbeddingDimensionError: On a dimension mismatch.
        """
        with self._lock:
            vector = self._as_vector(embedding)
            if self._dimension is None:
                self._dimension = vector.shape[0]

            best_id = None
            best_similarity = -1.0
            # Strictly greater: the earliest registered profile wins ties
            for speaker_id, profile in self._profiles.items():
                similarity = cosine_similarity(vector, profile.average_embedding)
                if similarity > best_similarity:
                    best_similarity = similarity
                    best_id = speaker_id

            if best_id is not None and best_similarity > self.similarity_threshold:
                self._update(best_id, vector, best_similarity, timestamp_ms)
                return best_id

            return self._create(vector, timestamp_ms)

    def _create(self, vector: np.ndarray, timestamp_ms: int) -> str:
        number = len(self._profiles) + 1
        speaker_id = f"speaker_{number}"
        stored = vector.copy()
        stored.flags.writeable = False
        self._profiles[speaker_id] = SpeakerProfile(
            id=speaker_id,
            name=f"Speaker {number}",
            average_embedding=stored,
            sample_count=1,
            confidence=1.0,
            first_seen_ms=timestamp_ms,
            last_seen_ms=timestamp_ms,
        )
        logger.info(f"New speaker profile: {speaker_id}")
        return speaker_id

    def _update(self, speaker_id: str, vector: np.ndarray, similarity: float, timestamp_ms: int):
        profile = self._profiles[speaker_id]
        averaged = profile.average_embedding * (1.0 - self.alpha) + vector * self.alpha
        averaged.flags.writeable = False
        self._profiles[speaker_id] = replace(
            profile,
            average_embedding=averaged,
            sample_count=profile.sample_count + 1,
            confidence=similarity,
            first_seen_ms=min(profile.first_seen_ms, timestamp_ms),
            last_seen_ms=max(profile.last_seen_ms, timestamp_ms),
        )

    def rename(self, speaker_id: str, name: str):
        """Set a speaker's display name. Raises KeyError for an unknown id."""
        with self._lock:
            profile = self._profiles[speaker_id]
            self._profiles[speaker_id] = replace(profile, name=name)

    def get(self, speaker_id: str) -> Optional[SpeakerProfile]:
        with self._lock:
            return self._profiles.get(speaker_id)

    def name_of(self, speaker_id: Optional[str]) -> Optional[str]:
        if speaker_id is None:
            return None
        profile = self.get(speaker_id)
        return profile.name if profile else None

    def names(self) -> Dict[str, str]:
        """Snapshot of speaker id -> display name."""
        with self._lock:
            return {sid: p.name or sid for sid, p in self._profiles.items()}

    def profiles(self) -> List[SpeakerProfile]:
        """Snapshot of all profiles in registration order."""
        with self._lock:
            return list(self._profiles.values())

    def __len__(self):
        with self._lock:
            return len(self._profiles)
