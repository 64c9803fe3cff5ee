"""Exception hierarchy for the subtitle pipeline."""


class SubtitleError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(SubtitleError, ValueError):
    """Invalid pipeline configuration (e.g. overlap >= chunk size)."""


class EmbeddingDimensionError(SubtitleError, ValueError):
    """A speaker embedding does not match the registry's dimension."""


class AudioLoadError(SubtitleError):
    """The audio source could not be read or decoded."""


class ChunkTimeoutError(SubtitleError):
    """A chunk exceeded its processing deadline."""
