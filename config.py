"""
Configuration loader for the subtitle generation pipeline.
Loads from config.yaml and allows CLI argument overrides.
"""

import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


@dataclass
class AudioConfig:
    sample_rate: int = 16000


@dataclass
class ChunkConfig:
    chunk_duration_ms: int = 30000
    overlap_ms: int = 2000
    min_chunk_ms: int = 1000  # trailing chunks shorter than this are dropped


@dataclass
class VADConfig:
    energy_threshold: float = 0.01
    window_ms: int = 10
    min_speech_ms: int = 250


@dataclass
class RecognitionConfig:
    min_confidence: float = 0.6
    language: Optional[str] = None  # None = auto-detect
    model: str = "small"
    device: str = "cpu"
    compute_type: str = "int8"
    beam_size: int = 3
    threads: int = 0  # 0 = auto-detect CPU cores


@dataclass
class SpeakerConfig:
    enabled: bool = True
    similarity_threshold: float = 0.8
    ema_alpha: float = 0.1
    embedding_dim: Optional[int] = None  # None = fixed by the first embedding


@dataclass
class TextConfig:
    enable_punctuation: bool = True
    enable_capitalization: bool = True


@dataclass
class TranslationConfig:
    enabled: bool = False
    target_language: str = "en"


@dataclass
class PostProcessConfig:
    max_chars: int = 84
    words_per_minute: int = 200
    max_duration_ms: int = 6000
    merge_gap_ms: int = 500
    max_merged_chars: Optional[int] = None  # None = merge regardless of length


@dataclass
class ProcessingConfig:
    workers: int = 2
    chunk_timeout_sec: float = 120.0
    max_processing_sec: float = 0.0  # 0 = no overall budget
    max_cpu_percent: int = 70
    throttle_check_interval: float = 2.0
    realtime_queue_size: int = 32


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level application configuration."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    chunking: ChunkConfig = field(default_factory=ChunkConfig)
    vad: VADConfig = field(default_factory=VADConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    speakers: SpeakerConfig = field(default_factory=SpeakerConfig)
    text: TextConfig = field(default_factory=TextConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    postprocess: PostProcessConfig = field(default_factory=PostProcessConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def update_from_args(self, args):
        """Override config values from CLI arguments."""
        if getattr(args, "model", None):
            self.recognition.model = args.model
        if getattr(args, "language", None):
            self.recognition.language = args.language
        if getattr(args, "translate_to", None):
            self.translation.enabled = True
            self.translation.target_language = args.translate_to
        if getattr(args, "workers", None):
            self.processing.workers = args.workers
        if getattr(args, "max_cpu", None):
            self.processing.max_cpu_percent = args.max_cpu
        if getattr(args, "no_diarization", False):
            self.speakers.enabled = False


def _dict_to_dataclass(cls, data: dict):
    """Convert a dict to a dataclass, ignoring unknown keys."""
    if data is None:
        return cls()
    field_names = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {k: v for k, v in data.items() if k in field_names}
    unknown = set(data) - field_names
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**filtered)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file.
    Falls back to defaults if file is missing.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.warning(f"Config file not found at {path}, using defaults.")
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = AppConfig(
        audio=_dict_to_dataclass(AudioConfig, raw.get("audio")),
        chunking=_dict_to_dataclass(ChunkConfig, raw.get("chunking")),
        vad=_dict_to_dataclass(VADConfig, raw.get("vad")),
        recognition=_dict_to_dataclass(RecognitionConfig, raw.get("recognition")),
        speakers=_dict_to_dataclass(SpeakerConfig, raw.get("speakers")),
        text=_dict_to_dataclass(TextConfig, raw.get("text")),
        translation=_dict_to_dataclass(TranslationConfig, raw.get("translation")),
        postprocess=_dict_to_dataclass(PostProcessConfig, raw.get("postprocess")),
        processing=_dict_to_dataclass(ProcessingConfig, raw.get("processing")),
        logging=_dict_to_dataclass(LoggingConfig, raw.get("logging")),
    )

    logger.info(f"Configuration loaded from {path}")
    return config
