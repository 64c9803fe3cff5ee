"""
Audio Loader — decodes an input source into 16kHz mono float32 PCM.

Files soundfile can read at the pipeline sample rate are loaded
directly. Anything else (video containers, other sample rates) is
decoded through an FFmpeg pipe, with no temp files.
"""

import shutil
import logging
import subprocess
from pathlib import Path
from typing import Union

import numpy as np
import soundfile as sf

from .errors import AudioLoadError

logger = logging.getLogger(__name__)

AudioSource = Union[str, Path, np.ndarray]


class AudioLoader:
    """Loads audio files or arrays as float32 mono samples in [-1, 1]."""

    def __init__(self, sample_rate: int = 16000, ffmpeg_timeout: float = 600.0):
        self.sample_rate = sample_rate
        self.ffmpeg_timeout = ffmpeg_timeout

    def load(self, source: AudioSource) -> np.ndarray:
        """
        Load an audio source.

        Args:
            source: Path to an audio/video file, or a 1-D (or 2-D,
                first channel used) sample array at the pipeline rate.

        Returns:
            1-D float32 array.

        Raises:
            AudioLoadError: If the source is missing or cannot be decoded.
        """
        if isinstance(source, np.ndarray):
            return self._from_array(source)

        path = Path(source)
        if not path.exists():
            raise AudioLoadError(f"Audio source not found: {path}")

        try:
            info = sf.info(str(path))
        except (RuntimeError, sf.LibsndfileError) as e:
            logger.debug(f"soundfile cannot read {path.name} ({e}), trying FFmpeg")
            return self._decode_with_ffmpeg(path)

        if info.samplerate != self.sample_rate:
            logger.info(
                f"{path.name} is {info.samplerate}Hz, resampling to "
                f"{self.sample_rate}Hz with FFmpeg"
            )
            return self._decode_with_ffmpeg(path)

        try:
            audio, _ = sf.read(str(path), dtype="float32", always_2d=False)
        except (RuntimeError, sf.LibsndfileError) as e:
            raise AudioLoadError(f"Failed to read {path}: {e}") from e

        logger.info(f"Loaded {path.name}: {len(audio) / self.sample_rate:.1f}s")
        return self._from_array(audio)

    def _from_array(self, audio: np.ndarray) -> np.ndarray:
        if audio.ndim > 1:
            audio = audio[:, 0]
        if audio.ndim != 1:
            raise AudioLoadError(f"Expected mono samples, got shape {audio.shape}")
        return np.ascontiguousarray(audio, dtype=np.float32)

    def _decode_with_ffmpeg(self, path: Path) -> np.ndarray:
        if shutil.which("ffmpeg") is None:
            raise AudioLoadError(
                f"Cannot decode {path.name}: FFmpeg not found on PATH"
            )

        cmd = [
            "ffmpeg",
            "-i", str(path),
            "-vn",                          # no video
            "-acodec", "pcm_s16le",
            "-ar", str(self.sample_rate),
            "-ac", "1",                     # mono
            "-f", "s16le",                  # raw PCM to stdout
            "-loglevel", "error",
            "pipe:1",
        ]
        logger.debug(f"FFmpeg command: {' '.join(cmd)}")

        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=self.ffmpeg_timeout)
        except subprocess.TimeoutExpired as e:
            raise AudioLoadError(f"FFmpeg timed out decoding {path.name}") from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise AudioLoadError(f"FFmpeg audio extraction failed for {path.name}: {stderr}")
        if not proc.stdout:
            raise AudioLoadError(f"FFmpeg returned no audio for {path.name}")

        # int16 -> float32 in [-1, 1)
        samples = np.frombuffer(proc.stdout, dtype=np.int16)
        audio = samples.astype(np.float32) / 32768.0
        logger.info(f"Decoded {path.name} with FFmpeg: {len(audio) / self.sample_rate:.1f}s")
        return audio
