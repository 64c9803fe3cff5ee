"""
Tests for audio loading and CPU throttling.
"""

import numpy as np
import pytest
import soundfile as sf

from subgen import audio_loader, cpu_throttle
from subgen.audio_loader import AudioLoader
from subgen.cpu_throttle import CPUThrottle
from subgen.errors import AudioLoadError
from conftest import SAMPLE_RATE, tone


class TestAudioLoader:
    """Test audio decoding from arrays and files."""

    def test_array_passthrough(self):
        audio = AudioLoader().load(np.array([0.1, -0.2], dtype=np.float64))
        assert audio.dtype == np.float32
        np.testing.assert_allclose(audio, [0.1, -0.2], rtol=1e-6)

    def test_stereo_array_uses_first_channel(self):
        stereo = np.stack([np.ones(10), np.zeros(10)], axis=1)
        np.testing.assert_array_equal(AudioLoader().load(stereo), np.ones(10, dtype=np.float32))

    def test_wav_at_pipeline_rate(self, tmp_path):
        path = tmp_path / "tone.wav"
        sf.write(str(path), tone(1000), SAMPLE_RATE)
        audio = AudioLoader().load(path)
        assert len(audio) == SAMPLE_RATE
        assert np.abs(audio).max() == pytest.approx(0.5, abs=1e-3)

    def test_missing_file(self, tmp_path):
        with pytest.raises(AudioLoadError):
            AudioLoader().load(tmp_path / "nope.wav")

    def test_undecodable_without_ffmpeg(self, tmp_path, monkeypatch):
        path = tmp_path / "movie.mp4"
        path.write_bytes(b"not really a video")
        monkeypatch.setattr(audio_loader.shutil, "which", lambda name: None)
        with pytest.raises(AudioLoadError, match="FFmpeg not found"):
            AudioLoader().load(path)

    def test_other_sample_rate_goes_through_ffmpeg(self, tmp_path, monkeypatch):
        path = tmp_path / "hifi.wav"
        sf.write(str(path), np.zeros(4410, dtype=np.float32), 44100)
        monkeypatch.setattr(audio_loader.shutil, "which", lambda name: None)
        with pytest.raises(AudioLoadError, match="FFmpeg"):
            AudioLoader().load(path)


class TestCPUThrottle:
    """Test CPU-based throttling between chunks."""

    def test_disabled_outside_range(self):
        assert not CPUThrottle(max_percent=0).enabled
        assert not CPUThrottle(max_percent=100).enabled
        assert CPUThrottle(max_percent=0).pause_if_busy() == 0.0

    def test_sleeps_when_busy(self, monkeypatch):
        slept = []
        monkeypatch.setattr(cpu_throttle.psutil, "cpu_percent", lambda interval=None: 95.0)
        monkeypatch.setattr(cpu_throttle.time, "sleep", slept.append)

        throttle = CPUThrottle(max_percent=70, check_interval=0.0)
        assert throttle.pause_if_busy() == pytest.approx(0.55)
        assert slept == [pytest.approx(0.55)]
        assert throttle.total_throttles == 1

    def test_idle_does_not_sleep(self, monkeypatch):
        monkeypatch.setattr(cpu_throttle.psutil, "cpu_percent", lambda interval=None: 10.0)
        assert CPUThrottle(max_percent=70, check_interval=0.0).pause_if_busy() == 0.0

    def test_checks_at_most_once_per_interval(self, monkeypatch):
        calls = []
        monkeypatch.setattr(cpu_throttle.psutil, "cpu_percent",
                            lambda interval=None: calls.append(interval) or 10.0)
        throttle = CPUThrottle(max_percent=70, check_interval=60.0)
        throttle.pause_if_busy()
        throttle.pause_if_busy()
        assert len(calls) == 1
