"""
Tests for the energy-based Voice Activity Detector.
"""

import numpy as np
import pytest

from config import VADConfig
from subgen.vad import VoiceActivityDetector, VoiceRange
from conftest import silence, tone, SAMPLE_RATE


@pytest.fixture
def vad():
    return VoiceActivityDetector(VADConfig(energy_threshold=0.01, window_ms=10, min_speech_ms=250), SAMPLE_RATE)


def to_ms(n_samples: int) -> float:
    return n_samples * 1000 / SAMPLE_RATE


class TestSilence:
    """Test that silence produces no voiced ranges."""

    @pytest.mark.parametrize("duration_ms", [0, 5, 300, 5000, 30000])
    def test_all_zero_input_has_no_ranges(self, vad, duration_ms):
        assert vad.detect(silence(duration_ms)) == []

    def test_empty_chunk(self, vad):
        assert vad.detect(np.zeros(0, dtype=np.float32)) == []

    def test_quiet_noise_below_threshold(self, vad):
        noise = np.full(SAMPLE_RATE, 0.05, dtype=np.float32)  # energy 0.0025
        assert vad.detect(noise) == []


class TestSingleTone:
    """Test range boundaries around a steady tone."""

    def test_tone_between_silences_is_one_range(self, vad):
        audio = np.concatenate([silence(500), tone(5000), silence(500)])
        ranges = vad.detect(audio)
        assert len(ranges) == 1
        assert 4750 <= to_ms(ranges[0].length) <= 5250

    def test_range_starts_near_tone_onset(self, vad):
        audio = np.concatenate([silence(500), tone(5000), silence(500)])
        start_ms = to_ms(vad.detect(audio)[0].start)
        assert 490 <= start_ms <= 500

    def test_run_open_at_end_is_flushed(self, vad):
        audio = np.concatenate([silence(500), tone(1000)])
        ranges = vad.detect(audio)
        assert len(ranges) == 1
        assert ranges[0].end == len(audio)

    def test_short_burst_below_minimum_ignored(self, vad):
        audio = np.concatenate([silence(500), tone(200), silence(500)])
        assert vad.detect(audio) == []

    def test_two_tones_give_two_ranges(self, vad, speech_audio):
        ranges = vad.detect(speech_audio)
        assert len(ranges) == 2
        assert ranges[0].end <= ranges[1].start


class TestThreshold:

    def test_zero_threshold_covers_whole_chunk(self):
        vad = VoiceActivityDetector(VADConfig(energy_threshold=0.0), SAMPLE_RATE)
        audio = silence(2000)
        assert vad.detect(audio) == [VoiceRange(0, len(audio))]

    def test_deterministic(self, vad, speech_audio):
        assert vad.detect(speech_audio) == vad.detect(speech_audio.copy())

    def test_window_and_stride(self, vad):
        assert vad.window == 160
        assert vad.stride == 80
