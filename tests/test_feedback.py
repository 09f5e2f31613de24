"""
==============================================================================
Feedback Emitter Tests
==============================================================================
"""

import sys
import types

import numpy as np
import pytest

from livescan.scanner.feedback import (
    ENVELOPE_FLOOR,
    FeedbackEmitter,
    SoundDeviceOutput,
    synthesize_tone,
)


class TestSynthesizeTone:
    """Tests for tone rendering."""

    def test_length_and_dtype(self):
        tone = synthesize_tone(1800.0, 150, 48000)
        assert tone.dtype == np.float32
        assert tone.shape == (7200,)

    def test_envelope_decays(self):
        tone = synthesize_tone(1800.0, 150, 48000, gain=0.15)
        head = np.abs(tone[:480]).max()
        tail = np.abs(tone[-480:]).max()
        assert head <= 0.15 + 1e-6
        assert head > 0.1
        assert tail < head / 10
        assert tail >= 0.0

    def test_envelope_floor(self):
        tone = synthesize_tone(1000.0, 100, 8000, gain=0.15)
        assert np.abs(tone[-8:]).max() <= ENVELOPE_FLOOR * 2

    def test_zero_duration_still_renders(self):
        assert synthesize_tone(1800.0, 0, 48000).shape == (1,)


class TestFeedbackEmitter:
    """Tests for the fire-and-forget beep."""

    def test_output_acquired_lazily(self, audio):
        created = []

        def factory():
            created.append(True)
            return audio

        emitter = FeedbackEmitter(factory)
        assert created == []

        emitter.beep()
        emitter.beep()
        assert created == [True]
        assert audio.tones == [(1800.0, 150), (1800.0, 150)]

    def test_custom_tone(self, audio):
        FeedbackEmitter(lambda: audio, frequency_hz=1000.0, duration_ms=80).beep()
        assert audio.tones == [(1000.0, 80)]

    def test_acquire_failure_is_swallowed(self):
        def factory():
            raise OSError("PortAudio not available")

        emitter = FeedbackEmitter(factory)
        emitter.beep()
        emitter.close()

    def test_play_failure_is_swallowed(self, audio):
        audio.fail = True
        FeedbackEmitter(lambda: audio).beep()

    def test_disabled(self):
        def factory():
            raise AssertionError("should not be called")

        emitter = FeedbackEmitter(factory, enabled=False)
        emitter.beep()

    def test_close_releases_output(self, audio):
        emitter = FeedbackEmitter(lambda: audio)
        emitter.close()
        assert not audio.closed

        emitter.beep()
        emitter.close()
        assert audio.closed


class TestSoundDeviceOutput:
    """Tests for the sounddevice adapter with a stand-in module."""

    @pytest.fixture
    def fake_sounddevice(self, monkeypatch):
        module = types.ModuleType("sounddevice")
        module.played = []
        module.stopped = 0

        def query_devices(device=None, kind=None):
            return {"name": "Test Speaker", "default_samplerate": 44100.0}

        def play(data, samplerate, device=None):
            module.played.append((data, samplerate, device))

        def stop():
            module.stopped += 1

        module.query_devices = query_devices
        module.play = play
        module.stop = stop
        monkeypatch.setitem(sys.modules, "sounddevice", module)
        return module

    def test_play_tone(self, fake_sounddevice):
        output = SoundDeviceOutput(gain=0.15)
        output.play_tone(1800.0, 150)

        data, samplerate, device = fake_sounddevice.played[0]
        assert samplerate == 44100
        assert len(data) == 44100 * 150 // 1000
        assert device is None

        output.close()
        assert fake_sounddevice.stopped == 1
