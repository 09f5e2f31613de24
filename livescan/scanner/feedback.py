"""
==============================================================================
Feedback Emitter Module
==============================================================================

Audible confirmation of accepted scans.

The tone is a sine wave with an exponential decay envelope (gain 0.15
falling to 0.001 over the tone duration), 1800 Hz for 150 ms by default.
The audio output is acquired lazily on the first beep. Feedback is
cosmetic: every failure is logged and swallowed.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

import numpy as np


# Module logger
logger = logging.getLogger(__name__)

ENVELOPE_FLOOR = 0.001


class AudioOutput(Protocol):
    """Device able to play a short tone."""

    def play_tone(self, frequency_hz: float, duration_ms: int) -> None:
        ...

    def close(self) -> None:
        ...


def synthesize_tone(
    frequency_hz: float,
    duration_ms: int,
    samplerate: int,
    gain: float = 0.15
) -> np.ndarray:
    """
    Render a decaying sine tone.

    Returns:
        Mono float32 samples in [-gain, gain]
    """
    count = max(1, int(samplerate * duration_ms / 1000))
    t = np.arange(count, dtype=np.float32) / samplerate
    duration = max(duration_ms, 1) / 1000.0
    envelope = gain * np.power(ENVELOPE_FLOOR / gain, t / duration)
    return (np.sin(2 * np.pi * frequency_hz * t) * envelope).astype(np.float32)


class SoundDeviceOutput:
    """
    Audio output on the default (or given) sounddevice output device.

    Playback is non-blocking; a new tone replaces one still playing.
    """

    def __init__(self, gain: float = 0.15, device: Optional[int] = None) -> None:
        # Imported here: PortAudio is only needed once feedback is used
        import sounddevice as sd

        self._sd = sd
        self._gain = gain
        self._device = device
        info = sd.query_devices(device, kind="output")
        self._samplerate = int(info["default_samplerate"])
        logger.info(f"🔊 Audio output ready: {info['name']} @ {self._samplerate} Hz")

    def play_tone(self, frequency_hz: float, duration_ms: int) -> None:
        tone = synthesize_tone(frequency_hz, duration_ms, self._samplerate, self._gain)
        self._sd.play(tone, self._samplerate, device=self._device)

    def close(self) -> None:
        self._sd.stop()


class FeedbackEmitter:
    """
    Fire-and-forget confirmation tone.

    Attributes:
        enabled: Whether beep() plays anything

    Example:
        >>> emitter = FeedbackEmitter(SoundDeviceOutput)
        >>> emitter.beep()
        >>> emitter.close()
    """

    def __init__(
        self,
        output_factory: Callable[[], AudioOutput],
        frequency_hz: float = 1800.0,
        duration_ms: int = 150,
        enabled: bool = True
    ) -> None:
        self._output_factory = output_factory
        self._frequency_hz = frequency_hz
        self._duration_ms = duration_ms
        self.enabled = enabled
        self._output: Optional[AudioOutput] = None

    def beep(self) -> None:
        """Play the confirmation tone; never raises."""
        if not self.enabled:
            return

        try:
            if self._output is None:
                self._output = self._output_factory()
            self._output.play_tone(self._frequency_hz, self._duration_ms)
        except Exception as e:
            logger.warning(f"Failed to play beep: {e}")

    def close(self) -> None:
        """Release the audio output."""
        output, self._output = self._output, None
        if output is None:
            return

        try:
            output.close()
        except Exception as e:
            logger.warning(f"Failed to close audio output: {e}")
