"""
Audible confirmation cue.

A short synthesized tone: 880 Hz sine, 50 ms attack to half gain, linear
decay to silence at 300 ms. Rendered to a WAV file once and handed to the
platform's command-line player on every play().
"""

import os
import shutil
import subprocess
import sys
import wave
from typing import Optional

import numpy as np

from dosewise.utils.AppLogging import logger


def synthesize_tone(
    frequency: float = 880.0,
    duration: float = 0.3,
    attack: float = 0.05,
    peak_gain: float = 0.5,
    sample_rate: int = 44100,
) -> np.ndarray:
    """
    Render the confirmation tone as float32 samples in [-1, 1].
    """
    n_samples = int(duration * sample_rate)
    t = np.arange(n_samples, dtype=np.float32) / sample_rate
    envelope = np.interp(t, [0.0, attack, duration], [0.0, peak_gain, 0.0]).astype(np.float32)
    return (np.sin(2.0 * np.pi * frequency * t) * envelope).astype(np.float32)


def write_wav(samples: np.ndarray, path: str, sample_rate: int = 44100) -> str:
    """Write mono float samples as 16-bit PCM."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype('<i2')
    with wave.open(path, 'wb') as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm.tobytes())
    return path


class ToneAudioCue:
    """
    Plays the confirmation tone through aplay/paplay (Linux), afplay (macOS)
    or the PowerShell SoundPlayer (Windows). Missing players are logged.
    """

    def __init__(self, wav_path: str = "data/audio/confirm.wav", sample_rate: int = 44100):
        self.wav_path = wav_path
        self.sample_rate = sample_rate
        self._rendered = False

    def _ensure_rendered(self):
        if not self._rendered:
            write_wav(synthesize_tone(sample_rate=self.sample_rate), self.wav_path, self.sample_rate)
            self._rendered = True

    def _player_command(self) -> Optional[list]:
        if sys.platform == "darwin":
            return ["afplay", self.wav_path]
        if sys.platform.startswith("win"):
            return [
                "powershell", "-NoProfile", "-Command",
                f"(New-Object Media.SoundPlayer '{self.wav_path}').PlaySync()",
            ]
        for player in ("paplay", "aplay"):
            if shutil.which(player):
                return [player, self.wav_path]
        return None

    def __call__(self) -> None:
        self.play()

    def play(self) -> None:
        self._ensure_rendered()
        command = self._player_command()
        if command is None:
            logger.debug("[AudioCue] No audio player available, tone skipped")
            return
        subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
