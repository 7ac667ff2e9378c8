from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
import scipy.io.wavfile as wav
import sounddevice as sd

from ...utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AudioDevice:
    name: str
    index: int
    channels: int
    default_sample_rate: float


class AudioRecorder:
    """Buffers microphone input from a sounddevice stream until stopped."""

    def __init__(
        self,
        sample_rate: int = 44100,
        channels: int = 1,
        device: Optional[str] = None,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device

        self._stream: Optional[sd.InputStream] = None
        self._audio_buffer: List[np.ndarray] = []
        self._is_recording = False
        self._last_error: Optional[str] = None

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def start(self) -> bool:
        if self._is_recording:
            return True

        self._audio_buffer = []
        self._last_error = None

        try:
            self._stream = sd.InputStream(
                samplerate=float(self.sample_rate),
                channels=self.channels,
                device=self._get_device_index(),
                callback=self._audio_callback,
            )
            self._stream.start()
            self._is_recording = True
            return True

        except sd.PortAudioError as e:
            self._last_error = f"Audio device error: {e}"
        except Exception as e:
            self._last_error = f"Failed to start recording: {e}"

        self._stream = None
        self._is_recording = False
        return False

    def stop(self) -> Optional[np.ndarray]:
        if not self._is_recording:
            return None

        self._is_recording = False

        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

        if not self._audio_buffer:
            return None

        return np.concatenate(self._audio_buffer, axis=0)

    def write_wav(self, audio_data: np.ndarray, path: Path) -> Path:
        """Write captured float samples as 16-bit PCM."""
        clipped = np.clip(audio_data, -1.0, 1.0)
        wav.write(str(path), self.sample_rate, (clipped * 32767).astype(np.int16))
        logger.debug(f"Wrote {len(audio_data)} samples to {path}")
        return path

    def _audio_callback(self, indata: np.ndarray, frames: int, time, status) -> None:
        if status:
            logger.debug(f"Input stream status: {status}")
        if self._is_recording:
            self._audio_buffer.append(indata.copy())

    def _get_device_index(self) -> Optional[int]:
        if self.device is None:
            return None

        for device in self.list_devices():
            if device.name == self.device:
                return device.index

        return None

    @staticmethod
    def list_devices() -> List[AudioDevice]:
        devices = []

        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append(
                    AudioDevice(
                        name=device["name"],
                        index=i,
                        channels=device["max_input_channels"],
                        default_sample_rate=device["default_samplerate"],
                    )
                )

        return devices
