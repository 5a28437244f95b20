import logging
import sys

import librosa
import numpy as np

from particlevis.constants import (
    DB_FLOOR,
    FFT_SIZE,
    HOP_LENGTH,
    MAX_FREQ,
    MIN_FREQ,
    N_FFT,
    N_MELS,
    SAMPLE_MIDPOINT,
)

logger = logging.getLogger(__name__)


class AudioAnalyser:
    """
    Loads an audio file and serves per-frame buffers to the particle engine.

    The engine reads two things each frame: byte-scale time-domain samples
    (centred on 128) and frequency bins normalised to 0-1.
    """

    def __init__(self, filepath):
        logger.info(f"[+] Loading audio: {filepath}...")
        try:
            # Load audio with original sampling rate
            self.y, self.sr = librosa.load(filepath, sr=None)
            self.duration = librosa.get_duration(y=self.y, sr=self.sr)
        except Exception as e:
            sys.exit(f"[!] Error loading audio file: {e}")

        logger.info("[+] Analyzing audio frequencies...")
        self._calculate_spectrogram()

    def _calculate_spectrogram(self):
        """
        Compute a Mel-scaled spectrogram.
        Mel scale matches human hearing better than linear FFT.
        """
        spectrogram = librosa.feature.melspectrogram(
            y=self.y,
            sr=self.sr,
            n_fft=N_FFT,
            hop_length=HOP_LENGTH,
            n_mels=N_MELS,
            fmin=MIN_FREQ,
            fmax=MAX_FREQ,
        )

        # Convert to decibels (Log scale) for better visual dynamic range
        self.S_dB = librosa.power_to_db(spectrogram, ref=np.max)

        # Normalize to 0-1, clipping the noise floor
        self.S_norm = np.clip((self.S_dB + DB_FLOOR) / DB_FLOOR, 0, 1)

    def get_bins_at_time(self, t):
        """
        Returns the normalised frequency bins for timestamp `t`.
        """
        frame_index = librosa.time_to_frames(t, sr=self.sr, hop_length=HOP_LENGTH, n_fft=N_FFT)

        # Boundary checks
        frame_index = int(min(max(frame_index, 0), self.S_norm.shape[1] - 1))
        return self.S_norm[:, frame_index]

    def get_samples_at_time(self, t):
        """
        Returns `FFT_SIZE` samples starting at `t`, on the byte scale.
        """
        start = max(0, int(t * self.sr))
        window = self.y[start : start + FFT_SIZE]

        # Pad with silence past the end of the track
        if len(window) < FFT_SIZE:
            window = np.pad(window, (0, FFT_SIZE - len(window)))

        return np.clip(SAMPLE_MIDPOINT + window * SAMPLE_MIDPOINT, 0, 255)
