"""
Audio modulation maths.

Raw audio arrives as byte-scale time-domain samples centred on
``SAMPLE_MIDPOINT`` and frequency magnitudes already normalised to ``[0, 1]``.
Everything here is recomputed from scratch each frame.
"""

from dataclasses import dataclass, field

import numpy as np

from particlevis.constants import AMPLITUDE_GAIN, SAMPLE_MIDPOINT


def raw_amplitude(samples, midpoint=SAMPLE_MIDPOINT):
    """Mean absolute deviation from ``midpoint``, normalised by it."""
    if samples is None:
        return 0.0
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.mean(np.abs(data - midpoint)) / midpoint)


def effective_amplitude(raw, sensitivity):
    """Scale by the user sensitivity and the fixed gain, clamped to ``[0, 1]``."""
    return float(min(max(raw * sensitivity * AMPLITUDE_GAIN, 0.0), 1.0))


def frequency_bins(values):
    if values is None:
        return np.zeros(0)
    return np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)


def bin_value(bins, index):
    if 0 <= index < len(bins):
        return float(bins[index])
    return 0.0


def modulated_size(base_size, jitter, amplitude):
    return base_size + jitter + amplitude * base_size


def modulated_speed(speed, amplitude):
    return speed * (1 + amplitude)


@dataclass
class Modulation:
    """Amplitude and frequency bins for a single frame."""

    amplitude: float = 0.0
    bins: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @classmethod
    def from_audio(cls, samples=None, bins=None, sensitivity=1.0, enabled=True):
        # No audio source means no modulation, never an error.
        if not enabled:
            return cls()
        amplitude = effective_amplitude(raw_amplitude(samples), sensitivity)
        return cls(amplitude=amplitude, bins=frequency_bins(bins))
