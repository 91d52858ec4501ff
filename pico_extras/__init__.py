"""Audio buffer pools, sample conversion and PWM encoding, scan-out video descriptions,
row decompression and ring-oscillator code helpers."""

__version__ = "0.1.0"