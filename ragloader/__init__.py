"""ragloader: turn uploaded text, audio, video and CSV files into vector-store records."""

__version__ = "0.1.0"
