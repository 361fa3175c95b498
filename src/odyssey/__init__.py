"""Space Odyssey — wave-based arcade survival simulation engine."""

__version__ = "0.1.0"
