"""quant-optik: a quantum optics tutor in your terminal."""

__version__ = "0.3.0"
