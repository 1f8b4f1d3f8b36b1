"""Knowledge server: framework pattern advice with self-updating violation rules."""

__version__ = "1.0.0"
