"""moleguard - safety and cleanup decision engine for macOS maintenance."""

__version__ = "0.1.0"
