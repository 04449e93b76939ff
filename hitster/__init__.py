"""Hitster Player - scan QR song cards and play them on Spotify"""

__version__ = "1.0.0"
