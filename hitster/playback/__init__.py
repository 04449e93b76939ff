"""Playback engines for Hitster Player"""

from .engine import PlaybackEngine
from .local import LocalPlayer, LibrespotEndpoint
from .remote import RemotePlayer
from .factory import PlayerFactory

__all__ = ['PlaybackEngine', 'LocalPlayer', 'LibrespotEndpoint', 'RemotePlayer', 'PlayerFactory']
