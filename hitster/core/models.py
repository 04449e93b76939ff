"""
Data types shared across the scanner, playback engines and session
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np


@dataclass(frozen=True)
class Frame:
    """A single camera frame as an RGBA pixel buffer of shape (height, width, 4)"""
    pixels: np.ndarray

    @property
    def height(self):
        return int(self.pixels.shape[0]) if self.pixels.ndim >= 2 else 0

    @property
    def width(self):
        return int(self.pixels.shape[1]) if self.pixels.ndim >= 2 else 0

    @property
    def is_empty(self):
        return self.width == 0 or self.height == 0


class DecodeStrategy(Enum):
    NORMAL = 'normal'
    INVERTED_BUILTIN = 'inverted_builtin'
    INVERTED_MANUAL = 'inverted_manual'


@dataclass(frozen=True)
class DecodeResult:
    payload: str
    strategy: DecodeStrategy


@dataclass(frozen=True)
class ScanEvent:
    track_uri: str
    timestamp: float  # milliseconds, from the gate's clock


@dataclass
class TrackInfo:
    """Metadata for one playable track"""
    id: str
    uri: str
    name: str
    artists: List[str] = field(default_factory=list)
    artist_string: str = ''
    album: str = ''
    album_art: Optional[str] = None
    album_art_small: Optional[str] = None
    year: Optional[int] = None
    duration_ms: int = 0
    preview_url: Optional[str] = None

    @classmethod
    def from_api(cls, track, year=None):
        """
        Build TrackInfo from a Spotify track object

        Args:
            track: Track dict as returned by the Web API (or a player state)
            year: Release year override; parsed from the album when omitted

        Returns:
            TrackInfo
        """
        album = track.get('album') or {}
        images = album.get('images') or []
        artists = [a.get('name', '') for a in track.get('artists') or []]
        first_image = images[0].get('url') if images else None
        small_image = images[2].get('url') if len(images) > 2 else first_image
        if year is None:
            year = extract_year(album.get('release_date'))

        return cls(
            id=track.get('id'),
            uri=track.get('uri'),
            name=track.get('name', 'Unknown Track'),
            artists=artists,
            artist_string=', '.join(artists),
            album=album.get('name', ''),
            album_art=first_image,
            album_art_small=small_image,
            year=year,
            duration_ms=track.get('duration_ms') or 0,
            preview_url=track.get('preview_url'),
        )

    @classmethod
    def unknown(cls, track_id):
        return cls(
            id=track_id,
            uri=f'spotify:track:{track_id}',
            name='Unknown Track',
            artists=['Unknown Artist'],
            artist_string='Unknown Artist',
            album='Unknown Album',
        )


def extract_year(release_date):
    """Return the year from a 'YYYY', 'YYYY-MM' or 'YYYY-MM-DD' release date"""
    if not release_date:
        return None
    try:
        return int(release_date[:4])
    except ValueError:
        return None


@dataclass(frozen=True)
class Device:
    """A Spotify Connect playback target"""
    id: str
    name: str
    type: str = 'Unknown'
    is_active: bool = False
    is_local: bool = False

    @classmethod
    def from_api(cls, device):
        return cls(
            id=device.get('id'),
            name=device.get('name', 'Unknown Device'),
            type=device.get('type', 'Unknown'),
            is_active=bool(device.get('is_active')),
        )


class EngineState(Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZING = 'initializing'
    READY = 'ready'
    PLAYING = 'playing'
    PAUSED = 'paused'
    ERROR = 'error'
    DESTROYED = 'destroyed'
