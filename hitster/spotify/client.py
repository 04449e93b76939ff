"""
Spotify Client module for Hitster Player
Builds spotipy clients and translates Web API failures into player errors
"""

import asyncio
import functools

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from hitster.core.errors import (
    AuthExpiredError,
    PremiumRequiredError,
    DeviceUnavailableError,
    PlaybackError
)
from hitster.core.models import Device, TrackInfo

NO_DEVICE_MESSAGE = 'Device unavailable: no active Spotify device found. Open Spotify on a device first.'


def create_client(token):
    """
    Create a Spotify client for an access token

    Retries are disabled; callers decide whether to try again.
    """
    return spotipy.Spotify(auth=token, requests_timeout=10, retries=0, status_retries=0)


def translate_error(error, not_found_message=NO_DEVICE_MESSAGE):
    """
    Map a SpotifyException to the player error taxonomy

    Args:
        error: SpotifyException raised by spotipy
        not_found_message: Message for 404 responses

    Returns:
        HitsterError subclass instance
    """
    status = getattr(error, 'http_status', None)
    if status == 401:
        return AuthExpiredError('Token expired. Please log in again.')
    if status == 403:
        return PremiumRequiredError('Spotify Premium required for playback control.')
    if status == 404:
        return DeviceUnavailableError(not_found_message)
    body = getattr(error, 'msg', None) or str(error)
    return PlaybackError(f'Playback failed: {body}')


async def call_spotify(method, *args, not_found_message=NO_DEVICE_MESSAGE, **kwargs):
    """
    Run a blocking spotipy call in a worker thread

    Raises:
        AuthExpiredError, PremiumRequiredError, DeviceUnavailableError, PlaybackError
    """
    try:
        return await asyncio.to_thread(functools.partial(method, *args, **kwargs))
    except SpotifyException as e:
        raise translate_error(e, not_found_message) from e
    except requests.exceptions.RequestException as e:
        raise PlaybackError(f'Playback failed: {e}') from e


def track_id_from_uri(track_uri):
    return track_uri.split(':')[2]


async def fetch_track_info(sp, track_id):
    """
    Fetch full track metadata, including release year

    Args:
        sp: spotipy.Spotify client
        track_id: Spotify track ID

    Returns:
        TrackInfo
    """
    track = await call_spotify(sp.track, track_id, not_found_message=f'Track not found: {track_id}')
    if not track:
        raise PlaybackError('Failed to get track info')
    return TrackInfo.from_api(track)


async def list_devices(sp):
    """Return the user's available Spotify Connect devices"""
    data = await call_spotify(sp.devices)
    return [Device.from_api(d) for d in (data or {}).get('devices', [])]


async def current_user(sp):
    return await call_spotify(sp.current_user)
