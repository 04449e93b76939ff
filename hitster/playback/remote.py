"""
RemotePlayer - Spotify Connect external device playback

Controls playback on existing Spotify Connect devices (phones, speakers,
Raspotify boxes). Every operation is a direct Web API request, optionally
scoped to the device chosen with set_device().
"""

from hitster.core.errors import AuthError, NotReadyError
from hitster.core.models import EngineState
from hitster.playback.engine import PlaybackEngine
from hitster.spotify.client import (
    call_spotify,
    create_client,
    fetch_track_info,
    list_devices,
    track_id_from_uri
)


class RemotePlayer(PlaybackEngine):
    type = 'remote'

    def __init__(self, client_factory=create_client):
        super().__init__()
        self._client_factory = client_factory
        self._sp = None
        self._device_id = None
        self._device_name = None

    @property
    def device_id(self):
        return self._device_id

    @property
    def device_name(self):
        return self._device_name

    async def initialize(self, token=None, **options):
        """
        Initialize the remote player

        Args:
            token: Spotify access token
        """
        if self._state is not EngineState.UNINITIALIZED:
            return
        if not token:
            raise AuthError('Access token required for remote player')

        self._bind_loop()
        self._sp = self._client_factory(token)
        self._state = EngineState.READY

    def _client(self):
        if self._sp is None:
            raise NotReadyError('Remote player not initialized')
        return self._sp

    def set_device(self, device_id, device_name=None):
        """
        Set the target device for playback

        Args:
            device_id: Spotify device ID
            device_name: Device name for display
        """
        self._device_id = device_id
        self._device_name = device_name

    async def get_devices(self):
        """Return the available playback devices"""
        return await list_devices(self._client())

    async def transfer_playback(self, device_id, start_playing=False):
        """
        Transfer playback to a device

        Args:
            device_id: Device ID to transfer to
            start_playing: Whether to start playing immediately
        """
        await call_spotify(self._client().transfer_playback, device_id, force_play=start_playing)
        self._device_id = device_id

    async def play(self, track_uri, track_info=None):
        """
        Start a track on the selected device

        Returns:
            TrackInfo, or None if the player was destroyed mid-call
        """
        sp = self._client()
        await call_spotify(sp.start_playback, device_id=self._device_id, uris=[track_uri])
        if self.destroyed:
            return None
        self._set_playing(True)

        # Always fetch fresh; the hint may be stale
        info = await fetch_track_info(sp, track_id_from_uri(track_uri))
        if self.destroyed:
            return None
        self._current_track = info
        return info

    async def pause(self):
        if self._state is EngineState.PAUSED:
            return
        await call_spotify(self._client().pause_playback, device_id=self._device_id)
        if not self.destroyed:
            self._set_playing(False)

    async def resume(self):
        if self._state is EngineState.PLAYING:
            return
        await call_spotify(self._client().start_playback, device_id=self._device_id)
        if not self.destroyed:
            self._set_playing(True)

    async def set_volume(self, percent):
        volume = self.clamp_volume(percent)
        await call_spotify(self._client().volume, volume, device_id=self._device_id)

    async def get_playback_state(self):
        """
        Get current playback state

        Returns:
            dict or None: Playback state, None if nothing is playing
        """
        return await call_spotify(self._client().current_playback)

    async def get_user_profile(self):
        return await call_spotify(self._client().current_user)

    def destroy(self):
        self._sp = None
        self._device_id = None
        self._device_name = None
        super().destroy()
