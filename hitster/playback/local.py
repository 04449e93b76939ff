"""
LocalPlayer - full track playback on this machine

Starts librespot so this machine registers itself as a Spotify Connect
device, then drives it through the Web API. Requires Spotify Premium.
"""

import asyncio
import inspect
from collections import defaultdict

from hitster.config.settings import (
    PLAYER_NAME,
    DEFAULT_VOLUME,
    LIBRESPOT_PATH,
    LOCAL_READY_TIMEOUT,
    LOCAL_READY_GRACE,
    LOCAL_POLL_INTERVAL
)
from hitster.core.errors import (
    HitsterError,
    AuthError,
    AuthExpiredError,
    PremiumRequiredError,
    NotReadyError,
    PlaybackError
)
from hitster.core.models import EngineState, TrackInfo
from hitster.playback.engine import PlaybackEngine
from hitster.spotify.client import (
    call_spotify,
    create_client,
    fetch_track_info,
    list_devices,
    track_id_from_uri
)

LOCAL_GONE_MESSAGE = 'Device unavailable: the local player is no longer registered with Spotify.'


class LibrespotEndpoint:
    """
    librespot process registered as a Spotify Connect device

    Emits the events LocalPlayer listens for: 'ready' ({'device_id'}),
    'not_ready', 'player_state_changed' (state dict or None),
    'initialization_error', 'authentication_error', 'account_error' and
    'playback_error' ({'message'}).
    """

    def __init__(self, name, volume, get_token, client_factory=create_client,
                 binary=LIBRESPOT_PATH, poll_interval=LOCAL_POLL_INTERVAL,
                 ready_timeout=LOCAL_READY_TIMEOUT):
        self.name = name
        self.volume = volume
        self.binary = binary
        self.poll_interval = poll_interval
        self.ready_timeout = ready_timeout
        self.device_id = None
        self._get_token = get_token
        self._client_factory = client_factory
        self._listeners = defaultdict(list)
        self._process = None
        self._task = None
        self._history = []
        self._last_state = None
        self._last_error = None

    def add_listener(self, event, callback):
        self._listeners[event].append(callback)

    def _emit(self, event, payload=None):
        for callback in self._listeners[event]:
            callback(payload)

    def _emit_api_error(self, error):
        if isinstance(error, AuthExpiredError):
            self._emit('authentication_error', {'message': str(error)})
        elif isinstance(error, PremiumRequiredError):
            self._emit('account_error', {'message': str(error)})
        elif str(error) != self._last_error:
            self._emit('playback_error', {'message': str(error)})
        self._last_error = str(error)

    async def _client(self):
        return self._client_factory(await self._get_token())

    async def connect(self):
        """
        Launch librespot and start watching for it in the device list

        Returns:
            bool: False if the process could not be started
        """
        token = await self._get_token()
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.binary,
                '--name', self.name,
                '--access-token', token,
                '--initial-volume', str(self.volume),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            self._emit('initialization_error', {'message': f'could not start {self.binary}: {e}'})
            return False

        self._task = asyncio.create_task(self._watch())
        return True

    def _exited(self):
        return self._process is not None and self._process.returncode is not None

    async def _watch(self):
        try:
            if await self._wait_until_registered():
                await self._follow_playback()
        except Exception as e:
            # Before ready the player is still waiting on an event; never leave it hanging
            event = 'initialization_error' if self.device_id is None else 'playback_error'
            self._emit(event, {'message': f'local player watcher failed: {e}'})

    async def _wait_until_registered(self):
        """Poll the device list until this endpoint's name shows up"""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.ready_timeout

        while self.device_id is None:
            if self._exited():
                self._emit('initialization_error',
                           {'message': f'{self.binary} exited with code {self._process.returncode}'})
                return False
            if loop.time() > deadline:
                self._emit('initialization_error',
                           {'message': f'"{self.name}" did not appear in the Spotify device list'})
                return False
            try:
                devices = await list_devices(await self._client())
            except HitsterError as e:
                self._emit_api_error(e)
                if isinstance(e, (AuthExpiredError, PremiumRequiredError)):
                    return False
                devices = []
            for device in devices:
                if device.name == self.name:
                    self.device_id = device.id
                    self._emit('ready', {'device_id': device.id})
                    break
            else:
                await asyncio.sleep(self.poll_interval)
        return True

    async def _follow_playback(self):
        """Turn playback polls into player_state_changed events until librespot exits"""
        while not self._exited():
            await asyncio.sleep(self.poll_interval)
            try:
                playback = await call_spotify((await self._client()).current_playback)
            except HitsterError as e:
                self._emit_api_error(e)
                if isinstance(e, AuthExpiredError):
                    return
                continue
            self._last_error = None
            state = self._player_state(playback)
            if state != self._last_state:
                self._last_state = state
                self._emit('player_state_changed', state)

        self._emit('not_ready', {'device_id': self.device_id})

    def _player_state(self, playback):
        """Reduce a Web API playback object to this device's player state"""
        if not playback or (playback.get('device') or {}).get('id') != self.device_id:
            return None
        track = playback.get('item')
        position = playback.get('progress_ms') or 0
        paused = not playback.get('is_playing')
        if track and position > 0 and track.get('uri') not in self._history:
            self._history.append(track.get('uri'))
        return {
            'paused': paused,
            'position': position,
            'track': track,
            'previous_tracks': list(self._history),
        }

    def _require_device(self):
        if self.device_id is None:
            raise NotReadyError('Local player not ready')

    async def pause(self):
        self._require_device()
        await call_spotify((await self._client()).pause_playback, device_id=self.device_id,
                           not_found_message=LOCAL_GONE_MESSAGE)

    async def resume(self):
        self._require_device()
        await call_spotify((await self._client()).start_playback, device_id=self.device_id,
                           not_found_message=LOCAL_GONE_MESSAGE)

    async def set_volume(self, percent):
        self._require_device()
        self.volume = percent
        await call_spotify((await self._client()).volume, percent, device_id=self.device_id,
                           not_found_message=LOCAL_GONE_MESSAGE)

    def disconnect(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if self._process is not None and self._process.returncode is None:
            self._process.terminate()
        self._process = None
        self.device_id = None


class LocalPlayer(PlaybackEngine):
    type = 'local'

    def __init__(self, endpoint_factory=LibrespotEndpoint, client_factory=create_client):
        super().__init__()
        self._endpoint_factory = endpoint_factory
        self._client_factory = client_factory
        self._endpoint = None
        self._token = None
        self._get_token_callback = None
        self._device_id = None
        self._ready = False
        self._volume = DEFAULT_VOLUME

    @property
    def device_id(self):
        return self._device_id

    @property
    def ready(self):
        return self._ready

    async def initialize(self, token=None, get_token=None, name=PLAYER_NAME,
                         volume=DEFAULT_VOLUME, ready_timeout=LOCAL_READY_TIMEOUT, **options):
        """
        Start the local Spotify Connect endpoint and wait until it is ready

        Args:
            token: Spotify access token
            get_token: Optional callback (sync or async) returning a fresh token
            name: Device name shown in Spotify
            volume: Initial volume (0-100)
            ready_timeout: Seconds the endpoint has to register itself

        Raises:
            AuthError: No token supplied
            PremiumRequiredError: Account cannot use Spotify Connect playback
            AuthExpiredError: Token rejected while registering
            PlaybackError: Endpoint failed to start or never became ready
        """
        if self._state is not EngineState.UNINITIALIZED:
            return
        if not token:
            raise AuthError('Access token required for local player')

        self._bind_loop()
        self._state = EngineState.INITIALIZING
        self._token = token
        self._get_token_callback = get_token
        self._volume = self.clamp_volume(volume)

        ready = self._loop.create_future()

        def fail(error):
            if ready.done():
                return False
            ready.set_exception(error)
            return True

        def on_ready(payload):
            self._device_id = payload['device_id']
            self._ready = True
            print(f"✓ Local player ready, device ID: {self._device_id}")
            if not ready.done():
                ready.set_result(None)

        def on_not_ready(payload):
            print("⚠ Local player went offline")
            self._ready = False

        def on_authentication_error(payload):
            error = AuthExpiredError('Authentication failed. Please log in again.')
            if not fail(error):
                self._emit_error(error)

        def on_account_error(payload):
            error = PremiumRequiredError('Spotify Premium required for local playback.')
            if not fail(error):
                self._emit_error(error)

        endpoint = self._endpoint_factory(
            name=name,
            volume=self._volume,
            get_token=self._fresh_token,
            client_factory=self._client_factory,
            ready_timeout=ready_timeout
        )
        endpoint.add_listener('ready', on_ready)
        endpoint.add_listener('not_ready', on_not_ready)
        endpoint.add_listener('initialization_error', lambda payload: fail(
            PlaybackError(f"Local player initialization failed: {payload['message']}")))
        endpoint.add_listener('authentication_error', on_authentication_error)
        endpoint.add_listener('account_error', on_account_error)
        endpoint.add_listener('playback_error', lambda payload: self._emit_error(
            PlaybackError(f"Playback error: {payload['message']}")))
        endpoint.add_listener('player_state_changed', self._on_player_state)
        self._endpoint = endpoint

        try:
            if not await endpoint.connect():
                fail(PlaybackError('Failed to connect to Spotify'))
            # The endpoint reports its own timeout; this only catches one that never reports
            await asyncio.wait_for(ready, ready_timeout + LOCAL_READY_GRACE)
        except asyncio.TimeoutError:
            self._state = EngineState.ERROR
            endpoint.disconnect()
            self._endpoint = None
            raise PlaybackError(
                f'Local player initialization failed: not ready after {ready_timeout}s'
            ) from None
        except Exception:
            self._state = EngineState.ERROR
            endpoint.disconnect()
            self._endpoint = None
            raise

        self._state = EngineState.READY

    async def _fresh_token(self):
        if self._get_token_callback is not None:
            try:
                fresh = self._get_token_callback()
                if inspect.isawaitable(fresh):
                    fresh = await fresh
                if fresh:
                    self._token = fresh
            except Exception as e:
                print(f"⚠ Failed to refresh token: {e}")
        return self._token

    def _require_ready(self):
        if not self._ready or not self._device_id or self._endpoint is None:
            raise NotReadyError('Local player not ready')

    async def play(self, track_uri, track_info=None):
        """
        Start a track on this player

        Returns:
            TrackInfo, or None if the player was destroyed mid-call
        """
        self._require_ready()
        device_id = self._device_id

        token = await self._fresh_token()
        if self.destroyed:
            return None
        sp = self._client_factory(token)
        await call_spotify(sp.start_playback, device_id=device_id, uris=[track_uri],
                           not_found_message=LOCAL_GONE_MESSAGE)
        if self.destroyed:
            return None
        self._set_playing(True)

        # Player state events carry no reliable release year, so fetch it
        info = await self._fetch_track_info(sp, track_uri, track_info)
        if self.destroyed:
            return None
        self._current_track = info
        return info

    async def _fetch_track_info(self, sp, track_uri, hint):
        track_id = track_id_from_uri(track_uri)
        try:
            return await fetch_track_info(sp, track_id)
        except HitsterError as e:
            print(f"⚠ Failed to fetch track info: {e}")
        if hint is not None:
            return hint
        if self._current_track is not None and self._current_track.uri == track_uri:
            return self._current_track
        return TrackInfo.unknown(track_id)

    async def pause(self):
        self._require_ready()
        if self._state is EngineState.PAUSED:
            return
        await self._endpoint.pause()
        if not self.destroyed:
            self._set_playing(False)

    async def resume(self):
        self._require_ready()
        if self._state is EngineState.PLAYING:
            return
        await self._endpoint.resume()
        if not self.destroyed:
            self._set_playing(True)

    async def set_volume(self, percent):
        self._volume = self.clamp_volume(percent)
        self._require_ready()
        await self._endpoint.set_volume(self._volume)

    def _on_player_state(self, state):
        """
        Apply a player state event from the endpoint

        Track end is inferred, not reported: paused at position 0 with
        something already in the playback history. A user pausing right at
        the start of a track after earlier plays looks the same, so this is
        approximate.
        """
        if not state or self._state is EngineState.DESTROYED:
            return

        track = state.get('track')
        if track:
            year = None
            if self._current_track is not None and self._current_track.uri == track.get('uri'):
                year = self._current_track.year
            self._current_track = TrackInfo.from_api(track, year=year)

        self._set_playing(not state.get('paused'))

        if state.get('paused') and state.get('position') == 0 and state.get('previous_tracks'):
            self._emit_track_end()

    def destroy(self):
        if self._endpoint is not None:
            self._endpoint.disconnect()
            self._endpoint = None
        self._device_id = None
        self._ready = False
        super().destroy()
