"""
PlaybackEngine - Base class for all playback implementations

Different engines handle playback differently:
- LocalPlayer: this machine becomes a Spotify Connect device (librespot)
- RemotePlayer: controls an existing Spotify Connect device by ID
Both require Spotify Premium.
"""

import abc
import asyncio

from hitster.core.models import EngineState


class PlaybackEngine(abc.ABC):
    """
    Common contract for playback engines

    Owners observe the engine through is_playing, current_track and three
    optional callbacks: on_track_end(), on_error(error) and
    on_state_change({'is_playing': bool}). Callbacks are queued on the
    event loop, never called from inside the engine method that caused
    them.
    """

    type = None

    def __init__(self):
        self._is_playing = False
        self._current_track = None
        self._state = EngineState.UNINITIALIZED
        self._loop = None
        self.on_track_end = None
        self.on_error = None
        self.on_state_change = None

    @property
    def is_playing(self):
        return self._is_playing

    @property
    def current_track(self):
        return self._current_track

    @property
    def state(self):
        return self._state

    @property
    def destroyed(self):
        """True once destroy() ran; in-flight calls must not touch state after this"""
        return self._state is EngineState.DESTROYED

    @abc.abstractmethod
    async def initialize(self, token=None, **options):
        """Initialize the engine; raises AuthError without a token"""

    @abc.abstractmethod
    async def play(self, track_uri, track_info=None):
        """
        Play a track

        Args:
            track_uri: Spotify track URI
            track_info: Optional pre-fetched TrackInfo

        Returns:
            TrackInfo
        """

    @abc.abstractmethod
    async def pause(self):
        """Pause playback; pausing while paused is not an error"""

    @abc.abstractmethod
    async def resume(self):
        """Resume playback; resuming while playing is not an error"""

    @abc.abstractmethod
    async def set_volume(self, percent):
        """Set volume, clamping to 0-100"""

    async def toggle_playback(self):
        """
        Toggle play/pause

        Returns:
            bool: New playing state
        """
        if self._is_playing:
            await self.pause()
        else:
            await self.resume()
        return self._is_playing

    def destroy(self):
        """Release resources; safe to call more than once"""
        self._is_playing = False
        self._current_track = None
        self._state = EngineState.DESTROYED

    @staticmethod
    def clamp_volume(percent):
        return max(0, min(100, int(round(percent))))

    def _set_playing(self, is_playing):
        changed = is_playing != self._is_playing
        self._is_playing = is_playing
        self._state = EngineState.PLAYING if is_playing else EngineState.PAUSED
        if changed:
            self._emit_state_change()

    def _bind_loop(self):
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    def _dispatch(self, callback, *args):
        if callback is None:
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                print(f"⚠ {self.type} player: dropped event, no event loop running")
                return
        loop.call_soon(callback, *args)

    def _emit_state_change(self):
        self._dispatch(self.on_state_change, {'is_playing': self._is_playing})

    def _emit_track_end(self):
        self._dispatch(self.on_track_end)

    def _emit_error(self, error):
        if not isinstance(error, Exception):
            error = Exception(str(error))
        self._dispatch(self.on_error, error)
