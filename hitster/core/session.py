"""
Session controller for Hitster Player
Owns the login -> device selection -> scanning flow, the active playback
engine and the active scan loop
"""

import asyncio
import json
import os
from enum import Enum

from hitster.config.settings import (
    PLAYER_NAME,
    DEFAULT_VOLUME,
    DEVICE_CACHE_PATH,
    SCAN_COOLDOWN_MS
)
from hitster.core.errors import (
    HitsterError,
    AuthExpiredError,
    PremiumRequiredError,
    DeviceUnavailableError
)
from hitster.core.models import Device
from hitster.hardware.camera import CameraFrameSource
from hitster.playback.engine import PlaybackEngine
from hitster.playback.factory import PlayerFactory
from hitster.qr.loop import ScanLoop
from hitster.spotify.client import create_client, current_user, list_devices

LOCAL_DEVICE = Device(id='LOCAL_PLAYER', name='This Player', type='Computer', is_local=True)

MARKERS = {
    'success': '✓',
    'info': '→',
    'warning': '⚠',
    'error': '✗',
}


def print_notifier(message, level='info'):
    print(f"{MARKERS.get(level, '→')} {message}")


class Screen(Enum):
    LOGIN = 'login'
    DEVICE_SELECT = 'device_select'
    SCANNING = 'scanning'


class DeviceStore:
    """Remembers the last chosen external device between runs"""

    def __init__(self, path=DEVICE_CACHE_PATH):
        self.path = path

    def load(self):
        try:
            with open(self.path) as f:
                data = json.load(f)
            return Device(id=data['id'], name=data['name'], type=data.get('type', 'Unknown'))
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def save(self, device):
        with open(self.path, 'w') as f:
            json.dump({'id': device.id, 'name': device.name, 'type': device.type}, f)

    def clear(self):
        if os.path.exists(self.path):
            os.remove(self.path)


class SessionController:
    """
    Single owner of the session's mutable state

    At most one engine and one scan loop exist at a time: every switch
    stops the scan loop and destroys the engine before building new ones.
    """

    def __init__(self, credentials, notify=print_notifier, engine_factory=PlayerFactory.create,
                 scan_loop_factory=None, client_factory=create_client, device_store=None,
                 cooldown_ms=SCAN_COOLDOWN_MS, camera_index=None, allow_local=True,
                 verbose=False, debug_mode=False):
        self.credentials = credentials
        self.notify = notify
        self.engine_factory = engine_factory
        self.client_factory = client_factory
        self.device_store = device_store or DeviceStore()
        self.cooldown_ms = cooldown_ms
        self.camera_index = camera_index
        self.allow_local = allow_local
        self.verbose = verbose
        self.debug_mode = debug_mode
        self._scan_loop_factory = scan_loop_factory or self._default_scan_loop

        self.screen = Screen.LOGIN
        self.engine = None
        self.mode = None
        self.selected_device = None
        self.scan_loop = None
        self.devices = []
        self.user = None
        self.volume = DEFAULT_VOLUME
        self.is_year_revealed = False
        self._tasks = set()

    def _default_scan_loop(self, on_scan):
        return ScanLoop(
            CameraFrameSource(self.camera_index),
            on_scan,
            cooldown_ms=self.cooldown_ms,
            verbose=self.verbose,
            debug_mode=self.debug_mode
        )

    async def _token(self):
        return await asyncio.to_thread(self.credentials.get_token)

    # ------------------------------------------------------------------
    # Login and device selection

    async def start(self):
        """
        Resume the session from the cached token

        Returns:
            bool: True if the user is logged in and choosing a device
        """
        token = await self._token()
        if not token:
            self._show_login()
            return False

        try:
            self.user = await current_user(self.client_factory(token))
        except AuthExpiredError:
            await self._expire_session()
            return False
        except HitsterError as e:
            self.notify(str(e), 'error')
            self._show_login()
            return False

        name = (self.user or {}).get('display_name') or 'Spotify user'
        self.notify(f"Welcome, {name}!", 'success')
        await self.show_device_selection()
        return True

    def _show_login(self):
        self.screen = Screen.LOGIN
        self.notify("Log in with: python3 authenticate_spotify.py", 'info')

    async def show_device_selection(self):
        self.screen = Screen.DEVICE_SELECT
        return await self.refresh_devices()

    async def refresh_devices(self):
        """
        Reload the device list, restoring the saved or active device

        Returns:
            list[Device]: This player first (when enabled), then Spotify devices
        """
        token = await self._token()
        if not token:
            await self._expire_session()
            return []

        try:
            devices = await list_devices(self.client_factory(token))
        except AuthExpiredError:
            await self._expire_session()
            return []
        except HitsterError as e:
            self.notify(f"Failed to load devices: {e}", 'error')
            devices = []

        self.devices = ([LOCAL_DEVICE] if self.allow_local else []) + devices
        if not devices:
            self.notify("No external devices found - open Spotify on a device to see it here", 'info')

        if self.selected_device is None:
            saved = self.device_store.load()
            if saved is not None and self._find_device(saved.id):
                self.select_device(saved.id)

        if self.selected_device is None:
            active = next((d for d in devices if d.is_active), None)
            if active is not None:
                self.select_device(active.id)

        return self.devices

    def _find_device(self, device_id):
        return next((d for d in self.devices if d.id == device_id), None)

    def select_device(self, device_id):
        """
        Select a device for playback

        Returns:
            Device or None if the ID is not in the current list
        """
        device = self._find_device(device_id)
        if device is None:
            return None

        self.selected_device = device
        if not device.is_local:
            self.device_store.save(device)
        self.notify(f"Selected: {device.name}", 'info')
        return device

    # ------------------------------------------------------------------
    # Playback

    async def start_playback(self):
        """
        Build the engine for the selected device and start scanning

        Returns:
            bool: True once scanning
        """
        if self.selected_device is None:
            self.notify("Please select a playback option", 'warning')
            return False

        token = await self._token()
        if not token:
            await self._expire_session()
            return False

        await self._teardown()

        device = self.selected_device
        mode = 'local' if device.is_local else 'remote'
        engine = self.engine_factory(mode)
        self.engine = engine
        self.mode = mode

        try:
            if mode == 'local':
                await engine.initialize(
                    token=token,
                    get_token=self._token,
                    name=PLAYER_NAME,
                    volume=self.volume
                )
            else:
                await engine.initialize(token=token)
                engine.set_device(device.id, device.name)
        except HitsterError as e:
            await self._handle_error(e)
            if self.engine is engine:
                await self._destroy_engine()
            return False

        engine.on_track_end = lambda: self.notify("Track ended", 'info')
        engine.on_error = self._on_engine_error
        engine.on_state_change = self._on_state_change

        self.scan_loop = self._scan_loop_factory(self.handle_scan)
        try:
            await self.scan_loop.start()
        except (RuntimeError, OSError) as e:
            self.notify(f"Failed to start camera: {e}", 'error')
            self.scan_loop = None
            await self._destroy_engine()
            return False

        self.screen = Screen.SCANNING
        where = 'this player' if mode == 'local' else device.name
        self.notify(f"Playing on {where} - scanner ready!", 'success')
        return True

    async def handle_scan(self, event):
        """
        Play the track from an accepted scan

        Returns:
            TrackInfo or None
        """
        if self.engine is None or self.screen is not Screen.SCANNING:
            return None

        self.is_year_revealed = False
        self.notify("Loading track...", 'info')
        try:
            track = await self.engine.play(event.track_uri)
        except HitsterError as e:
            await self._handle_error(e)
            return None
        if track is None:
            return None  # engine destroyed mid-play

        self.notify("Now playing! Guess the year, then reveal.", 'success')
        return track

    async def toggle_playback(self):
        if self.engine is None:
            return None
        try:
            is_playing = await self.engine.toggle_playback()
        except HitsterError as e:
            await self._handle_error(e)
            return None
        self.notify("Resumed" if is_playing else "Paused", 'info')
        return is_playing

    async def set_volume(self, percent):
        self.volume = PlaybackEngine.clamp_volume(percent)
        if self.engine is None:
            return self.volume
        try:
            await self.engine.set_volume(self.volume)
        except HitsterError as e:
            await self._handle_error(e)
        return self.volume

    def reveal(self):
        """
        Reveal the current track's details (the answer to the round)

        Returns:
            TrackInfo or None
        """
        track = self.engine.current_track if self.engine is not None else None
        if track is None:
            self.notify("Nothing playing yet - scan a card first", 'warning')
            return None

        self.is_year_revealed = True
        year = track.year if track.year is not None else 'unknown year'
        self.notify(f"{track.name} - {track.artist_string} ({year})", 'success')
        return track

    async def change_device(self):
        """Stop scanning, drop the engine and go back to device selection"""
        await self._teardown()
        self.device_store.clear()
        self.selected_device = None

        if await self._token():
            await self.show_device_selection()
        else:
            self._show_login()

    async def stop(self):
        """End the session, releasing the camera and the engine"""
        await self._teardown()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Error handling and teardown

    async def _handle_error(self, error):
        if isinstance(error, AuthExpiredError):
            await self._expire_session()
        elif isinstance(error, PremiumRequiredError):
            self.notify(str(error), 'error')
            await self._fall_back_to_device_selection()
        elif isinstance(error, DeviceUnavailableError):
            self.notify(str(error), 'error')
            self.notify("Device unavailable - check Spotify is open", 'warning')
        else:
            self.notify(str(error), 'error')

    def _on_engine_error(self, error):
        if isinstance(error, (AuthExpiredError, PremiumRequiredError)):
            task = asyncio.ensure_future(self._handle_error(error))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            self.notify(str(error), 'error')

    def _on_state_change(self, state):
        if self.verbose:
            self.notify("Playing" if state['is_playing'] else "Paused", 'info')

    async def _fall_back_to_device_selection(self):
        was_local = self.mode == 'local'
        await self._teardown()
        self.selected_device = None
        if was_local:
            self.notify("Premium required for playback on this player. Select an external device.", 'warning')
        await self.show_device_selection()

    async def _expire_session(self):
        await self._teardown()
        self.credentials.clear()
        self.device_store.clear()
        self.selected_device = None
        self.user = None
        self.notify("Session expired. Please log in again.", 'warning')
        self._show_login()

    async def _teardown(self):
        # Scan loop first so no scan reaches an engine being destroyed
        if self.scan_loop is not None:
            scan_loop, self.scan_loop = self.scan_loop, None
            await scan_loop.stop()
        await self._destroy_engine()

    async def _destroy_engine(self):
        engine, self.engine = self.engine, None
        self.mode = None
        if engine is None:
            return
        try:
            engine.destroy()
        except Exception as e:
            print(f"⚠ Failed to release {engine.type} player: {e}")
