"""
Test doubles shared by the test modules
"""

import asyncio
import threading

import numpy as np
import qrcode
from spotipy.exceptions import SpotifyException

from hitster.core.models import Frame, TrackInfo
from hitster.playback.engine import PlaybackEngine

TRACK_ID = '4uLU6hMCjMI75M1A2tKUQC'
TRACK_URI = f'spotify:track:{TRACK_ID}'
OTHER_TRACK_URI = 'spotify:track:7ouMYWpwJ422jRcDASZB7P'


def api_track(track_id=TRACK_ID, release_date='1987-07-21'):
    return {
        'id': track_id,
        'uri': f'spotify:track:{track_id}',
        'name': 'Never Gonna Give You Up',
        'artists': [{'name': 'Rick Astley'}],
        'album': {
            'name': 'Whenever You Need Somebody',
            'release_date': release_date,
            'images': [{'url': 'large.jpg'}, {'url': 'medium.jpg'}, {'url': 'small.jpg'}],
        },
        'duration_ms': 213573,
        'preview_url': None,
    }


def spotify_error(status, body='error body'):
    return SpotifyException(status, -1, body)


class FakeSpotify:
    """Records spotipy calls; fail maps method name -> exception to raise"""

    def __init__(self, token='token', devices=None, fail=None, user=None, playback=None):
        self.token = token
        self.calls = []
        self.fail = fail or {}
        self.device_list = devices or []
        self.user = user or {'display_name': 'Tester'}
        self.playback = playback

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.fail:
            raise self.fail[name]

    def start_playback(self, device_id=None, uris=None, **kwargs):
        self._record('start_playback', device_id=device_id, uris=uris)

    def pause_playback(self, device_id=None):
        self._record('pause_playback', device_id=device_id)

    def volume(self, volume_percent, device_id=None):
        self._record('volume', volume_percent, device_id=device_id)

    def transfer_playback(self, device_id, force_play=True):
        self._record('transfer_playback', device_id, force_play=force_play)

    def track(self, track_id):
        self._record('track', track_id)
        return api_track(track_id)

    def devices(self):
        self._record('devices')
        return {'devices': self.device_list}

    def current_user(self):
        self._record('current_user')
        return self.user

    def current_playback(self):
        self._record('current_playback')
        return self.playback


class BlockingSpotify(FakeSpotify):
    """start_playback holds its worker thread until release is set"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def start_playback(self, device_id=None, uris=None, **kwargs):
        super().start_playback(device_id=device_id, uris=uris)
        self.entered.set()
        self.release.wait(5)


class ClientFactory:
    """Hands out one FakeSpotify and remembers the tokens it was asked for"""

    def __init__(self, client=None):
        self.client = client or FakeSpotify()
        self.tokens = []

    def __call__(self, token):
        self.tokens.append(token)
        self.client.token = token
        return self.client


class FakeFrameSource:
    def __init__(self, frame=None, ready=True):
        self.frame = frame
        self._ready = ready
        self.started = 0
        self.stopped = 0
        self.timers = []
        self.timers_done_at_stop = None

    @property
    def ready(self):
        return self._ready

    def latest(self):
        return self.frame

    async def start(self):
        self.started += 1

    async def stop(self):
        self.timers_done_at_stop = [t.done() for t in self.timers]
        self.stopped += 1


class FakeEndpoint:
    """Stands in for LibrespotEndpoint; behavior picks what connect() triggers"""

    def __init__(self, name, volume, get_token, client_factory, ready_timeout=None,
                 behavior='ready'):
        self.name = name
        self.volume = volume
        self.ready_timeout = ready_timeout
        self.get_token = get_token
        self.client_factory = client_factory
        self.behavior = behavior
        self.listeners = {}
        self.calls = []
        self.disconnected = 0

    def add_listener(self, event, callback):
        self.listeners.setdefault(event, []).append(callback)

    def emit(self, event, payload=None):
        for callback in self.listeners.get(event, []):
            callback(payload)

    async def connect(self):
        loop = asyncio.get_running_loop()
        if self.behavior == 'ready':
            loop.call_soon(self.emit, 'ready', {'device_id': 'local-device'})
        elif self.behavior == 'account_error':
            loop.call_soon(self.emit, 'account_error', {'message': 'premium only'})
        elif self.behavior == 'initialization_error':
            loop.call_soon(self.emit, 'initialization_error', {'message': 'no audio backend'})
        elif self.behavior == 'refuse':
            return False
        # 'silent': connected but never reports back
        return True

    async def pause(self):
        self.calls.append('pause')

    async def resume(self):
        self.calls.append('resume')

    async def set_volume(self, percent):
        self.calls.append(('set_volume', percent))

    def disconnect(self):
        self.disconnected += 1


class EndpointFactory:
    def __init__(self, behavior='ready'):
        self.behavior = behavior
        self.created = []

    def __call__(self, **kwargs):
        endpoint = FakeEndpoint(behavior=self.behavior, **kwargs)
        self.created.append(endpoint)
        return endpoint


class FakeEngine(PlaybackEngine):
    def __init__(self, mode, events, init_error=None, play_error=None):
        super().__init__()
        self.type = mode
        self.events = events
        self.init_error = init_error
        self.play_error = play_error
        self.init_options = None
        self.device = None
        self.volume = None

    async def initialize(self, token=None, **options):
        self.events.append(('init', self.type))
        self.init_options = dict(options, token=token)
        if self.init_error is not None:
            raise self.init_error

    def set_device(self, device_id, device_name=None):
        self.device = (device_id, device_name)

    async def play(self, track_uri, track_info=None):
        self.events.append(('play', track_uri))
        if self.play_error is not None:
            raise self.play_error
        self._current_track = TrackInfo.from_api(api_track(track_uri.split(':')[2]))
        self._set_playing(True)
        return self._current_track

    async def pause(self):
        self._set_playing(False)

    async def resume(self):
        self._set_playing(True)

    async def set_volume(self, percent):
        self.volume = self.clamp_volume(percent)

    def destroy(self):
        self.events.append(('destroy', self.type))
        super().destroy()


class FakeScanLoop:
    def __init__(self, on_scan, events, fail=None):
        self.on_scan = on_scan
        self.events = events
        self.fail = fail

    async def start(self):
        self.events.append('scan_start')
        if self.fail is not None:
            raise self.fail

    async def stop(self):
        self.events.append('scan_stop')


class FakeCredentials:
    def __init__(self, token='token'):
        self.token = token
        self.cleared = 0

    def get_token(self):
        return self.token

    def clear(self):
        self.token = None
        self.cleared += 1


def render_qr(text, inverted=False, scale=8):
    """Render text as an RGBA QR code frame (dark on light unless inverted)"""
    qr = qrcode.QRCode(border=4)
    qr.add_data(text)
    qr.make(fit=True)
    modules = np.array(qr.get_matrix(), dtype=bool)
    gray = np.where(modules, 0, 255).astype(np.uint8)
    if inverted:
        gray = 255 - gray
    gray = np.kron(gray, np.ones((scale, scale), dtype=np.uint8))
    alpha = np.full_like(gray, 255)
    return Frame(np.dstack([gray, gray, gray, alpha]))
