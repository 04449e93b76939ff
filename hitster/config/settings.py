"""
Configuration settings for Hitster Player
Loads user-specific settings from config.py
"""

import os
import importlib.util
import pathlib

# Try to import optional libraries and set availability flags
try:
    from picamera2 import Picamera2
    PICAMERA2_AVAILABLE = True
except ImportError:
    PICAMERA2_AVAILABLE = False

# Import configuration from config.py (user-specific settings)
# Note: This imports from the root-level config.py, not this config module
root_dir = pathlib.Path(__file__).parent.parent.parent
config_file = pathlib.Path(os.environ.get('HITSTER_CONFIG', root_dir / 'config.py'))

PLACEHOLDER_CLIENT_ID = 'YOUR_CLIENT_ID_HERE'
PLACEHOLDER_CLIENT_SECRET = 'YOUR_CLIENT_SECRET_HERE'

user_config = None
if config_file.exists():
    spec = importlib.util.spec_from_file_location("user_config", config_file)
    user_config = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(user_config)
else:
    print(f"⚠ {config_file} not found - using placeholder settings")
    print("  Copy config.py from the repository and add your Spotify credentials.")

SPOTIPY_CLIENT_ID = getattr(user_config, 'SPOTIPY_CLIENT_ID', PLACEHOLDER_CLIENT_ID)
SPOTIPY_CLIENT_SECRET = getattr(user_config, 'SPOTIPY_CLIENT_SECRET', PLACEHOLDER_CLIENT_SECRET)
SPOTIPY_REDIRECT_URI = getattr(user_config, 'SPOTIPY_REDIRECT_URI', 'http://127.0.0.1:8888/callback')
PLAYER_NAME = getattr(user_config, 'PLAYER_NAME', 'Hitster Player')
LIBRESPOT_PATH = getattr(user_config, 'LIBRESPOT_PATH', 'librespot')

# Spotify API scopes
SCOPE = ','.join([
    'user-modify-playback-state',
    'user-read-playback-state',
    'user-read-currently-playing',
    'streaming',
    'user-read-email',
    'user-read-private',
])

# Token and device caches (relative to the working directory, like .spotify_cache)
TOKEN_CACHE_PATH = '.spotify_cache'
DEVICE_CACHE_PATH = '.hitster_device'

# Scanner settings
SCAN_COOLDOWN_MS = 3000  # Milliseconds between accepted scans
FAST_SCAN_INTERVAL = 0.1  # Seconds between normal/inverted pyzbar attempts
INVERTED_SCAN_INTERVAL = 0.3  # Seconds between manual-inversion fallback attempts

# Playback settings
DEFAULT_VOLUME = 50  # Initial volume (0-100)
VOLUME_STEP = 5  # Volume change per '+'/'-' key press
LOCAL_READY_TIMEOUT = 15  # Seconds to wait for librespot to show up as a device
LOCAL_READY_GRACE = 5  # Extra seconds before giving up on an endpoint that never reports
LOCAL_POLL_INTERVAL = 1.0  # Seconds between local playback state polls

# Camera settings
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
