"""
Spotify credential store for Hitster Player
Provides the cached OAuth access token, refreshing it when it expires
"""

import os

from spotipy.oauth2 import SpotifyOAuth

from hitster.config.settings import (
    SPOTIPY_CLIENT_ID,
    SPOTIPY_CLIENT_SECRET,
    SPOTIPY_REDIRECT_URI,
    PLACEHOLDER_CLIENT_ID,
    SCOPE,
    TOKEN_CACHE_PATH
)


class CredentialStore:
    """Process-wide access token holder backed by spotipy's token cache"""

    def __init__(self, cache_path=TOKEN_CACHE_PATH, auth_manager=None):
        self.cache_path = cache_path
        self._auth_manager = auth_manager

    @property
    def configured(self):
        return self._auth_manager is not None or SPOTIPY_CLIENT_ID != PLACEHOLDER_CLIENT_ID

    @property
    def auth_manager(self):
        if self._auth_manager is None:
            self._auth_manager = SpotifyOAuth(
                client_id=SPOTIPY_CLIENT_ID,
                client_secret=SPOTIPY_CLIENT_SECRET,
                redirect_uri=SPOTIPY_REDIRECT_URI,
                scope=SCOPE,
                cache_path=self.cache_path,
                open_browser=False  # Disable browser opening for headless operation
            )
        return self._auth_manager

    def get_token(self):
        """
        Get a usable access token

        Returns:
            str or None: Access token, or None when the user must log in
        """
        if not self.configured:
            print("\n❌ ERROR: Spotify API credentials not configured!")
            print("   Edit config.py and replace YOUR_CLIENT_ID_HERE and YOUR_CLIENT_SECRET_HERE")
            return None

        token_info = self.auth_manager.get_cached_token()
        if not token_info:
            return None

        if self.auth_manager.is_token_expired(token_info):
            print("⚠ Cached token expired. Refreshing...")
            try:
                token_info = self.auth_manager.refresh_access_token(token_info['refresh_token'])
            except Exception as e:
                print(f"✗ Failed to refresh token: {e}")
                return None
            if not token_info:
                return None
            print("✓ Token refreshed successfully")

        return token_info['access_token']

    def clear(self):
        """Forget the cached token so the next start asks for a new login"""
        if os.path.exists(self.cache_path):
            os.remove(self.cache_path)
