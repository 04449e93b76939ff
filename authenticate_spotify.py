#!/usr/bin/env python3
"""
Spotify Authentication Script for Hitster Player
Run this script once to authenticate with Spotify and cache your token.
After authentication, hitster_player.py will use the cached token automatically.
"""

import os
import sys
from urllib.parse import urlparse, parse_qs

import spotipy

from hitster.config.settings import SPOTIPY_REDIRECT_URI
from hitster.spotify.auth import CredentialStore


def extract_code(callback_url):
    """Return the authorization code from a pasted callback URL, or None"""
    params = parse_qs(urlparse(callback_url).query)
    codes = params.get('code')
    return codes[0] if codes else None


def main():
    print("\n" + "="*60)
    print("  HITSTER PLAYER - Spotify Authentication")
    print("="*60)
    print()

    store = CredentialStore()
    if not store.configured:
        print("❌ ERROR: Spotify API credentials not configured!")
        print("\nPlease edit config.py and add your credentials:")
        print("1. Go to: https://developer.spotify.com/dashboard")
        print("2. Create an app and get your Client ID and Secret")
        print("3. Add this redirect URI to the app: " + SPOTIPY_REDIRECT_URI)
        sys.exit(1)

    if os.path.exists(store.cache_path):
        print("⚠ Found existing authentication token.")
        response = input("   Do you want to re-authenticate? (y/N): ").strip().lower()
        if response != 'y':
            print("\n✓ Using existing token. No re-authentication needed.")
            return

    auth_manager = store.auth_manager
    print("📋 AUTHENTICATION STEPS:")
    print("1. Open the URL below in a web browser (on your computer or phone)")
    print("2. Log in to Spotify and click 'Agree'")
    print("3. You'll see an error page (this is normal)")
    print("4. Copy the ENTIRE URL from the browser address bar")
    print(f"   (It should start with: {SPOTIPY_REDIRECT_URI}?code=...)")
    print()
    print(f"🔗 Authorization URL:\n\n{auth_manager.get_authorize_url()}\n")

    callback_url = input("Paste the callback URL here: ").strip()
    code = extract_code(callback_url)
    if not code:
        print("\n❌ Invalid callback URL. No authorization code found.")
        print(f"   Expected format: {SPOTIPY_REDIRECT_URI}?code=...")
        sys.exit(1)

    print("\n⏳ Exchanging authorization code for token...")
    token = auth_manager.get_access_token(code, as_dict=False)
    if not token:
        print("❌ Failed to get access token.")
        sys.exit(1)

    print(f"✓ Authentication successful! Token saved to: {store.cache_path}")
    try:
        user = spotipy.Spotify(auth=token).current_user()
        print(f"✓ Verified: Logged in as {user.get('display_name', 'Unknown')}")
    except spotipy.SpotifyException as e:
        print(f"⚠ Connection test failed: {e}")
    print("\n🎉 You're all set! Run: python3 hitster_player.py")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n⚠ Authentication cancelled by user.")
        sys.exit(1)
