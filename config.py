# Hitster Player Configuration File
#
# This file contains your personal settings and credentials.
# This file is tracked in git with placeholder values.
# Edit this file locally with your actual credentials - your changes won't be committed.
# Point HITSTER_CONFIG at another file to keep several setups side by side.
#
# IMPORTANT: Add your actual Spotify credentials below!

# Spotify API Credentials (get from https://developer.spotify.com/dashboard)
SPOTIPY_CLIENT_ID = 'YOUR_CLIENT_ID_HERE'
SPOTIPY_CLIENT_SECRET = 'YOUR_CLIENT_SECRET_HERE'
SPOTIPY_REDIRECT_URI = 'http://127.0.0.1:8888/callback'

# Name this machine shows up as in the Spotify device list
PLAYER_NAME = 'Hitster Player'

# librespot binary used for local playback (Raspotify ships one at /usr/bin/librespot)
LIBRESPOT_PATH = 'librespot'
