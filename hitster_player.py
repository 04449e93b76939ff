#!/usr/bin/env python3
"""
Hitster Player - Spotify QR Song Card Player
Scans printed Hitster-style song cards with a camera and plays each track
on this machine or on any Spotify Connect device.

Version: 1.0
License: MIT
"""

import sys
import asyncio
import argparse

from hitster.config.settings import SCAN_COOLDOWN_MS
from hitster.core.app import HitsterPlayer


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Hitster Player - Spotify QR Song Card Player',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Log in once (caches the token in .spotify_cache):
  python3 authenticate_spotify.py

  # Play cards:
  python3 hitster_player.py

  # Use the second USB camera and only external devices:
  python3 hitster_player.py --camera 1 --no-local

  # Run with verbose debugging:
  python3 hitster_player.py --verbose --debug
        """
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output (cooldown messages, play/pause events)'
    )
    parser.add_argument(
        '--debug', '--debug-mode',
        action='store_true',
        dest='debug_mode',
        help='Debug mode (show every QR decode and decode failure)'
    )
    parser.add_argument(
        '--cooldown',
        type=int,
        default=SCAN_COOLDOWN_MS,
        help=f'Milliseconds between accepted scans (default: {SCAN_COOLDOWN_MS})'
    )
    parser.add_argument(
        '--camera',
        type=int,
        default=None,
        help='OpenCV camera index (default: picamera2, then probe /dev/video*)'
    )
    parser.add_argument(
        '--no-local',
        action='store_true',
        help='Hide the "This Player" option (no librespot on this machine)'
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if args.verbose:
        print("→ Verbose mode enabled")
    if args.debug_mode:
        print("→ Debug mode enabled - showing every QR detection")

    try:
        player = HitsterPlayer(
            verbose=args.verbose,
            debug_mode=args.debug_mode,
            cooldown_ms=args.cooldown,
            camera_index=args.camera,
            allow_local=not args.no_local
        )
        asyncio.run(player.run())
    except KeyboardInterrupt:
        print("\n\n⚠ Interrupted by user")
    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
