"""
Core Hitster Player application class
Terminal front end: shows the session's screens and maps keyboard commands
to session operations
"""

import asyncio

from hitster.config.settings import SCAN_COOLDOWN_MS, VOLUME_STEP
from hitster.core.session import SessionController, Screen
from hitster.playback.factory import PlayerFactory
from hitster.spotify.auth import CredentialStore


class HitsterPlayer:
    """Main application class for QR card scanning and playback"""

    def __init__(self, verbose=False, debug_mode=False, cooldown_ms=SCAN_COOLDOWN_MS,
                 camera_index=None, allow_local=True, session=None):
        print("\n" + "="*60)
        print("  HITSTER PLAYER - Initialization")
        print("="*60)

        self.verbose = verbose
        self.session = session or SessionController(
            CredentialStore(),
            cooldown_ms=cooldown_ms,
            camera_index=camera_index,
            allow_local=allow_local,
            verbose=verbose,
            debug_mode=debug_mode
        )

    def show_devices(self):
        print("\n📱 PLAYBACK OPTIONS:")
        for number, device in enumerate(self.session.devices, start=1):
            selected = "*" if device == self.session.selected_device else " "
            if device.is_local:
                detail = PlayerFactory.get_mode_description('local')
            else:
                detail = f"{device.type}{' (active)' if device.is_active else ''}"
            print(f"  {selected} {number}. {device.name} - {detail}")
        print("\n  Type a number to select, 's' to start, 'r' to refresh, 'q' to quit")

    def show_controls(self):
        print("\n⌨️  KEYBOARD CONTROLS:")
        print("  • 'p' - Play/Pause")
        print("  • 'y' - Reveal song, artist and year")
        print("  • '+' - Increase volume")
        print("  • '-' - Decrease volume")
        print("  • 'c' - Change device")
        print("  • 'q' - Quit application")
        print("\n📷 Hold a song card in front of the camera to play it")

    async def handle_command(self, command):
        """
        Run one keyboard command

        Args:
            command: Text typed by the user

        Returns:
            bool: False when the user asked to quit
        """
        session = self.session
        command = command.strip().lower()

        if command == 'q':
            return False

        if session.screen is Screen.LOGIN:
            if command in ('l', ''):
                if await session.start():
                    self.show_devices()
            return True

        if session.screen is Screen.DEVICE_SELECT:
            if command.isdigit():
                index = int(command) - 1
                if 0 <= index < len(session.devices):
                    session.select_device(session.devices[index].id)
                else:
                    print(f"✗ No device number {command}")
            elif command == 'r':
                await session.refresh_devices()
                self.show_devices()
            elif command == 's':
                if await session.start_playback():
                    self.show_controls()
                elif session.screen is Screen.DEVICE_SELECT:
                    self.show_devices()
            return True

        if command == 'p':
            await session.toggle_playback()
        elif command in ('+', '='):
            volume = await session.set_volume(session.volume + VOLUME_STEP)
            print(f"🔊 Volume: {volume}%")
        elif command in ('-', '_'):
            volume = await session.set_volume(session.volume - VOLUME_STEP)
            print(f"🔉 Volume: {volume}%")
        elif command == 'y':
            session.reveal()
        elif command == 'c':
            await session.change_device()
            if session.screen is Screen.DEVICE_SELECT:
                self.show_devices()
        elif command and self.verbose:
            print(f"⚠ Unknown command: {command}")

        if session.screen is Screen.DEVICE_SELECT and command != 'c':
            # A playback error sent us back to device selection
            self.show_devices()
        return True

    async def run(self):
        """Main application loop"""
        print("\n" + "="*60)
        print("  HITSTER PLAYER - Let's play!")
        print("="*60)

        try:
            if await self.session.start():
                self.show_devices()
            else:
                print("  Press Enter after logging in, or 'q' to quit")

            while True:
                command = await asyncio.to_thread(input, "> ")
                if not await self.handle_command(command):
                    print("\n👋 Hitster Player signing off...")
                    break
        except EOFError:
            print("\n⚠ Input closed")
        finally:
            print("Cleaning up...")
            await self.session.stop()
            print("✓ Thanks for playing!\n")
