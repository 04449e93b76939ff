"""
PlayerFactory - Creates playback engines based on mode

- 'local': librespot on this machine (Premium required)
- 'remote': an existing Spotify Connect device (Premium required)
"""

from hitster.core.errors import UnknownModeError
from hitster.playback.local import LocalPlayer
from hitster.playback.remote import RemotePlayer

MODES = {
    'local': (LocalPlayer, 'Full tracks on this player'),
    'remote': (RemotePlayer, 'Full tracks on an external device'),
}


class PlayerFactory:
    """Factory for creating playback engines"""

    @staticmethod
    def create(mode):
        """
        Create a playback engine instance

        Args:
            mode: 'local' or 'remote'

        Returns:
            PlaybackEngine
        """
        try:
            engine_class, _ = MODES[mode]
        except (KeyError, TypeError):
            raise UnknownModeError(f'Unknown playback mode: {mode}') from None
        return engine_class()

    @staticmethod
    def get_mode_description(mode):
        return MODES[mode][1] if mode in MODES else 'Unknown mode'

    @staticmethod
    def get_modes():
        return list(MODES)
