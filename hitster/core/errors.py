"""
Error types for Hitster Player

Every playback failure the player can report maps to one of these classes,
so callers can react by type instead of matching message text.
"""


class HitsterError(Exception):
    """Base class for all Hitster Player errors"""


class AuthError(HitsterError):
    """No access token was supplied when an engine was initialized"""


class AuthExpiredError(HitsterError):
    """The access token was rejected mid-session; the user must log in again"""


class PremiumRequiredError(HitsterError):
    """The account lacks the entitlement needed for playback control"""


class DeviceUnavailableError(HitsterError):
    """The target playback device could not be found"""


class NotReadyError(HitsterError):
    """An operation was attempted before the engine was ready for it"""


class PlaybackError(HitsterError):
    """Generic playback failure; the message is shown to the user as-is"""


class UnknownModeError(HitsterError):
    """PlayerFactory was asked for a mode it does not know"""
