"""Hardware modules for Hitster Player"""

from .camera import CameraFrameSource

__all__ = ['CameraFrameSource']
