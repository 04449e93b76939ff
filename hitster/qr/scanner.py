"""
QR Code Scanner module for Hitster Player
Handles QR code decoding and track reference validation
"""

import re

import cv2
import numpy as np
from pyzbar import pyzbar
from pyzbar.pyzbar import ZBarSymbol

from hitster.core.models import DecodeResult, DecodeStrategy

TRACK_URI_PREFIX = 'spotify:track:'
TRACK_ID_PATTERN = re.compile(r'^[a-zA-Z0-9]{15,25}$')
TRACK_URL_PATTERN = re.compile(r'/track/([a-zA-Z0-9]+)')


def is_valid_track_id(track_id):
    """Check that a track ID is 15-25 alphanumeric characters"""
    return bool(track_id) and TRACK_ID_PATTERN.match(track_id) is not None


def extract_track_reference(content):
    """
    Extract a Spotify track URI from scanned QR content

    Accepts 'spotify:track:<ID>' and any URL containing '/track/<ID>'
    (e.g. https://open.spotify.com/track/<ID>?si=...).

    Args:
        content: Decoded QR code text

    Returns:
        str or None: Normalized 'spotify:track:<ID>' if valid
    """
    if not content:
        return None

    trimmed = content.strip()

    if trimmed.startswith(TRACK_URI_PREFIX):
        parts = trimmed.split(':')
        if len(parts) >= 3 and is_valid_track_id(parts[2]):
            return TRACK_URI_PREFIX + parts[2]

    match = TRACK_URL_PATTERN.search(trimmed)
    if match and is_valid_track_id(match.group(1)):
        return TRACK_URI_PREFIX + match.group(1)

    return None


def _decode_bytes(data):
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError:
        return data.decode('latin-1')


class Decoder:
    """
    Decodes QR codes from RGBA frames with two independent strategies

    decode_bidirectional() runs pyzbar on the frame and, failing that, on
    its inverse. decode_manual_inverted() inverts the colour channels itself
    and hands the result to OpenCV's detector, which catches light-on-dark
    cards the first strategy misses. Neither ever raises: an unreadable
    frame is simply no result.
    """

    def __init__(self, debug_mode=False):
        self.debug_mode = debug_mode
        self.qr_detection_count = 0
        self._detector = cv2.QRCodeDetector()
        self._buffer = None

    def decode_bidirectional(self, frame):
        """
        Decode a frame as-is, then inverted

        Args:
            frame: Frame (RGBA)

        Returns:
            DecodeResult or None
        """
        if frame is None or frame.is_empty:
            return None

        try:
            gray = cv2.cvtColor(frame.pixels, cv2.COLOR_RGBA2GRAY)

            payload = self._zbar(gray)
            if payload is not None:
                return self._found(payload, DecodeStrategy.NORMAL)

            payload = self._zbar(cv2.bitwise_not(gray))
            if payload is not None:
                return self._found(payload, DecodeStrategy.INVERTED_BUILTIN)
        except Exception as e:
            if self.debug_mode:
                print(f"[DEBUG] Decode failed: {e}")

        return None

    def decode_manual_inverted(self, frame):
        """
        Invert every colour channel, then decode without further inversion

        Args:
            frame: Frame (RGBA)

        Returns:
            DecodeResult or None
        """
        if frame is None or frame.is_empty:
            return None

        try:
            buffer = self._sync_buffer(frame)
            np.subtract(255, frame.pixels[..., :3], out=buffer[..., :3])
            buffer[..., 3] = frame.pixels[..., 3]

            gray = cv2.cvtColor(buffer, cv2.COLOR_RGBA2GRAY)
            payload, points, _ = self._detector.detectAndDecode(gray)
            if payload:
                return self._found(payload, DecodeStrategy.INVERTED_MANUAL)
        except Exception as e:
            if self.debug_mode:
                print(f"[DEBUG] Inverted decode failed: {e}")

        return None

    def _sync_buffer(self, frame):
        # Camera resolution can change between frames (rotation, renegotiation)
        if self._buffer is None or self._buffer.shape != frame.pixels.shape:
            self._buffer = np.empty(frame.pixels.shape, dtype=np.uint8)
        return self._buffer

    @staticmethod
    def _zbar(gray):
        for obj in pyzbar.decode(gray, symbols=[ZBarSymbol.QRCODE]):
            return _decode_bytes(obj.data)
        return None

    def _found(self, payload, strategy):
        self.qr_detection_count += 1
        if self.debug_mode:
            print(f"[DEBUG] QR detected ({strategy.value}): {payload[:50]}")
        return DecodeResult(payload=payload, strategy=strategy)
