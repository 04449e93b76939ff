"""
Scan gate for Hitster Player
Turns a noisy stream of decode results into at most one scan per cooldown
"""

import time

from hitster.config.settings import SCAN_COOLDOWN_MS
from hitster.core.models import ScanEvent
from hitster.qr.scanner import extract_track_reference


def monotonic_ms():
    return time.monotonic() * 1000.0


class ScanGate:
    """
    Debounce/cooldown filter between the decoder and the session

    A card held in front of the camera decodes many times per second from
    both decode strategies, so two rules apply: no two scans are accepted
    less than cooldown_ms apart, and the same payload stays suppressed until
    2 * cooldown_ms has passed since it was last accepted.
    """

    def __init__(self, cooldown_ms=SCAN_COOLDOWN_MS, clock=None):
        self.cooldown_ms = cooldown_ms
        self._clock = clock or monotonic_ms
        self.last_payload = None
        self.last_accepted_at = None

    def submit(self, result, now=None):
        """
        Offer a decode result to the gate

        Args:
            result: DecodeResult
            now: Timestamp in ms (defaults to the gate's clock)

        Returns:
            ScanEvent or None
        """
        if result is None:
            return None

        track_uri = extract_track_reference(result.payload)
        if track_uri is None:
            return None

        if now is None:
            now = self._clock()

        if self.last_accepted_at is not None:
            elapsed = now - self.last_accepted_at
            if elapsed < self.cooldown_ms:
                return None
            if result.payload == self.last_payload and elapsed < 2 * self.cooldown_ms:
                return None

        self.last_payload = result.payload
        self.last_accepted_at = now
        return ScanEvent(track_uri=track_uri, timestamp=now)

    def cooldown_remaining(self, now=None):
        """Milliseconds left on the global cooldown (0 when scans are accepted)"""
        if self.last_accepted_at is None:
            return 0
        if now is None:
            now = self._clock()
        return max(0, self.cooldown_ms - (now - self.last_accepted_at))

    def reset(self):
        self.last_payload = None
        self.last_accepted_at = None
