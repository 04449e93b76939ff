"""
Scan loop for Hitster Player
Drives the two decode strategies on independent timers against the latest
camera frame and forwards accepted scans to the session
"""

import asyncio
import inspect

from hitster.config.settings import (
    SCAN_COOLDOWN_MS,
    FAST_SCAN_INTERVAL,
    INVERTED_SCAN_INTERVAL
)
from hitster.qr.gate import ScanGate
from hitster.qr.scanner import Decoder


class ScanLoop:
    """
    Runs the bidirectional decode every fast_interval seconds and the
    manual-inversion decode every inverted_interval seconds.

    Both timers read frame_source.latest() rather than consuming a queue,
    so slow decodes drop frames instead of piling up work. Results from
    either timer go through the same ScanGate; a result landing exactly on
    a cooldown boundary from both timers at once can let one extra scan
    through.
    """

    def __init__(self, frame_source, on_scan, cooldown_ms=SCAN_COOLDOWN_MS,
                 fast_interval=FAST_SCAN_INTERVAL, inverted_interval=INVERTED_SCAN_INTERVAL,
                 decoder=None, gate=None, verbose=False, debug_mode=False):
        self.frame_source = frame_source
        self.on_scan = on_scan
        self.fast_interval = fast_interval
        self.inverted_interval = inverted_interval
        self.decoder = decoder or Decoder(debug_mode=debug_mode)
        self.gate = gate or ScanGate(cooldown_ms=cooldown_ms)
        self.verbose = verbose
        self.is_scanning = False
        self._timers = []
        self._handlers = set()

    async def start(self):
        """Start the camera and both decode timers"""
        if self.is_scanning:
            return

        await self.frame_source.start()
        self.is_scanning = True
        self._timers = [
            asyncio.create_task(self._run(self.decoder.decode_bidirectional, self.fast_interval)),
            asyncio.create_task(self._run(self.decoder.decode_manual_inverted, self.inverted_interval)),
        ]
        if self.verbose:
            print("✓ Scanner started - scanning normal and inverted codes")

    async def stop(self):
        """
        Stop both timers and any scan handlers still running, then release
        the camera

        A handler may itself be the caller (a scan whose playback error
        tears the session down); that one is left to finish.
        """
        current = asyncio.current_task()
        pending = self._timers + [task for task in self._handlers if task is not current]
        self._timers = []
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if self.is_scanning:
            self.is_scanning = False
            await self.frame_source.stop()
        self.gate.reset()

    async def _run(self, decode, interval):
        while True:
            await asyncio.sleep(interval)
            try:
                await self.scan_once(decode)
            except Exception as e:
                print(f"✗ Scan failed: {e}")

    async def scan_once(self, decode):
        """
        Run one decode attempt on the latest frame

        Returns:
            ScanEvent or None
        """
        if not self.frame_source.ready:
            return None  # camera warming up
        frame = self.frame_source.latest()
        if frame is None or frame.is_empty:
            return None

        result = await asyncio.to_thread(decode, frame)
        event = self.gate.submit(result)
        if event is None:
            if result is not None and self.verbose:
                remaining = self.gate.cooldown_remaining()
                if remaining > 0:
                    print(f"[Cooldown: {remaining / 1000:.1f}s] QR code ignored")
            return None

        print(f"→ Scanned: {event.track_uri}")
        outcome = self.on_scan(event)
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._handlers.add(task)
            task.add_done_callback(self._handlers.discard)
        return event
