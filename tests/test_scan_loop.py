import asyncio

import numpy as np

from hitster.core.models import DecodeResult, DecodeStrategy, Frame
from hitster.qr.gate import ScanGate
from hitster.qr.loop import ScanLoop

from fakes import TRACK_URI, FakeFrameSource


class StubDecoder:
    def __init__(self, payload=TRACK_URI):
        self.payload = payload
        self.fast_calls = 0
        self.inverted_calls = 0

    def decode_bidirectional(self, frame):
        self.fast_calls += 1
        return DecodeResult(self.payload, DecodeStrategy.NORMAL)

    def decode_manual_inverted(self, frame):
        self.inverted_calls += 1
        return DecodeResult(self.payload, DecodeStrategy.INVERTED_MANUAL)


def make_frame():
    return Frame(np.zeros((48, 64, 4), dtype=np.uint8))


def test_scan_once_skips_until_camera_ready():
    async def _run():
        source = FakeFrameSource(frame=None, ready=False)
        decoder = StubDecoder()
        loop = ScanLoop(source, lambda event: None, decoder=decoder)

        assert await loop.scan_once(decoder.decode_bidirectional) is None
        assert decoder.fast_calls == 0

    asyncio.run(_run())


def test_scan_once_skips_empty_frame():
    async def _run():
        source = FakeFrameSource(frame=Frame(np.zeros((0, 0, 4), dtype=np.uint8)))
        decoder = StubDecoder()
        loop = ScanLoop(source, lambda event: None, decoder=decoder)

        assert await loop.scan_once(decoder.decode_bidirectional) is None
        assert decoder.fast_calls == 0

    asyncio.run(_run())


def test_both_strategies_share_one_gate():
    async def _run():
        events = []
        decoder = StubDecoder()
        gate = ScanGate(cooldown_ms=3000, clock=lambda: 1000)
        loop = ScanLoop(FakeFrameSource(make_frame()), events.append, decoder=decoder, gate=gate)

        first = await loop.scan_once(decoder.decode_bidirectional)
        second = await loop.scan_once(decoder.decode_manual_inverted)

        assert first.track_uri == TRACK_URI
        assert second is None
        assert events == [first]

    asyncio.run(_run())


def test_coroutine_handlers_run_as_tasks():
    async def _run():
        handled = []
        release = asyncio.Event()

        async def on_scan(event):
            await release.wait()
            handled.append(event)

        decoder = StubDecoder()
        loop = ScanLoop(FakeFrameSource(make_frame()), on_scan, decoder=decoder)

        event = await loop.scan_once(decoder.decode_bidirectional)
        assert event is not None
        assert handled == []

        release.set()
        await asyncio.sleep(0.01)
        assert handled == [event]

    asyncio.run(_run())


def test_timers_run_and_stop_before_camera_release():
    async def _run():
        events = []
        source = FakeFrameSource(make_frame())
        decoder = StubDecoder()
        loop = ScanLoop(source, events.append, decoder=decoder,
                        fast_interval=0.01, inverted_interval=0.03)

        await loop.start()
        await loop.start()
        assert source.started == 1
        assert loop.is_scanning

        await asyncio.sleep(0.1)
        source.timers = list(loop._timers)
        await loop.stop()

        assert decoder.fast_calls > decoder.inverted_calls > 0
        assert len(events) == 1
        assert source.stopped == 1
        assert source.timers_done_at_stop == [True, True]
        assert not loop.is_scanning
        assert loop.gate.last_payload is None

    asyncio.run(_run())


def test_stop_without_start_is_harmless():
    async def _run():
        source = FakeFrameSource(make_frame())
        loop = ScanLoop(source, lambda event: None, decoder=StubDecoder())
        await loop.stop()
        assert source.stopped == 0

    asyncio.run(_run())


def test_stop_cancels_running_scan_handlers():
    async def _run():
        finished = []

        async def on_scan(event):
            await asyncio.sleep(10)
            finished.append(event)

        decoder = StubDecoder()
        loop = ScanLoop(FakeFrameSource(make_frame()), on_scan, decoder=decoder)
        await loop.start()
        await loop.scan_once(decoder.decode_bidirectional)
        handler = next(iter(loop._handlers))

        await loop.stop()

        assert handler.cancelled()
        assert finished == []

    asyncio.run(_run())


def test_handler_can_stop_its_own_loop():
    async def _run():
        finished = []

        async def on_scan(event):
            await loop.stop()
            finished.append(event)

        source = FakeFrameSource(make_frame())
        decoder = StubDecoder()
        loop = ScanLoop(source, on_scan, decoder=decoder)
        await loop.start()

        event = await loop.scan_once(decoder.decode_bidirectional)
        await asyncio.sleep(0.01)

        assert finished == [event]
        assert source.stopped == 1

    asyncio.run(_run())


def test_failing_handler_does_not_kill_the_timers(capsys):
    async def _run():
        decoder = StubDecoder()

        def on_scan(event):
            raise RuntimeError("handler exploded")

        loop = ScanLoop(FakeFrameSource(make_frame()), on_scan, decoder=decoder,
                        fast_interval=0.01, inverted_interval=0.5)
        await loop.start()
        await asyncio.sleep(0.1)

        assert not any(timer.done() for timer in loop._timers)
        assert decoder.fast_calls > 2
        await loop.stop()

    asyncio.run(_run())
    assert "Scan failed: handler exploded" in capsys.readouterr().out
