from hitster.core.models import DecodeResult, DecodeStrategy
from hitster.qr.gate import ScanGate

from fakes import TRACK_ID, TRACK_URI, OTHER_TRACK_URI

COOLDOWN = 3000


def result(payload, strategy=DecodeStrategy.NORMAL):
    return DecodeResult(payload=payload, strategy=strategy)


def test_first_valid_scan_is_accepted():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    event = gate.submit(result(TRACK_URI), now=1000)

    assert event.track_uri == TRACK_URI
    assert event.timestamp == 1000
    assert gate.last_payload == TRACK_URI
    assert gate.last_accepted_at == 1000


def test_url_payload_emits_normalized_uri():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    event = gate.submit(result(f"https://open.spotify.com/track/{TRACK_ID}?si=1"), now=0)
    assert event.track_uri == TRACK_URI


def test_invalid_payload_is_dropped_without_touching_state():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    assert gate.submit(result("https://example.com"), now=0) is None
    assert gate.last_payload is None
    assert gate.last_accepted_at is None


def test_none_result_is_ignored():
    assert ScanGate().submit(None, now=0) is None


def test_global_cooldown_blocks_any_payload():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    gate.submit(result(TRACK_URI), now=0)

    assert gate.submit(result(OTHER_TRACK_URI), now=COOLDOWN - 1) is None
    assert gate.submit(result(TRACK_URI, DecodeStrategy.INVERTED_MANUAL), now=10) is None


def test_same_payload_is_suppressed_for_twice_the_cooldown():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    gate.submit(result(TRACK_URI), now=0)

    assert gate.submit(result(TRACK_URI), now=COOLDOWN + 1) is None
    assert gate.submit(result(TRACK_URI), now=2 * COOLDOWN - 1) is None
    assert gate.submit(result(TRACK_URI), now=2 * COOLDOWN + 1) is not None


def test_different_payload_passes_once_cooldown_elapsed():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    gate.submit(result(TRACK_URI), now=0)

    event = gate.submit(result(OTHER_TRACK_URI), now=COOLDOWN + 1)
    assert event.track_uri == OTHER_TRACK_URI


def test_rejections_do_not_extend_the_cooldown():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    gate.submit(result(TRACK_URI), now=0)
    for now in range(100, COOLDOWN, 100):
        gate.submit(result(OTHER_TRACK_URI), now=now)

    assert gate.submit(result(OTHER_TRACK_URI), now=COOLDOWN) is not None


def test_accepted_events_are_never_closer_than_cooldown():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    payloads = [TRACK_URI, OTHER_TRACK_URI]
    accepted = []
    for step in range(400):
        now = step * 37
        event = gate.submit(result(payloads[step % 2]), now=now)
        if event is not None:
            accepted.append(event.timestamp)

    assert len(accepted) > 1
    assert all(b - a >= COOLDOWN for a, b in zip(accepted, accepted[1:]))


def test_uses_clock_when_now_omitted():
    ticks = iter([0, 500, 3500])
    gate = ScanGate(cooldown_ms=COOLDOWN, clock=lambda: next(ticks))

    assert gate.submit(result(TRACK_URI)) is not None
    assert gate.submit(result(OTHER_TRACK_URI)) is None
    assert gate.submit(result(OTHER_TRACK_URI)) is not None


def test_cooldown_remaining_and_reset():
    gate = ScanGate(cooldown_ms=COOLDOWN)
    assert gate.cooldown_remaining(now=0) == 0

    gate.submit(result(TRACK_URI), now=0)
    assert gate.cooldown_remaining(now=1000) == 2000

    gate.reset()
    assert gate.cooldown_remaining(now=1000) == 0
    assert gate.submit(result(TRACK_URI), now=1000) is not None
