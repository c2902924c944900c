import pytest

from core.landmarks import IBUG_68
from core.liveness_tracker import (
    DetectionSession,
    FACE_STABLE,
    FACE_UNSTABLE,
    NO_FACE,
    VERIFIED,
)
from tests.helpers import make_landmarks


def feed_offsets(session, offsets):
    return [session.add_head_position(offset) for offset in offsets]


def test_face_detected_exactly_at_third_consecutive_hit():
    session = DetectionSession()
    flags = []
    for _ in range(4):
        session.record_face(make_landmarks(0.0))
        flags.append(session.face_detected)

    assert flags == [False, False, True, True]


def test_hit_counter_never_negative_and_face_lost_at_zero():
    session = DetectionSession()
    for _ in range(4):
        session.record_face(make_landmarks(0.0))

    observed = []
    for _ in range(6):
        session.record_miss()
        observed.append((session.consecutive_hits, session.face_detected))

    assert observed == [
        (3, True),
        (2, True),
        (1, True),
        (0, False),
        (0, False),
        (0, False),
    ]


def test_miss_then_recovery_counter_sequence():
    session = DetectionSession()
    hits = []
    detected = []
    for event in ['hit', 'hit', 'miss', 'hit', 'hit']:
        if event == 'hit':
            session.record_face(make_landmarks(0.0))
        else:
            session.record_miss()
        hits.append(session.consecutive_hits)
        detected.append(session.face_detected)

    assert hits == [1, 2, 1, 2, 3]
    assert detected == [False, False, False, False, True]


def test_history_is_bounded_fifo():
    session = DetectionSession(turn_range=1000)
    offsets = [i * 0.5 for i in range(25)]
    feed_offsets(session, offsets)

    assert len(session.head_positions) == 20
    assert list(session.head_positions) == offsets[5:]


def test_identical_offsets_never_turn():
    session = DetectionSession()
    results = feed_offsets(session, [0] * 10)

    assert session.head_range == 0
    assert not any(results)
    assert session.head_turn_detected is False


def test_turn_detected_on_tenth_sample():
    session = DetectionSession()
    results = feed_offsets(session, [-10, -10, -10, -10, -10, 8, 8, 8, 8, 8])

    assert results == [False] * 9 + [True]
    assert session.head_range == pytest.approx(18)


def test_no_turn_before_min_samples_even_with_large_range():
    session = DetectionSession()
    feed_offsets(session, [-50, 50, -50, 50, -50, 50, -50, 50, -50])

    assert len(session.head_positions) == 9
    assert session.head_turn_detected is False


def test_range_must_exceed_threshold():
    session = DetectionSession()
    feed_offsets(session, [0] * 9 + [15])
    assert session.head_turn_detected is False

    session.add_head_position(15.5)
    assert session.head_turn_detected is True


def test_turn_is_sticky_until_reset():
    session = DetectionSession()
    feed_offsets(session, [-10] * 5 + [10] * 5)
    assert session.head_turn_detected

    samples = len(session.head_positions)
    for _ in range(30):
        session.record_face(make_landmarks(0.0))
    for _ in range(40):
        session.record_miss()

    assert session.head_turn_detected is True
    assert len(session.head_positions) == samples
    assert session.status == VERIFIED


def test_offsets_only_tracked_once_face_is_stable():
    session = DetectionSession()
    session.record_face(make_landmarks(-20))
    session.record_face(make_landmarks(20))
    assert len(session.head_positions) == 0

    session.record_face(make_landmarks(5))
    assert list(session.head_positions) == [5.0]


def test_landmarks_follow_configured_scheme():
    session = DetectionSession(scheme='ibug_68')
    for offset in [-10, -10, -10] + [-10] * 4 + [10] * 5:
        session.record_face(make_landmarks(offset, IBUG_68))

    assert session.head_turn_detected is True


def test_status_transitions():
    session = DetectionSession()
    assert session.status == NO_FACE

    session.record_face(make_landmarks(0.0))
    assert session.status == FACE_UNSTABLE

    session.record_face(make_landmarks(0.0))
    session.record_face(make_landmarks(0.0))
    assert session.status == FACE_STABLE

    session.record_miss()
    assert session.status == FACE_STABLE

    session.record_miss()
    session.record_miss()
    assert session.status == NO_FACE


def test_reset_restores_initial_state():
    session = DetectionSession()
    for offset in [0, 0] + [-10] * 5 + [10] * 5:
        session.record_face(make_landmarks(offset))
    assert session.head_turn_detected

    session.reset()

    assert session.snapshot() == {
        'status': NO_FACE,
        'consecutive_hits': 0,
        'face_detected': False,
        'head_turn_detected': False,
        'samples': 0,
        'head_range': 0.0,
        'last_offset': None,
    }
