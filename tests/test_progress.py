import pytest

from dicomqr.progress import (
    CancelToken,
    ProgressEvent,
    ProgressRelay,
    ProgressState,
    aggregate_percent,
)

from conftest import RecordingObserver


@pytest.mark.parametrize("count", [1, 2, 3, 7, 16])
def test_aggregate_is_monotonic_in_server_index(count):
    for intra in (0, 37, 100):
        values = [aggregate_percent(i, count, intra) for i in range(count)]
        assert values == sorted(values)


@pytest.mark.parametrize("count", [1, 2, 3, 9])
def test_full_server_stays_below_next_server_start(count):
    weight = 100.0 / count
    for i in range(count):
        assert aggregate_percent(i, count, 100) < (i + 1) * weight


def test_aggregate_formula_values():
    assert aggregate_percent(0, 4, 0) == 0.0
    assert aggregate_percent(2, 4, 0) == pytest.approx(50.0)
    assert aggregate_percent(1, 2, 50) == pytest.approx((1 + 50 / 101) * 50)


def test_aggregate_rejects_empty_batch():
    with pytest.raises(ValueError):
        aggregate_percent(0, 0, 10)


def test_relay_detaches_callback_after_operation():
    state = ProgressState(server_count=2)
    obs = RecordingObserver()
    relay = ProgressRelay(state, obs)

    with relay.subscribe(1) as callback:
        callback(ProgressEvent(source="B", percent=40, label="working"))
    callback(ProgressEvent(source="B", percent=90, label="late"))

    assert obs.progress == [(1, 40, pytest.approx((1 + 40 / 101) * 50))]
    assert obs.labels == ["working"]


def test_relay_detaches_callback_when_operation_raises():
    state = ProgressState(server_count=1)
    obs = RecordingObserver()
    relay = ProgressRelay(state, obs)

    with pytest.raises(RuntimeError):
        with relay.subscribe(0) as callback:
            raise RuntimeError("boom")
    callback(ProgressEvent(source="A", percent=10))

    assert obs.progress == []


def test_relay_complete_forces_hundred():
    state = ProgressState(server_count=3)
    obs = RecordingObserver()
    relay = ProgressRelay(state, obs)
    with relay.subscribe(0) as callback:
        callback(ProgressEvent(source="A", percent=20))
    relay.complete()
    assert obs.progress[-1][2] == 100.0


def test_cancel_token_roundtrip():
    token = CancelToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled
    token.reset()
    assert not token.cancelled
