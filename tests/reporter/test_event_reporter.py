import pytest

from brokerctl.observers.dispatcher import EventBus
from brokerctl.observers.events import PhaseEnded, PhaseMessage, PhaseStarted
from brokerctl.reporter.event_reporter import EventReporter
from brokerctl.reporter.interface import Phase


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


def _reporter(*observers):
    return EventReporter(EventBus(list(observers)), namespace="ns", context="ctx1", run_id="run-1")


def test_started_returns_distinct_tokens():
    r = _reporter()
    a = r.started("first")
    b = r.started("second")
    assert isinstance(a, Phase) and isinstance(b, Phase)
    assert a.id != b.id
    assert (a.message, b.message) == ("first", "second")


def test_events_carry_run_context():
    cap = Capture()
    r = _reporter(cap)
    p = r.started("Setting up")
    r.ended_with(p, None)

    started, ended = cap.events
    assert isinstance(started, PhaseStarted) and isinstance(ended, PhaseEnded)
    assert started.run_id == ended.run_id == "run-1"
    assert started.namespace == "ns" and started.context == "ctx1"
    assert ended.phase_id == p.id


def test_empty_messages_are_ignored():
    cap = Capture()
    r = _reporter(cap)
    p = r.started("x")
    r.succeeded(p, "")
    r.warned(p, "")
    r.failed(p, "")
    assert not any(isinstance(e, PhaseMessage) for e in cap.events)
    assert r.messages(p) == []


def test_outcome_follows_error_presence():
    cap = Capture()
    r = _reporter(cap)

    ok = r.started("ok")
    r.warned(ok, "careful")
    r.ended_with(ok, None)

    bad = r.started("bad")
    r.succeeded(bad, "looked fine")
    r.ended_with(bad, RuntimeError("nope"))

    ended = [e for e in cap.events if isinstance(e, PhaseEnded)]
    assert [(e.message, e.status, e.error) for e in ended] == [
        ("ok", "SUCCESS", None),
        ("bad", "FAILURE", "nope"),
    ]


def test_many_phases_do_not_accumulate_state():
    r = _reporter()
    for i in range(500):
        p = r.started(f"phase {i}")
        r.succeeded(p, "done")
        r.ended_with(p, None)
    assert r.open_phases == 0


def test_interleaved_phases_keep_their_own_messages():
    cap = Capture()
    r = _reporter(cap)
    a = r.started("a")
    b = r.started("b")
    r.warned(a, "for a")
    r.succeeded(b, "for b")
    assert r.messages(a) == [("WARNING", "for a")]
    assert r.messages(b) == [("SUCCESS", "for b")]

    r.ended_with(b, None)
    r.ended_with(a, ValueError("a broke"))
    ended = {e.message: e.status for e in cap.events if isinstance(e, PhaseEnded)}
    assert ended == {"a": "FAILURE", "b": "SUCCESS"}


def test_closed_phase_cannot_be_reused():
    r = _reporter()
    p = r.started("once")
    r.ended_with(p, None)
    with pytest.raises(ValueError):
        r.ended_with(p, None)
    with pytest.raises(ValueError):
        r.succeeded(p, "late")


def test_broken_observer_does_not_break_reporting():
    class Broken:
        def notify(self, ev):
            raise RuntimeError("render failed")

    cap = Capture()
    r = _reporter(Broken(), cap)
    p = r.started("x")
    r.ended_with(p, None)
    assert len(cap.events) == 2


def test_phases_never_ended_are_bounded():
    cap = Capture()
    r = EventReporter(EventBus([cap]), namespace="ns", max_open=3)
    phases = [r.started(f"leak {i}") for i in range(10)]

    assert r.open_phases == 3
    ended = [(e.message, e.status, e.error) for e in cap.events if isinstance(e, PhaseEnded)]
    assert ended[0] == ("leak 0", "FAILURE", "phase was never ended")
    assert len(ended) == 7

    r.ended_with(phases[-1], None)
    with pytest.raises(ValueError):
        r.ended_with(phases[0], None)
