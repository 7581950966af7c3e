import queue
import threading

import pytest

from myclaw.agent_types import Request, Response, SessionState, Spec
from myclaw.session import Session


class StubRuntime:
    def __init__(self, run, close=None):
        self._run = run
        self._close = close

    def run(self, request):
        return self._run(request)

    def close(self):
        if self._close is not None:
            self._close()


class StubDriver:
    def __init__(self, init):
        self._init = init

    def init(self, spec):
        return self._init(spec)


def echo_driver(close=None):
    return StubDriver(lambda spec: StubRuntime(lambda req: Response(text=req.prompt), close))


def test_session_initializes_driver_on_construction():
    calls = []

    def init(spec):
        calls.append(spec)
        return StubRuntime(lambda req: Response(text=spec.command + ":" + req.prompt))

    session = Session(StubDriver(init), Spec(command="codex"))
    assert len(calls) == 1
    assert calls[0].command == "codex"

    resp = session.send(Request(prompt="hello"))
    assert resp.text == "codex:hello"
    assert len(calls) == 1
    assert session.state is SessionState.READY


def test_session_construction_fails_when_driver_init_fails():
    def init(spec):
        raise TimeoutError("deadline exceeded")

    with pytest.raises(TimeoutError):
        Session(StubDriver(init), Spec(command="codex"))


def test_session_send_clones_spec_provided_at_init():
    env = {"KEY": "value"}
    args = ["run"]
    got = []

    def init(spec):
        got.append(spec)
        return StubRuntime(lambda req: Response(text=spec.args[0] + ":" + spec.env["KEY"]))

    session = Session(StubDriver(init), Spec(command="codex", args=args, env=env))
    args[0] = "mutated"
    env["KEY"] = "changed"

    resp = session.send(Request(prompt="hello"))
    assert resp.text == "run:value"
    assert got[0].args[0] == "run"
    assert got[0].env["KEY"] == "value"


def test_session_send_failure_marks_broken():
    def run(req):
        raise ValueError("boom")

    session = Session(StubDriver(lambda spec: StubRuntime(run)), Spec(command="codex"))
    with pytest.raises(ValueError, match="boom"):
        session.send(Request(prompt="one"))
    assert session.state is SessionState.BROKEN


def test_session_send_serializes_concurrent_calls():
    started = queue.Queue()
    release = queue.Queue()
    counter_lock = threading.Lock()
    counters = {"current": 0, "max": 0}

    def run(req):
        with counter_lock:
            counters["current"] += 1
            counters["max"] = max(counters["max"], counters["current"])
        try:
            started.put(req.prompt)
            release.get(timeout=5)
            return Response(text=req.prompt)
        finally:
            with counter_lock:
                counters["current"] -= 1

    session = Session(StubDriver(lambda spec: StubRuntime(run)), Spec(command="codex"))
    results = []
    errors = []

    def worker(prompt):
        try:
            results.append(session.send(Request(prompt=prompt)).text)
        except Exception as exc:  # pragma: no cover - reported below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(p,)) for p in ("first", "second")]
    for thread in threads:
        thread.start()

    first = started.get(timeout=5)
    assert first in ("first", "second")
    with counter_lock:
        assert counters["current"] == 1

    release.put(None)
    second = started.get(timeout=5)
    assert second in ("first", "second")
    assert second != first
    release.put(None)

    for thread in threads:
        thread.join(timeout=5)

    assert errors == []
    assert sorted(results) == ["first", "second"]
    assert counters["max"] == 1
    assert session.state is SessionState.READY


def test_session_close_closes_runtime_and_stops_session():
    close_calls = []
    session = Session(echo_driver(close=lambda: close_calls.append(1)), Spec(command="codex"))

    session.close()
    assert len(close_calls) == 1
    assert session.state is SessionState.STOPPED

    session.close()
    assert len(close_calls) == 1
    assert session.state is SessionState.STOPPED
    with pytest.raises(RuntimeError):
        session.send(Request(prompt="after close"))


def test_session_close_raises_runtime_close_failure():
    close_calls = []

    def close():
        close_calls.append(1)
        raise OSError("close boom")

    session = Session(echo_driver(close=close), Spec(command="codex"))
    with pytest.raises(OSError, match="close boom"):
        session.close()
    assert session.state is SessionState.READY

    # the runtime is kept, so it is still usable and a later close retries it
    assert session.send(Request(prompt="still here")).text == "still here"
    with pytest.raises(OSError):
        session.close()
    assert len(close_calls) == 2


def test_session_close_does_not_hold_lock_during_runtime_close():
    close_started = threading.Event()
    release_close = threading.Event()

    def close():
        close_started.set()
        release_close.wait(timeout=5)

    session = Session(echo_driver(close=close), Spec(command="codex"))
    errors = []

    def closer():
        try:
            session.close()
        except Exception as exc:  # pragma: no cover - reported below
            errors.append(exc)

    closing = threading.Thread(target=closer)
    closing.start()
    assert close_started.wait(timeout=5)

    observed = queue.Queue()
    reader = threading.Thread(target=lambda: observed.put(session.state))
    reader.start()
    state_during_close = observed.get(timeout=1)
    assert state_during_close is SessionState.READY

    release_close.set()
    closing.join(timeout=5)
    reader.join(timeout=5)
    assert errors == []
    assert session.state is SessionState.STOPPED


def test_session_matches_compares_spec():
    session = Session(echo_driver(), Spec(type="drv", command="alpha", args=["x"]))
    assert session.matches(Spec(type="drv", command="alpha", args=["x"]))
    assert not session.matches(Spec(type="drv", command="beta", args=["x"]))
    assert not session.matches(Spec(type="drv", command="alpha"))