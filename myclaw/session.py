"""A single agent session bound to one initialised runtime."""

from __future__ import annotations

import threading
from typing import Protocol

from myclaw.agent_types import Request, Response, SessionState, Spec


class SessionRuntime(Protocol):
    """A running agent that answers requests."""

    def run(self, request: Request) -> Response:
        """Process one request and return the agent's response."""

    def close(self) -> None:
        """Release the runtime's resources."""


class Driver(Protocol):
    """Creates session runtimes from a spec."""

    def init(self, spec: Spec) -> SessionRuntime:
        """Start a runtime for the given spec."""


class Session:
    """Serialises requests to one runtime and tracks its state."""

    def __init__(self, driver: Driver, spec: Spec) -> None:
        cloned = spec.copy()
        self._runtime: SessionRuntime | None = driver.init(cloned)
        self._spec = cloned
        self._state = SessionState.READY
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        """Current state of the session."""
        with self._lock:
            return self._state

    def send(self, request: Request) -> Response:
        """Run a request on the runtime; a failure marks the session broken."""
        with self._lock:
            runtime = self._runtime
            if runtime is None:
                raise RuntimeError("session is closed")
            self._state = SessionState.BUSY
            try:
                response = runtime.run(request)
            except BaseException:
                self._state = SessionState.BROKEN
                raise
            self._state = SessionState.READY
            return response

    def matches(self, spec: Spec) -> bool:
        """Whether the session was created from an equal spec."""
        with self._lock:
            return self._spec == spec

    def close(self) -> None:
        """Close the runtime without holding the session lock while it closes."""
        with self._lock:
            runtime = self._runtime
            if runtime is None:
                self._state = SessionState.STOPPED
                return

        runtime.close()

        with self._lock:
            if self._runtime is not None:
                self._runtime = None
                self._state = SessionState.STOPPED