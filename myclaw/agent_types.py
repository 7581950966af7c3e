"""Value types shared by agent sessions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import timedelta


class SessionState(str, enum.Enum):
    STARTING = "starting"
    READY = "ready"
    BUSY = "busy"
    BROKEN = "broken"
    STOPPED = "stopped"


@dataclass
class Spec:
    """How an agent runtime is started for a bot."""

    bot_id: str = ""
    bot_name: str = ""
    type: str = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    work_dir: str = ""
    sqlite_path: str = ""
    env: dict[str, str] = field(default_factory=dict)
    timeout: timedelta = timedelta(0)
    queue_size: int = 0

    def copy(self) -> Spec:
        """A copy with its own argument list and environment."""
        return replace(self, args=list(self.args), env=dict(self.env))


@dataclass
class Request:
    bot_id: str = ""
    user_id: str = ""
    message_id: str = ""
    prompt: str = ""
    work_dir: str = ""
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    text: str = ""
    runtime_type: str = ""
    exit_code: int = 0
    duration: timedelta = timedelta(0)
    raw_output: str = ""