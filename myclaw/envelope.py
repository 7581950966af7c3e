"""JSON response envelopes and request ids for the WSGI API."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from typing import Any

REQUEST_ID_KEY = "myclaw.request_id"


@dataclass
class Envelope:
    """The uniform body of every API response."""

    code: str
    message: str
    request_id: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message,
                "request_id": self.request_id, "data": self.data}


def _json_default(obj: Any) -> Any:
    if callable(getattr(obj, "to_dict", None)):
        return obj.to_dict()
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"cannot encode {type(obj).__name__} as JSON")


@dataclass
class JsonReply:
    """A ready-to-send JSON response."""

    envelope: Envelope
    status: HTTPStatus = HTTPStatus.OK

    @property
    def body(self) -> bytes:
        text = json.dumps(self.envelope.to_dict(), default=_json_default, separators=(",", ":"))
        for char, escaped in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026")):
            text = text.replace(char, escaped)
        return (text + "\n").encode("utf-8")

    @property
    def headers(self) -> list[tuple[str, str]]:
        return [("Content-Type", "application/json")]

    def __call__(self, start_response: Callable) -> list[bytes]:
        body = self.body
        start_response(f"{self.status.value} {self.status.phrase}",
                       [*self.headers, ("Content-Length", str(len(body)))])
        return [body]


def new_request_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def request_id_middleware(app: Callable) -> Callable:
    """Wrap a WSGI app so every request carries a new request id."""

    def wrapped(environ: dict, start_response: Callable) -> Iterable[bytes]:
        return app({**environ, REQUEST_ID_KEY: new_request_id("req")}, start_response)

    return wrapped


def request_id_from_environ(environ: Mapping[str, Any]) -> str:
    value = environ.get(REQUEST_ID_KEY, "")
    return value if isinstance(value, str) else ""


def write_ok(request_id: str, data: Any) -> JsonReply:
    return JsonReply(Envelope("OK", "success", request_id, data))


def write_ok_from_request(environ: Mapping[str, Any], data: Any) -> JsonReply:
    return write_ok(request_id_from_environ(environ), data)


def write_error(environ: Mapping[str, Any], code: str, message: str) -> JsonReply:
    """An error envelope, sent with status 200 like successes."""
    return JsonReply(Envelope(code, message, request_id_from_environ(environ), {}))