import json
from dataclasses import dataclass

from myclaw.envelope import (
    Envelope,
    new_request_id,
    request_id_from_environ,
    request_id_middleware,
    write_error,
    write_ok,
    write_ok_from_request,
)


class Recorder:
    def __init__(self):
        self.status = None
        self.headers = None

    def __call__(self, status, headers):
        self.status = status
        self.headers = dict(headers)


def run_reply(reply):
    recorder = Recorder()
    body = b"".join(reply(recorder))
    return recorder, body


def test_write_ok_wraps_envelope():
    recorder, body = run_reply(write_ok("req_1", {"status": "ok"}))
    assert recorder.status == "200 OK"
    assert recorder.headers["Content-Type"] == "application/json"
    assert recorder.headers["Content-Length"] == str(len(body))

    got = json.loads(body)
    assert got["code"] == "OK"
    assert got["message"] == "success"
    assert got["request_id"] == "req_1"
    assert got["data"] == {"status": "ok"}


def test_body_ends_with_newline():
    _, body = run_reply(write_ok("req_1", None))
    assert body.endswith(b"\n")
    assert json.loads(body)["data"] is None


def test_markup_characters_are_escaped():
    _, body = run_reply(write_ok("req_1", {"t": "<a>&"}))
    assert b"<" not in body and b">" not in body and b"&" not in body
    assert json.loads(body)["data"]["t"] == "<a>&"


def test_request_id_middleware_sets_id():
    seen = []

    def app(environ, start_response):
        seen.append(request_id_from_environ(environ))
        return write_ok_from_request(environ, {"n": 1})(start_response)

    wrapped = request_id_middleware(app)
    original = {"REQUEST_METHOD": "GET"}
    _, body = Recorder(), b"".join(wrapped(original, Recorder()))
    b"".join(wrapped(original, Recorder()))

    assert len(seen) == 2
    assert all(rid.startswith("req_") for rid in seen)
    assert seen[0] != seen[1]
    assert json.loads(body)["request_id"] == seen[0]
    assert request_id_from_environ(original) == ""


def test_request_id_from_environ_without_middleware():
    assert request_id_from_environ({}) == ""


def test_new_request_id_uses_prefix_and_is_unique():
    ids = {new_request_id("req") for _ in range(50)}
    assert len(ids) == 50
    assert all(rid.startswith("req_") and len(rid) > 4 for rid in ids)


def test_write_error_uses_empty_data_and_request_id():
    def app(environ, start_response):
        return write_error(environ, "NOT_FOUND", "bot not found")(start_response)

    recorder = Recorder()
    body = b"".join(request_id_middleware(app)({}, recorder))
    got = json.loads(body)
    assert recorder.status == "200 OK"
    assert got["code"] == "NOT_FOUND"
    assert got["message"] == "bot not found"
    assert got["data"] == {}
    assert got["request_id"].startswith("req_")


@dataclass
class Item:
    name: str
    count: int


class WithToDict:
    def to_dict(self):
        return {"via": "to_dict"}


def test_envelope_to_dict():
    env = Envelope(code="OK", message="success", request_id="req_1", data=[1])
    assert env.to_dict() == {"code": "OK", "message": "success", "request_id": "req_1", "data": [1]}