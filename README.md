# myclaw

Building blocks for a chat bot control plane, using only the standard library:

- `myclaw.agent_types`: the value types `Spec`, `Request`, `Response` and the `SessionState` enum (`starting`, `ready`, `busy`, `broken`, `stopped`).
- `myclaw.session`: the `Driver` and `SessionRuntime` protocols and `Session`, which runs one request at a time on a runtime and tracks its state.
- `myclaw.envelope`: the JSON `Envelope` (`code`, `message`, `request_id`, `data`) that every API reply uses, `JsonReply`, and request IDs for WSGI.
- `myclaw.dto`: dataclasses for the API's request and response bodies, with `to_dict()` and `from_dict()`.
- `myclaw.handlers`: WSGI handlers for the bot endpoints, a small `Router`, and `register_routes`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Agent sessions

```python
from myclaw.agent_types import Request, Response, Spec
from myclaw.session import Session


class EchoRuntime:
    def run(self, request):
        return Response(text=request.prompt)

    def close(self):
        pass


class EchoDriver:
    def init(self, spec):
        return EchoRuntime()


session = Session(EchoDriver(), Spec(command="codex"))
print(session.send(Request(prompt="hello")).text)  # hello
session.close()
print(session.state)  # SessionState.STOPPED
```

- `Session(driver, spec)` calls `driver.init` once, with a copy of the spec. Later changes to the `args` or `env` you passed in do not reach the session.
- `send` holds the session lock for the whole run, so concurrent calls run one after another. If the runtime raises, the state becomes `BROKEN` and the exception propagates. After a successful `close`, `send` raises `RuntimeError`.
- `matches(spec)` tells whether the session was created from an equal spec.
- `close` does not hold the lock while the runtime closes. If the runtime's `close` raises, the error propagates and the session keeps its runtime and state.

## Envelopes and request IDs

```python
from myclaw.envelope import write_ok

reply = write_ok("req_1", {"status": "ok"})
reply.body  # b'{"code":"OK","message":"success","request_id":"req_1","data":{"status":"ok"}}\n'
```

- `write_ok`, `write_ok_from_request` and `write_error` return a `JsonReply`. A `JsonReply` is called with a WSGI `start_response` and returns the body.
- Errors are sent with status 200 and carry an empty object as `data`.
- `request_id_middleware(app)` gives each request a fresh `req_…` ID in the environ. `request_id_from_environ` reads it back.

## Serving the API

```python
from wsgiref.simple_server import make_server

from myclaw.handlers import Dependencies, Router, register_routes

router = Router()
register_routes(router, Dependencies(bot_service=my_bot_service, message_simulator=my_simulator))
make_server("localhost", 8080, router).serve_forever()
```

`my_bot_service` must provide the operations of the `BotService` protocol. `my_simulator` must implement `MessageSimulator.simulate`. A service reports failures by raising `InvalidArgumentError` or `NotFoundError`.

Routes:

| Method | Path | Handler |
| --- | --- | --- |
| POST | `/api/v1/bots/create` | `create_bot` |
| GET | `/api/v1/bots/list?user_id=…` | `list_bots` |
| POST | `/api/v1/bots/agent` | `configure_bot_agent` |
| POST | `/api/v1/bots/connect` | `connect_bot` |
| GET | `/api/v1/bots/connect?binding_id=…` | `refresh_bot_login` |
| POST | `/api/v1/bots/delete` | `delete_bot` |
| POST | `/api/v1/bots/simulate-message` | `simulate_bot_message` |
| GET | `/api/v1/agent-capabilities` | `list_agent_capabilities` |

Error codes:

- `INVALID_ARGUMENT`: the request body is malformed, required fields are missing, or the service raised `InvalidArgumentError`.
- `NOT_FOUND`: the service raised `NotFoundError`. The create and list endpoints report this as `INTERNAL_ERROR`.
- `INTERNAL_ERROR`: any other failure.

When no route matches, `Router` answers with a plain-text 404. When the path matches but the method does not, it answers with a plain-text 405 and an `Allow` header.

## What is not included

The package has no bot service implementation, no storage, no messaging channel, and no driver registry or multi-session manager. It also has no command-line program. The caller supplies the `BotService`, the `MessageSimulator` and the WSGI server.