"""HTTP handlers and routing for the bot management API."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Protocol, TypeVar
from urllib.parse import parse_qs

from myclaw import dto
from myclaw.envelope import (
    JsonReply,
    request_id_middleware,
    write_error,
    write_ok_from_request,
)

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]

_INVALID_ARGUMENT = "INVALID_ARGUMENT"
_NOT_FOUND = "NOT_FOUND"
_INTERNAL_ERROR = "INTERNAL_ERROR"
_INVALID_BODY = "invalid request body"
_JSON_WHITESPACE = " \t\n\r"

_Model = TypeVar("_Model", bound=dto.JsonModel)


class InvalidArgumentError(ValueError):
    """A caller supplied an argument the service rejects."""


class NotFoundError(LookupError):
    """The requested bot, binding or other record does not exist."""


@dataclass
class CreateBotInput:
    external_user_id: str = ""
    name: str = ""
    channel_type: str = ""
    agent_capability_id: str = ""
    agent_mode: str = ""


@dataclass
class ConfigureBotAgentInput:
    bot_id: str = ""
    agent_capability_id: str = ""
    agent_mode: str = ""


@dataclass
class StartBotLoginInput:
    bot_id: str = ""


@dataclass
class SimulateMessageInput:
    bot_id: str = ""
    from_: str = ""
    text: str = ""
    message_id: str = ""
    recipient_id: str = ""


@dataclass
class SimulateMessageOutput:
    bot_id: str = ""
    from_: str = ""
    text: str = ""
    message_id: str = ""
    recipient_id: str = ""


class BotService(Protocol):
    """Operations on bots that the API exposes.

    Bot results carry ``bot_id``, ``name``, ``channel_type``,
    ``connection_status``, ``channel_account_id``, ``agent_capability_id`` and
    ``agent_mode``; login results carry ``bot_id``, ``binding_id``, ``status``,
    ``qr_code_payload``, ``qr_share_url`` and ``expires_at``, and refreshed
    logins also ``channel_account_id`` and ``connection_status``.
    """

    def list_agent_capabilities(self) -> Sequence[Any]: ...

    def create_bot(self, input: CreateBotInput) -> Any: ...

    def list_bots(self, external_user_id: str) -> Sequence[Any]: ...

    def configure_bot_agent(self, input: ConfigureBotAgentInput) -> Any: ...

    def start_login(self, input: StartBotLoginInput) -> Any: ...

    def delete_bot(self, bot_id: str) -> None: ...

    def refresh_login(self, binding_id: str) -> Any: ...


class MessageSimulator(Protocol):
    """Injects a message into a bot as if a user had sent it."""

    def simulate(self, input: SimulateMessageInput) -> SimulateMessageOutput:
        """Deliver the simulated message and describe what was delivered."""


@dataclass
class Dependencies:
    bot_service: BotService | None = None
    message_simulator: MessageSimulator | None = None


class _BadBody(Exception):
    pass


def _read_body(environ: dict) -> bytes:
    stream = environ.get("wsgi.input")
    if stream is None:
        return b""
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    return stream.read(length) if length > 0 else b""


def _decode_body(environ: dict, model: type[_Model]) -> _Model:
    text = _read_body(environ).decode("utf-8", errors="replace").lstrip(_JSON_WHITESPACE)
    try:
        value, _ = json.JSONDecoder().raw_decode(text)
        return model.from_dict({} if value is None else value)
    except ValueError as exc:
        raise _BadBody(str(exc)) from exc


def _query_value(environ: dict, name: str) -> str:
    values = parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True).get(name)
    return values[0] if values else ""


def _failure(environ: dict, exc: Exception, *, not_found: bool = True) -> JsonReply:
    if isinstance(exc, InvalidArgumentError):
        code = _INVALID_ARGUMENT
    elif not_found and isinstance(exc, NotFoundError):
        code = _NOT_FOUND
    else:
        code = _INTERNAL_ERROR
    return write_error(environ, code, str(exc))


def _endpoint(handle: Callable[[dict], JsonReply]) -> WSGIApp:
    def app(environ: dict, start_response: Callable) -> Iterable[bytes]:
        return handle(environ)(start_response)

    return app


def _bot_body(model: type[_Model], result: Any) -> _Model:
    return model(
        bot_id=result.bot_id,
        name=result.name,
        channel_type=result.channel_type,
        connection_status=result.connection_status,
        channel_account_id=result.channel_account_id,
        agent_capability_id=result.agent_capability_id,
        agent_mode=result.agent_mode,
    )


def list_agent_capabilities(service: BotService) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        try:
            items = service.list_agent_capabilities()
        except Exception as exc:
            return write_error(environ, _INTERNAL_ERROR, str(exc))
        body = [
            dto.AgentCapabilityResponse(
                id=item.id,
                key=item.key,
                label=item.label,
                command=item.command,
                available=item.available,
                detection_source=item.detection_source,
                supported_modes=list(item.supported_modes or []),
            )
            for item in items
        ]
        return write_ok_from_request(environ, body)

    return _endpoint(handle)


def create_bot(service: BotService) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        try:
            req = _decode_body(environ, dto.CreateBotRequest)
        except _BadBody:
            return write_error(environ, _INVALID_ARGUMENT, _INVALID_BODY)
        if not req.user_id or not req.name or not req.channel_type:
            return write_error(
                environ, _INVALID_ARGUMENT, "user_id, name and channel_type are required"
            )
        try:
            result = service.create_bot(
                CreateBotInput(
                    external_user_id=req.user_id,
                    name=req.name,
                    channel_type=req.channel_type,
                    agent_capability_id=req.agent_capability_id,
                    agent_mode=req.agent_mode,
                )
            )
        except Exception as exc:
            return _failure(environ, exc, not_found=False)
        return write_ok_from_request(environ, _bot_body(dto.CreateBotResponse, result))

    return _endpoint(handle)


def list_bots(service: BotService) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        user_id = _query_value(environ, "user_id")
        if not user_id:
            return write_error(environ, _INVALID_ARGUMENT, "user_id is required")
        try:
            items = service.list_bots(user_id)
        except Exception as exc:
            return _failure(environ, exc, not_found=False)
        return write_ok_from_request(environ, [_bot_body(dto.BotResponse, item) for item in items])

    return _endpoint(handle)


def configure_bot_agent(service: BotService) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        try:
            req = _decode_body(environ, dto.ConfigureBotAgentRequest)
        except _BadBody:
            return write_error(environ, _INVALID_ARGUMENT, _INVALID_BODY)
        if not req.bot_id or not req.agent_capability_id or not req.agent_mode:
            return write_error(
                environ,
                _INVALID_ARGUMENT,
                "bot_id, agent_capability_id and agent_mode are required",
            )
        try:
            result = service.configure_bot_agent(
                ConfigureBotAgentInput(
                    bot_id=req.bot_id,
                    agent_capability_id=req.agent_capability_id,
                    agent_mode=req.agent_mode,
                )
            )
        except Exception as exc:
            return _failure(environ, exc)
        return write_ok_from_request(environ, _bot_body(dto.ConfigureBotAgentResponse, result))

    return _endpoint(handle)


def connect_bot(service: BotService) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        try:
            req = _decode_body(environ, dto.ConnectBotRequest)
        except _BadBody:
            return write_error(environ, _INVALID_ARGUMENT, _INVALID_BODY)
        if not req.bot_id:
            return write_error(environ, _INVALID_ARGUMENT, "bot_id is required")
        try:
            result = service.start_login(StartBotLoginInput(bot_id=req.bot_id))
        except Exception as exc:
            return _failure(environ, exc)
        return write_ok_from_request(
            environ,
            dto.ConnectBotResponse(
                bot_id=result.bot_id,
                binding_id=result.binding_id,
                status=result.status,
                qr_code_payload=result.qr_code_payload,
                qr_share_url=result.qr_share_url,
                expires_at=result.expires_at,
            ),
        )

    return _endpoint(handle)


def delete_bot(service: BotService) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        try:
            req = _decode_body(environ, dto.DeleteBotRequest)
        except _BadBody:
            return write_error(environ, _INVALID_ARGUMENT, _INVALID_BODY)
        if not req.bot_id:
            return write_error(environ, _INVALID_ARGUMENT, "bot_id is required")
        try:
            service.delete_bot(req.bot_id)
        except Exception as exc:
            return _failure(environ, exc)
        return write_ok_from_request(environ, {"bot_id": req.bot_id})

    return _endpoint(handle)


def simulate_bot_message(simulator: MessageSimulator | None) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        try:
            req = _decode_body(environ, dto.SimulateBotMessageRequest)
        except _BadBody:
            return write_error(environ, _INVALID_ARGUMENT, _INVALID_BODY)
        required = (req.bot_id, req.from_, req.recipient_id, req.text)
        if any(not value.strip() for value in required):
            return write_error(
                environ, _INVALID_ARGUMENT, "bot_id, from, recipient_id and text are required"
            )
        if simulator is None:
            return write_error(environ, _INTERNAL_ERROR, "message simulator is not configured")
        try:
            result = simulator.simulate(
                SimulateMessageInput(
                    bot_id=req.bot_id,
                    from_=req.from_,
                    text=req.text,
                    message_id=req.message_id,
                    recipient_id=req.recipient_id,
                )
            )
        except Exception as exc:
            return _failure(environ, exc)
        return write_ok_from_request(
            environ,
            dto.SimulateBotMessageResponse(
                bot_id=result.bot_id,
                from_=result.from_,
                text=result.text,
                message_id=result.message_id,
                recipient_id=result.recipient_id,
            ),
        )

    return _endpoint(handle)


def refresh_bot_login(service: BotService) -> WSGIApp:
    def handle(environ: dict) -> JsonReply:
        binding_id = _query_value(environ, "binding_id")
        if not binding_id:
            return write_error(environ, _INVALID_ARGUMENT, "binding_id is required")
        try:
            result = service.refresh_login(binding_id)
        except Exception as exc:
            return _failure(environ, exc)
        return write_ok_from_request(
            environ,
            dto.RefreshBotLoginResponse(
                bot_id=result.bot_id,
                binding_id=result.binding_id,
                status=result.status,
                qr_code_payload=result.qr_code_payload,
                qr_share_url=result.qr_share_url,
                expires_at=result.expires_at,
                channel_account_id=result.channel_account_id,
                connection_status=result.connection_status,
            ),
        )

    return _endpoint(handle)


def _plain(
    start_response: Callable, status: HTTPStatus, text: str, extra: list[tuple[str, str]]
) -> list[bytes]:
    body = (text + "\n").encode("utf-8")
    start_response(
        f"{status.value} {status.phrase}",
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
            ("Content-Length", str(len(body))),
            *extra,
        ],
    )
    return [body]


class Router:
    """A WSGI application dispatching on exact method and path."""

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, WSGIApp]] = {}

    def handle(self, method: str, path: str, handler: WSGIApp) -> None:
        """Register a handler; registering the same route twice is an error."""
        methods = self._routes.setdefault(path, {})
        method = method.upper()
        if method in methods:
            raise ValueError(f"route {method} {path} is already registered")
        methods[method] = handler

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO") or "/"
        method = (environ.get("REQUEST_METHOD") or "GET").upper()
        methods = self._routes.get(path)
        if methods is None:
            return _plain(start_response, HTTPStatus.NOT_FOUND, "404 page not found", [])
        handler = methods.get(method)
        if handler is None and method == "HEAD":
            handler = methods.get("GET")
        if handler is None:
            allowed = set(methods)
            if "GET" in allowed:
                allowed.add("HEAD")
            return _plain(
                start_response,
                HTTPStatus.METHOD_NOT_ALLOWED,
                "Method Not Allowed",
                [("Allow", ", ".join(sorted(allowed)))],
            )
        return handler(environ, start_response)


def register_routes(router: Router, deps: Dependencies) -> None:
    """Mount every API endpoint, each wrapped to carry a request id."""
    service = deps.bot_service
    routes = [
        ("POST", "/api/v1/bots/create", create_bot(service)),
        ("GET", "/api/v1/bots/list", list_bots(service)),
        ("POST", "/api/v1/bots/agent", configure_bot_agent(service)),
        ("POST", "/api/v1/bots/connect", connect_bot(service)),
        ("POST", "/api/v1/bots/delete", delete_bot(service)),
        ("POST", "/api/v1/bots/simulate-message", simulate_bot_message(deps.message_simulator)),
        ("GET", "/api/v1/bots/connect", refresh_bot_login(service)),
        ("GET", "/api/v1/agent-capabilities", list_agent_capabilities(service)),
    ]
    for method, path, handler in routes:
        router.handle(method, path, request_id_middleware(handler))