"""Request and response bodies of the HTTP API."""

import re
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_TIME_RE = re.compile(r"(\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d)(?:\.(\d+))?(Z|[+-]\d\d:\d\d)")


def _optional(default: Any = "", key: str = "") -> Any:
    return field(default=default, metadata={"omitempty": True, "key": key})


def _key(item: Any) -> str:
    return item.metadata.get("key") or item.name


def format_time(value: datetime) -> str:
    """RFC 3339 with trailing zero fractions trimmed."""
    offset = value.utcoffset() or timedelta(0)
    text = value.replace(tzinfo=None, microsecond=0).isoformat()
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    if not offset:
        return text + "Z"
    minutes = abs(int(offset.total_seconds())) // 60
    sign = "+" if offset > timedelta(0) else "-"
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time(text: str) -> datetime:
    match = _TIME_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp: {text!r}")
    base, fraction, offset = match.groups()
    offset = "+00:00" if offset == "Z" else offset
    return datetime.fromisoformat(f"{base}.{(fraction or '')[:6].ljust(6, '0')}{offset}")


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_time(value)
    if isinstance(value, JsonModel):
        return value.to_dict()
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _decode(name: str, hint: Any, value: Any) -> Any:
    if hint is Any:
        return value
    if typing.get_origin(hint) in (Union, types.UnionType):
        hint = next(arg for arg in typing.get_args(hint) if arg is not type(None))
    if hint is datetime and isinstance(value, str):
        return parse_time(value)
    origin = typing.get_origin(hint) or hint
    if hint is not datetime and isinstance(value, origin):
        if origin is not list or all(isinstance(item, str) for item in value):
            return origin(value) if origin in (list, dict) else value
    raise ValueError(f"field {name}: unexpected value {value!r}")


@dataclass
class JsonModel:
    """Base for API bodies; JSON keys are the field names."""

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping; optional fields are left out when empty."""
        result: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.metadata.get("omitempty") and not value:
                continue
            result[_key(item)] = _encode(value)
        return result

    @classmethod
    def from_dict(cls, data: Any) -> Any:
        """Build from decoded JSON; unknown keys and nulls are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError("expected a JSON object")
        kwargs = {}
        for item in fields(cls):
            value = data.get(_key(item))
            if value is not None:
                kwargs[item.name] = _decode(item.name, item.type, value)
        return cls(**kwargs)


@dataclass
class AgentCapabilityResponse(JsonModel):
    id: str = ""
    key: str = ""
    label: str = ""
    command: str = ""
    available: bool = False
    detection_source: str = _optional()
    supported_modes: list[str] = field(default_factory=list)


@dataclass
class CreateBotRequest(JsonModel):
    user_id: str = ""
    name: str = ""
    channel_type: str = ""
    agent_capability_id: str = _optional()
    agent_mode: str = _optional()


@dataclass
class BotResponse(JsonModel):
    bot_id: str = ""
    name: str = ""
    channel_type: str = ""
    connection_status: str = ""
    channel_account_id: str = _optional()
    agent_capability_id: str = _optional()
    agent_mode: str = _optional()


@dataclass
class CreateBotResponse(BotResponse):
    pass


ConfigureBotAgentResponse = BotResponse


@dataclass
class ConfigureBotAgentRequest(JsonModel):
    bot_id: str = ""
    agent_capability_id: str = ""
    agent_mode: str = ""


@dataclass
class ConnectBotRequest(JsonModel):
    bot_id: str = ""


@dataclass
class DeleteBotRequest(JsonModel):
    bot_id: str = ""


@dataclass
class SimulateBotMessageRequest(JsonModel):
    bot_id: str = ""
    from_: str = field(default="", metadata={"key": "from"})
    text: str = ""
    message_id: str = _optional()
    recipient_id: str = _optional()


@dataclass
class SimulateBotMessageResponse(JsonModel):
    bot_id: str = ""
    from_: str = field(default="", metadata={"key": "from"})
    text: str = ""
    message_id: str = ""
    recipient_id: str = ""


@dataclass
class ConnectBotResponse(JsonModel):
    bot_id: str = ""
    binding_id: str = ""
    status: str = ""
    qr_code_payload: str = ""
    qr_share_url: str = ""
    expires_at: Any = _optional(None)


@dataclass
class RefreshBotLoginResponse(JsonModel):
    bot_id: str = ""
    binding_id: str = ""
    status: str = ""
    qr_code_payload: str = ""
    qr_share_url: str = ""
    expires_at: Any = _optional(None)
    channel_account_id: str = _optional()
    connection_status: str = ""


@dataclass
class ChannelAccountItem(JsonModel):
    id: str = ""
    channel_type: str = ""
    account_uid: str = ""
    display_name: str = ""
    avatar_url: str = ""
    last_bound_at: Optional[datetime] = _optional(None)
    created_at: datetime = _ZERO_TIME


@dataclass
class CreateBindingRequest(JsonModel):
    user_id: str = ""
    channel_type: str = ""


@dataclass
class CreateBindingResponse(JsonModel):
    binding_id: str = ""
    status: str = ""
    qr_code_payload: str = ""
    expires_at: Optional[datetime] = _optional(None)


@dataclass
class BindingDetailResponse(JsonModel):
    binding_id: str = ""
    status: str = ""
    channel_type: str = ""
    channel_account_id: str = _optional()
    display_name: str = _optional()
    account_uid: str = _optional()
    expires_at: Optional[datetime] = _optional(None)
    error_message: str = _optional()


@dataclass
class RuntimeConfigResponse(JsonModel):
    channel_type: str = ""
    channel_account_id: str = ""
    account_uid: str = ""
    credential_blob: dict[str, Any] = field(default_factory=dict, metadata={"omitempty": True})
    runtime_options: dict[str, Any] = field(default_factory=dict, metadata={"omitempty": True})