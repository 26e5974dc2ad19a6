"""Server configuration: defaults, loading from YAML and the global instance."""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

SERVER_CONFIG_PATH = "./configs/eventmesh-server.yaml"

# Plugin type of connectors: standalone or rocketmq, standalone by default.
CONNECTOR_PLUGIN_TYPE = "connector"
# Plugin type of registries: nacos or etcd, nacos by default.
REGISTRY_PLUGIN_TYPE = "registry"


@dataclass
class Common:
    """Identity of this server within its cluster."""

    name: str = ""
    registry_name: str = ""
    cluster: str = ""
    env: str = ""
    idc: str = ""


@dataclass
class TLSOption:
    """TLS settings of a listener."""

    enable_insecure: bool = False
    ca: str = ""
    certfile: str = ""
    keyfile: str = ""


@dataclass
class HTTPOption:
    """Settings of the HTTP server."""

    port: str = ""
    tls: TLSOption | None = None


@dataclass
class GRPCOption:
    """Settings of the gRPC server and its worker pools."""

    port: str = ""
    tls: TLSOption | None = None
    send_pool_size: int = 0
    subscribe_pool_size: int = 0
    retry_pool_size: int = 0
    push_message_pool_size: int = 0
    reply_pool_size: int = 0
    msg_req_num_per_second: float = 0.0
    session_expired_in_mills: timedelta = field(default_factory=timedelta)
    send_message_timeout: timedelta = field(default_factory=timedelta)


@dataclass
class TCPOption:
    """Settings of the TCP server."""

    port: str = ""
    multicore: bool = False
    tls: TLSOption | None = None


@dataclass
class PProfOption:
    """Settings of the profiling server."""

    enable: bool = False
    port: str = ""
    tls: TLSOption | None = None


@dataclass
class ServerOptions:
    """The listeners of the server."""

    http: HTTPOption | None = None
    grpc: GRPCOption | None = None
    tcp: TCPOption | None = None


_DURATION_UNITS: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_UNIT_PATTERN = "ns|us|µs|μs|ms|s|m|h"
_NUMBER_PATTERN = r"\d+\.?\d*|\.\d+"
_DURATION_RE = re.compile(rf"(?:(?:{_NUMBER_PATTERN})(?:{_UNIT_PATTERN}))+")
_DURATION_PART_RE = re.compile(rf"({_NUMBER_PATTERN})({_UNIT_PATTERN})")


def parse_duration(value: Any) -> timedelta:
    """Parse a duration such as "5s", "1h30m" or "100ms"; integers count nanoseconds."""
    if value is None:
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise TypeError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(microseconds=int(value) / 1000)
    if not isinstance(value, str):
        raise TypeError(f"invalid duration {value!r}")
    text = value
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text or not _DURATION_RE.fullmatch(text):
        raise ValueError(f'time: invalid duration "{value}"')
    nanoseconds = sum(
        (Decimal(number) * _DURATION_UNITS[unit]
         for number, unit in _DURATION_PART_RE.findall(text)),
        Decimal(0),
    )
    return sign * timedelta(microseconds=float(nanoseconds / 1000))


Converter = Callable[[str, Any, Any], Any]


def _to_str(key: str, current: Any, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (Mapping, list, tuple)):
        raise TypeError(f"{key}: expected a scalar, got {type(value).__name__}")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_int(key: str, current: Any, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key}: expected an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    return int(value)


def _to_float(key: str, current: Any, value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key}: expected a number, got {value!r}")
    return float(value)


def _to_bool(key: str, current: Any, value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise TypeError(f"{key}: expected a boolean, got {value!r}")
    return value


def _to_duration(key: str, current: Any, value: Any) -> timedelta:
    try:
        return parse_duration(value)
    except (TypeError, ValueError) as exc:
        raise type(exc)(f"{key}: {exc}") from exc


def _apply(target: Any, data: Mapping[str, Any], fields: Mapping[str, tuple[str, Converter]]) -> None:
    for yaml_key, (attr, convert) in fields.items():
        if yaml_key in data:
            setattr(target, attr, convert(yaml_key, getattr(target, attr), data[yaml_key]))


def _section(factory: Callable[[], Any], fields: Mapping[str, tuple[str, Converter]]) -> Converter:
    def convert(key: str, current: Any, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, Mapping):
            raise TypeError(f"{key}: expected a mapping, got {type(value).__name__}")
        target = current if current is not None else factory()
        _apply(target, value, fields)
        return target

    return convert


_TLS_FIELDS = {
    "enable-secure": ("enable_insecure", _to_bool),
    "ca": ("ca", _to_str),
    "certfile": ("certfile", _to_str),
    "keyfile": ("keyfile", _to_str),
}
_TLS = _section(TLSOption, _TLS_FIELDS)

_COMMON_FIELDS = {
    "name": ("name", _to_str),
    "registry-name": ("registry_name", _to_str),
    "cluster": ("cluster", _to_str),
    "env": ("env", _to_str),
    "idc": ("idc", _to_str),
}

_HTTP_FIELDS = {
    "port": ("port", _to_str),
    "tls": ("tls", _TLS),
}

_GRPC_FIELDS = {
    "port": ("port", _to_str),
    "tls": ("tls", _TLS),
    "send-pool-size": ("send_pool_size", _to_int),
    "subscribe-pool-size": ("subscribe_pool_size", _to_int),
    "retry-pool-size": ("retry_pool_size", _to_int),
    "push-message-pool-size": ("push_message_pool_size", _to_int),
    "reply-pool-size": ("reply_pool_size", _to_int),
    "msg-req-num-per-second": ("msg_req_num_per_second", _to_float),
    "session-expired-in-mills": ("session_expired_in_mills", _to_duration),
    "send-message-timeout": ("send_message_timeout", _to_duration),
}

_TCP_FIELDS = {
    "port": ("port", _to_str),
    "multicore": ("multicore", _to_bool),
    "tls": ("tls", _TLS),
}

_PPROF_FIELDS = {
    "enable": ("enable", _to_bool),
    "port": ("port", _to_str),
    "tls": ("tls", _TLS),
}

_SERVER_FIELDS = {
    "http": ("http", _section(HTTPOption, _HTTP_FIELDS)),
    "grpc": ("grpc", _section(GRPCOption, _GRPC_FIELDS)),
    "tcp": ("tcp", _section(TCPOption, _TCP_FIELDS)),
}


def _server(key: str, current: Any, value: Any) -> ServerOptions:
    if value is None:
        return ServerOptions()
    if not isinstance(value, Mapping):
        raise TypeError(f"{key}: expected a mapping, got {type(value).__name__}")
    _apply(current, value, _SERVER_FIELDS)
    return current


def _active_plugins(key: str, current: Any, value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{key}: expected a mapping, got {type(value).__name__}")
    merged = dict(current)
    for plugin_type, name in value.items():
        merged[str(plugin_type)] = _to_str(f"{key}.{plugin_type}", None, name)
    return merged


def _plugins(key: str, current: Any, value: Any) -> dict[str, dict[str, Any]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{key}: expected a mapping, got {type(value).__name__}")
    merged = dict(current)
    for plugin_type, entries in value.items():
        if entries is None:
            merged[str(plugin_type)] = {}
        elif isinstance(entries, Mapping):
            merged[str(plugin_type)] = {str(name): conf for name, conf in entries.items()}
        else:
            raise TypeError(f"{key}.{plugin_type}: expected a mapping")
    return merged


_CONFIG_FIELDS = {
    "common": ("common", _section(Common, _COMMON_FIELDS)),
    "server": ("server", _server),
    "pprof": ("pprof", _section(PProfOption, _PPROF_FIELDS)),
    "active-plugins": ("active_plugins", _active_plugins),
    "plugins": ("plugins", _plugins),
}


@dataclass
class Config:
    """The whole server configuration."""

    common: Common | None = None
    server: ServerOptions = field(default_factory=ServerOptions)
    pprof: PProfOption | None = None
    active_plugins: dict[str, str] = field(default_factory=dict)
    plugins: dict[str, dict[str, Any]] = field(default_factory=dict)

    def update_from_mapping(self, data: Mapping[str, Any] | None) -> Config:
        """Overlay a parsed YAML document onto this configuration and return it."""
        if data is None:
            return self
        if not isinstance(data, Mapping):
            raise TypeError(f"config: expected a mapping, got {type(data).__name__}")
        _apply(self, data, _CONFIG_FIELDS)
        return self


def _default_tls() -> TLSOption:
    return TLSOption(enable_insecure=False, ca="", certfile="", keyfile="")


def default_config() -> Config:
    """Return a fresh configuration holding the built-in defaults."""
    return Config(
        common=Common(
            name="eventmesh-server",
            registry_name="eventmesh-go",
            cluster="1",
            env="{}",
            idc="idc1",
        ),
        server=ServerOptions(
            http=HTTPOption(port="10010", tls=_default_tls()),
            grpc=GRPCOption(
                port="10010",
                tls=_default_tls(),
                send_pool_size=10,
                subscribe_pool_size=10,
                retry_pool_size=10,
                push_message_pool_size=10,
                reply_pool_size=10,
                msg_req_num_per_second=5.0,
                session_expired_in_mills=timedelta(seconds=5),
                send_message_timeout=timedelta(seconds=5),
            ),
            tcp=TCPOption(port="10010", multicore=False, tls=_default_tls()),
        ),
        pprof=PProfOption(enable=True, port="10011"),
        active_plugins={"connector": "standalone", "log": "default"},
        plugins={"connector": {"standalone": None}},
    )


def load_config(config_path: str | Path) -> Config:
    """Load a configuration file over the defaults."""
    text = Path(config_path).read_text(encoding="utf-8")
    return default_config().update_from_mapping(yaml.safe_load(text))


_global_lock = threading.Lock()
_global_config: Config = default_config()


def global_config() -> Config:
    """Return the global configuration."""
    with _global_lock:
        return _global_config


def set_global_config(cfg: Config) -> None:
    """Replace the global configuration."""
    global _global_config
    with _global_lock:
        _global_config = cfg


def load_global_config(config_path: str | Path) -> None:
    """Load a configuration file and make it the global configuration."""
    set_global_config(load_config(config_path))