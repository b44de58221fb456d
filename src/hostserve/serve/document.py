"""Serve config document model.

The serve config is the only artifact hostserve produces. It is persisted as
JSON in this shape:

    {
        "TCP": {
            "443": {"HTTPS": true}
        },
        "Web": {
            "node.example.ts.net:443": {
                "Handlers": {
                    "/": {"Proxy": "http://127.0.0.1:3000"},
                    "/docs/": {"Path": "/srv/docs"},
                    "/hello": {"Text": "Hello, world!"}
                }
            }
        },
        "AllowIngress": {
            "node.example.ts.net:443": true
        }
    }

HTTP handlers and TCP port handlers are tagged variants: each concrete class
serializes to exactly one of the mutually exclusive JSON keys, so a handler
with two modes set cannot be built in memory. The decoder rejects documents
that populate none or several of them.

Map fields distinguish ``None`` (absent) from an empty mapping, matching the
stored document, so equality checks never report a change that the JSON form
would not show.
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hostserve.core.exceptions import MalformedDocumentError

MAX_PORT = 65535


class HandlerKind(Enum):
    """Types of HTTP handlers that can be mounted."""

    PATH = "path"
    PROXY = "proxy"
    TEXT = "text"


_HANDLER_KEYS: dict[HandlerKind, str] = {
    HandlerKind.PATH: "Path",
    HandlerKind.PROXY: "Proxy",
    HandlerKind.TEXT: "Text",
}


@dataclass
class HTTPHandler(ABC):
    """Base class for the handlers served under a mount point."""

    @property
    @abstractmethod
    def kind(self) -> HandlerKind:
        """Return the type of this handler."""
        ...

    @property
    @abstractmethod
    def value(self) -> str:
        """Return the handler argument (path, proxy URL or text)."""
        ...

    def to_dict(self) -> dict[str, Any]:
        return {_HANDLER_KEYS[self.kind]: self.value}


@dataclass
class PathHandler(HTTPHandler):
    """Serve a file or directory from an absolute filesystem path."""

    path: str

    @property
    def kind(self) -> HandlerKind:
        return HandlerKind.PATH

    @property
    def value(self) -> str:
        return self.path


@dataclass
class ProxyHandler(HTTPHandler):
    """Reverse proxy to a normalized loopback base URL."""

    proxy: str

    @property
    def kind(self) -> HandlerKind:
        return HandlerKind.PROXY

    @property
    def value(self) -> str:
        return self.proxy


@dataclass
class TextHandler(HTTPHandler):
    """Respond with a literal body."""

    text: str

    @property
    def kind(self) -> HandlerKind:
        return HandlerKind.TEXT

    @property
    def value(self) -> str:
        return self.text


_HANDLER_TYPES: dict[str, type[HTTPHandler]] = {
    "Path": PathHandler,
    "Proxy": ProxyHandler,
    "Text": TextHandler,
}


def handler_from_dict(data: Any) -> HTTPHandler:
    """Create an HTTP handler from its JSON representation.

    Raises:
        MalformedDocumentError: If the object is not a mapping with exactly
            one string-valued Path, Proxy or Text key.
    """
    if not isinstance(data, dict):
        raise MalformedDocumentError(f"handler must be an object, got {_type_name(data)}")

    unknown = set(data) - set(_HANDLER_TYPES)
    if unknown:
        raise MalformedDocumentError(f"unknown handler field(s): {', '.join(sorted(unknown))}")

    present = [key for key in _HANDLER_TYPES if data.get(key) is not None]
    if len(present) > 1:
        # Empty strings are the zero value of the stored form and mean "unset"
        # next to a populated variant.
        present = [key for key in present if data[key] != ""]
    if len(present) != 1:
        raise MalformedDocumentError(
            "handler must set exactly one of Path, Proxy or Text"
            f" (got {len(present)})"
        )

    key = present[0]
    value = data[key]
    if not isinstance(value, str):
        raise MalformedDocumentError(f"handler {key} must be a string")
    return _HANDLER_TYPES[key](value)


@dataclass
class TCPPortHandler(ABC):
    """Base class for what listens on a public TCP port."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        ...


@dataclass
class HTTPSPortHandler(TCPPortHandler):
    """Terminate TLS and serve the Web table for this port."""

    def to_dict(self) -> dict[str, Any]:
        return {"HTTPS": True}


@dataclass
class TCPForwardHandler(TCPPortHandler):
    """Forward raw TCP connections to a local ``host:port``.

    When ``terminate_tls`` is set, TLS for that DNS name is terminated
    locally and plaintext is forwarded.
    """

    target: str
    terminate_tls: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"TCPForward": self.target}
        if self.terminate_tls:
            data["TerminateTLS"] = self.terminate_tls
        return data


def tcp_handler_from_dict(data: Any) -> TCPPortHandler:
    """Create a TCP port handler from its JSON representation."""
    if not isinstance(data, dict):
        raise MalformedDocumentError(f"TCP handler must be an object, got {_type_name(data)}")

    unknown = set(data) - {"HTTPS", "TCPForward", "TerminateTLS"}
    if unknown:
        raise MalformedDocumentError(
            f"unknown TCP handler field(s): {', '.join(sorted(unknown))}"
        )

    https = data.get("HTTPS", False)
    forward = data.get("TCPForward") or ""
    terminate = data.get("TerminateTLS") or ""
    if not isinstance(https, bool):
        raise MalformedDocumentError("TCP handler HTTPS must be a boolean")
    if not isinstance(forward, str) or not isinstance(terminate, str):
        raise MalformedDocumentError("TCP handler TCPForward and TerminateTLS must be strings")

    if https and forward:
        raise MalformedDocumentError("TCP handler cannot set both HTTPS and TCPForward")
    if https:
        if terminate:
            raise MalformedDocumentError("TerminateTLS is only valid with TCPForward")
        return HTTPSPortHandler()
    if forward:
        return TCPForwardHandler(target=forward, terminate_tls=terminate or None)
    raise MalformedDocumentError("TCP handler must set HTTPS or TCPForward")


@dataclass
class WebServerConfig:
    """Handlers served for one HostPort, keyed by mount point."""

    handlers: dict[str, HTTPHandler] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.handlers is not None:
            data["Handlers"] = {mp: h.to_dict() for mp, h in self.handlers.items()}
        return data

    @classmethod
    def from_dict(cls, data: Any) -> WebServerConfig:
        if not isinstance(data, dict):
            raise MalformedDocumentError(
                f"web server config must be an object, got {_type_name(data)}"
            )
        unknown = set(data) - {"Handlers"}
        if unknown:
            raise MalformedDocumentError(
                f"unknown web server field(s): {', '.join(sorted(unknown))}"
            )

        raw = data.get("Handlers")
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise MalformedDocumentError("Handlers must be an object")
        return cls(handlers={str(mp): handler_from_dict(h) for mp, h in raw.items()})


@dataclass
class ServeConfig:
    """The persisted serve configuration.

    Attributes:
        tcp: Public port to TCP port handler.
        web: HostPort (``"name:port"``) to web server config.
        allow_ingress: HostPorts reachable from the public internet.
    """

    tcp: dict[int, TCPPortHandler] | None = None
    web: dict[str, WebServerConfig] | None = None
    allow_ingress: dict[str, bool] | None = None

    def clone(self) -> ServeConfig:
        """Return a deep copy that can be mutated independently."""
        return copy.deepcopy(self)

    def is_ingress_allowed(self, host_port: str) -> bool:
        return bool(self.allow_ingress and self.allow_ingress.get(host_port))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON document shape, omitting absent fields."""
        data: dict[str, Any] = {}
        if self.tcp is not None:
            data["TCP"] = {str(port): h.to_dict() for port, h in self.tcp.items()}
        if self.web is not None:
            data["Web"] = {hp: web.to_dict() for hp, web in self.web.items()}
        if self.allow_ingress is not None:
            data["AllowIngress"] = dict(self.allow_ingress)
        return data

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Any) -> ServeConfig:
        """Create a config from its JSON document shape.

        Args:
            data: Decoded JSON object.

        Returns:
            ServeConfig instance.

        Raises:
            MalformedDocumentError: If the data does not match the schema.
        """
        if not isinstance(data, dict):
            raise MalformedDocumentError(
                f"serve config must be an object, got {_type_name(data)}"
            )

        unknown = set(data) - {"TCP", "Web", "AllowIngress"}
        if unknown:
            raise MalformedDocumentError(f"unknown field(s): {', '.join(sorted(unknown))}")

        config = cls()

        raw_tcp = data.get("TCP")
        if raw_tcp is not None:
            if not isinstance(raw_tcp, dict):
                raise MalformedDocumentError("TCP must be an object")
            config.tcp = {_parse_port_key(k): tcp_handler_from_dict(v) for k, v in raw_tcp.items()}

        raw_web = data.get("Web")
        if raw_web is not None:
            if not isinstance(raw_web, dict):
                raise MalformedDocumentError("Web must be an object")
            config.web = {str(hp): WebServerConfig.from_dict(v) for hp, v in raw_web.items()}

        raw_ingress = data.get("AllowIngress")
        if raw_ingress is not None:
            if not isinstance(raw_ingress, dict):
                raise MalformedDocumentError("AllowIngress must be an object")
            config.allow_ingress = {}
            for hp, allowed in raw_ingress.items():
                if not isinstance(allowed, bool):
                    raise MalformedDocumentError(f"AllowIngress[{hp!r}] must be a boolean")
                config.allow_ingress[str(hp)] = allowed

        return config

    @classmethod
    def from_json(cls, text: str | bytes) -> ServeConfig:
        """Parse a JSON document. A literal ``null`` yields an empty config."""
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedDocumentError(f"invalid JSON: {e}") from e
        if data is None:
            return cls()
        return cls.from_dict(data)


def _parse_port_key(key: Any) -> int:
    if isinstance(key, bool):
        raise MalformedDocumentError(f"invalid TCP port {key!r}")
    if isinstance(key, int):
        port = key
    elif isinstance(key, str) and key.isascii() and key.isdigit():
        port = int(key)
    else:
        raise MalformedDocumentError(f"invalid TCP port {key!r}")
    if not 1 <= port <= MAX_PORT:
        raise MalformedDocumentError(f"TCP port {port} out of range")
    return port


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__
