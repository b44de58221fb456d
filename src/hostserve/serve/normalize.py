"""Normalization of user-supplied serve arguments.

Proxy targets, TCP ports and mount points are validated and put into a single
canonical form before they reach the document, so equivalent requests always
produce identical documents:

    >>> normalize_proxy_target("3000")
    'http://127.0.0.1:3000'
    >>> normalize_proxy_target("localhost:8080/ignored?q=1")
    'http://127.0.0.1:8080'
    >>> normalize_mount_point("////foo")
    '/foo'
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from hostserve.core.exceptions import (
    InvalidMountPointError,
    InvalidPortError,
    InvalidURLError,
    NonLoopbackHostError,
    UnsupportedSchemeError,
)
from hostserve.serve.document import MAX_PORT

LOOPBACK_ADDR = "127.0.0.1"

SUPPORTED_SCHEMES = frozenset({"http", "https", "https+insecure"})

# Proxy targets are restricted to the local machine.
LOOPBACK_HOSTS = frozenset({"localhost", LOOPBACK_ADDR})

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _is_all_digits(s: str) -> bool:
    return s.isascii() and s.isdigit()


def _parse_port(raw: str) -> int:
    if not _is_all_digits(raw):
        raise InvalidPortError(raw)
    port = int(raw)
    if port == 0 or port > MAX_PORT:
        raise InvalidPortError(raw)
    return port


def normalize_proxy_target(raw: str) -> str:
    """Validate a proxy target and return its canonical base URL.

    Accepts a bare port (``"3000"``), a ``host[:port]`` without scheme, or a
    full URL. Any path, query or fragment is discarded.

    Args:
        raw: Target as typed by the user.

    Returns:
        ``scheme://127.0.0.1[:port]``.

    Raises:
        InvalidPortError: Bare port is 0 or larger than 65535.
        InvalidURLError: Target cannot be parsed as a URL.
        UnsupportedSchemeError: Scheme is not http, https or https+insecure.
        NonLoopbackHostError: Host is not localhost or 127.0.0.1.
    """
    if _is_all_digits(raw):
        return f"http://{LOOPBACK_ADDR}:{_parse_port(raw)}"

    target = raw
    if "://" not in target:
        target = "http://" + target

    if _CONTROL_CHARS.search(target) or any(c.isspace() for c in target):
        raise InvalidURLError(f"parsing url {raw!r}: invalid character in URL")

    try:
        parts = urlsplit(target)
        port = parts.port
    except ValueError as e:
        raise InvalidURLError(f"parsing url {raw!r}: {e}") from e

    if not parts.scheme:
        raise InvalidURLError(f"parsing url {raw!r}: missing protocol scheme")
    if parts.scheme not in SUPPORTED_SCHEMES:
        raise UnsupportedSchemeError(parts.scheme)

    host = parts.hostname
    if not host:
        raise InvalidURLError(f"parsing url {raw!r}: missing host")
    if host not in LOOPBACK_HOSTS:
        raise NonLoopbackHostError(host)

    url = f"{parts.scheme}://{LOOPBACK_ADDR}"
    if port is not None:
        url += f":{port}"
    return url


def normalize_tcp_target(raw: str | int) -> int:
    """Parse the local destination port of a TCP forward.

    Raises:
        InvalidPortError: Not a decimal number in [1, 65535].
    """
    return _parse_port(str(raw))


def normalize_mount_point(raw: str) -> str:
    """Return ``raw`` as an absolute mount point with one leading slash.

    Raises:
        InvalidMountPointError: The result is not a valid URL path.
    """
    mount_point = "/" + raw.lstrip("/")
    if _CONTROL_CHARS.search(mount_point):
        raise InvalidMountPointError(
            f"invalid path segment {raw!r}: contains control characters"
        )
    if "?" in mount_point or "#" in mount_point:
        raise InvalidMountPointError(
            f"invalid path segment {raw!r}: query and fragment are not allowed"
        )
    if _BAD_PERCENT_ESCAPE.search(mount_point):
        raise InvalidMountPointError(f"invalid path segment {raw!r}: invalid URL escape")
    return mount_point


def join_host_port(host: str, port: int) -> str:
    """Build the canonical HostPort key for a node name and port.

    A trailing dot of a fully-qualified name is dropped and IPv6 literals are
    bracketed.

        >>> join_host_port("node.example.ts.net.", 443)
        'node.example.ts.net:443'
    """
    if host.endswith("."):
        host = host[:-1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
