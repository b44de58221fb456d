"""Resolvers for the node's own DNS name.

The self name keys the node's entries in the Web and AllowIngress tables and
is the TLS name for terminated TCP forwards.
"""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING, Protocol

from hostserve.core.exceptions import IdentityError, LocalAPIError

if TYPE_CHECKING:
    from hostserve.client.localapi import LocalAPIClient


class IdentityResolver(Protocol):
    def self_dns_name(self) -> str:
        """Return the node's DNS name without a trailing dot."""
        ...


def _clean_name(name: str) -> str:
    return name.strip().removesuffix(".")


class StaticIdentity:
    """A fixed, configured name."""

    def __init__(self, name: str) -> None:
        self.name = _clean_name(name)

    def self_dns_name(self) -> str:
        if not self.name:
            raise IdentityError("resolving self DNS name: no name configured")
        return self.name


class HostnameIdentity:
    """The local host's fully-qualified name."""

    def self_dns_name(self) -> str:
        try:
            name = _clean_name(socket.getfqdn())
        except OSError as e:
            raise IdentityError("resolving self DNS name") from e
        if not name:
            raise IdentityError("resolving self DNS name: host has no name")
        return name


class LocalAPIIdentity:
    """Ask the local control daemon for the node's name."""

    def __init__(self, client: LocalAPIClient) -> None:
        self.client = client

    def self_dns_name(self) -> str:
        try:
            name = self.client.self_dns_name()
        except LocalAPIError as e:
            raise IdentityError("getting client status") from e
        if not name:
            raise IdentityError("getting client status: no self node")
        return _clean_name(name)
