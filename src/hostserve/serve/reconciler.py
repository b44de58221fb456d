"""Serve config reconciliation.

Each request is a single read-modify-compare-write cycle:

1. read the current document from the store (None means "no config yet"),
2. apply the change to a deep clone,
3. compare the clone with the original,
4. write the clone back only when it differs.

All user input is normalized before the store is read, so a bad argument
never causes a write. The ``plan_*`` methods are pure: they take the current
document and return a ReconcileResult without touching the store. The
``apply_*`` methods wrap them with the store round trip.

Example:
    reconciler = ServeReconciler(
        store=FileConfigStore("serve.json"),
        identity=StaticIdentity("node.example.ts.net"),
    )
    result = reconciler.apply_web("/", HandlerKind.PROXY, "3000")
    if not result.changed:
        print("nothing to do")
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from hostserve.core.exceptions import InvalidPathError, ValidationError
from hostserve.serve.document import (
    HandlerKind,
    HTTPHandler,
    HTTPSPortHandler,
    PathHandler,
    ProxyHandler,
    ServeConfig,
    TCPForwardHandler,
    TextHandler,
    WebServerConfig,
)
from hostserve.serve.handlers import merge_handler
from hostserve.serve.identity import IdentityResolver
from hostserve.serve.normalize import (
    LOOPBACK_ADDR,
    join_host_port,
    normalize_mount_point,
    normalize_proxy_target,
    normalize_tcp_target,
)
from hostserve.serve.probe import FilesystemProbe, LocalFilesystemProbe
from hostserve.serve.store import ConfigStore

logger = structlog.get_logger()

# Web serving and TCP forwarding are both bound to the HTTPS port.
HTTPS_PORT = 443


@dataclass
class ReconcileResult:
    """Outcome of reconciling one request against the current document."""

    config: ServeConfig | None
    """The next document (the unchanged current one when nothing changed)."""

    changed: bool
    """Whether ``config`` differs from the current document and must be written."""


@dataclass
class PreparedHandler:
    """A validated web handler ready to be merged."""

    mount_point: str
    handler: HTTPHandler
    is_directory: bool = False


def _clone_or_empty(current: ServeConfig | None) -> ServeConfig:
    if current is None:
        return ServeConfig()
    return current.clone()


class ServeReconciler:
    """Merge single routing requests into the serve config.

    Args:
        store: Where the document is read from and written to.
        identity: Resolves the node's own DNS name.
        probe: Filesystem access for path handlers.
    """

    def __init__(
        self,
        store: ConfigStore,
        identity: IdentityResolver,
        probe: FilesystemProbe | None = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.probe = probe or LocalFilesystemProbe()

    def _self_host_port(self) -> str:
        return join_host_port(self.identity.self_dns_name(), HTTPS_PORT)

    # Web handlers

    def prepare_handler(
        self,
        mount_point: str,
        kind: HandlerKind | str,
        argument: str,
    ) -> PreparedHandler:
        """Validate a web handler request.

        Raises:
            ValidationError: Unknown kind, or an invalid mount point, proxy
                target or path.
        """
        try:
            kind = HandlerKind(kind)
        except ValueError:
            raise ValidationError(f"unknown serve type {kind!r}") from None

        mount_point = normalize_mount_point(mount_point)

        if kind is HandlerKind.PROXY:
            return PreparedHandler(mount_point, ProxyHandler(normalize_proxy_target(argument)))

        if kind is HandlerKind.TEXT:
            return PreparedHandler(mount_point, TextHandler(argument))

        try:
            info = self.probe.stat(argument)
            if not info.exists:
                raise InvalidPathError(f"invalid path: {argument!r} does not exist")
            path = self.probe.absolute_path(argument)
        except (OSError, ValueError) as e:
            raise InvalidPathError(f"invalid path: {e}") from e
        return PreparedHandler(mount_point, PathHandler(path), is_directory=info.is_directory)

    def plan_handler(
        self, current: ServeConfig | None, prepared: PreparedHandler
    ) -> ReconcileResult:
        config = _clone_or_empty(current)

        # Only one web serving mode exists, so the TCP table is overwritten.
        config.tcp = {HTTPS_PORT: HTTPSPortHandler()}

        host_port = self._self_host_port()
        if config.web is None:
            config.web = {}
        web = config.web.setdefault(host_port, WebServerConfig())
        if web.handlers is None:
            web.handlers = {}
        merge_handler(web.handlers, prepared.mount_point, prepared.handler, prepared.is_directory)

        return ReconcileResult(config, config != current)

    def plan_web(
        self,
        current: ServeConfig | None,
        mount_point: str,
        kind: HandlerKind | str,
        argument: str,
    ) -> ReconcileResult:
        """Mount a path, proxy or text handler for this node on port 443."""
        return self.plan_handler(current, self.prepare_handler(mount_point, kind, argument))

    def apply_web(
        self, mount_point: str, kind: HandlerKind | str, argument: str
    ) -> ReconcileResult:
        prepared = self.prepare_handler(mount_point, kind, argument)
        result = self.plan_handler(self._read(), prepared)
        return self._commit(result, "web", mount_point=prepared.mount_point)

    # TCP forwarding

    def plan_tcp(
        self,
        current: ServeConfig | None,
        port: str | int,
        terminate_tls: bool = False,
    ) -> ReconcileResult:
        """Forward port 443 to a local TCP port, replacing the TCP table."""
        dest = normalize_tcp_target(port)
        config = _clone_or_empty(current)

        handler = TCPForwardHandler(target=f"{LOOPBACK_ADDR}:{dest}")
        if terminate_tls:
            handler.terminate_tls = self.identity.self_dns_name()
        config.tcp = {HTTPS_PORT: handler}

        return ReconcileResult(config, config != current)

    def apply_tcp(self, port: str | int, terminate_tls: bool = False) -> ReconcileResult:
        normalize_tcp_target(port)
        result = self.plan_tcp(self._read(), port, terminate_tls)
        return self._commit(result, "tcp", port=str(port), terminate_tls=terminate_tls)

    # Ingress

    def plan_ingress(self, current: ServeConfig | None, enabled: bool) -> ReconcileResult:
        """Allow or deny public ingress to this node's HTTPS port."""
        host_port = self._self_host_port()
        allowed = current is not None and current.is_ingress_allowed(host_port)
        if allowed == enabled:
            return ReconcileResult(current, False)

        config = _clone_or_empty(current)
        if enabled:
            if config.allow_ingress is None:
                config.allow_ingress = {}
            config.allow_ingress[host_port] = True
        elif config.allow_ingress is not None:
            config.allow_ingress.pop(host_port, None)
        return ReconcileResult(config, True)

    def apply_ingress(self, enabled: bool) -> ReconcileResult:
        result = self.plan_ingress(self._read(), enabled)
        return self._commit(result, "ingress", enabled=enabled)

    # Raw documents

    def apply_raw(self, text: str | bytes) -> ReconcileResult:
        """Write a complete document verbatim, without merging.

        Raises:
            MalformedDocumentError: The text is not a serve config document.
        """
        config = ServeConfig.from_json(text)
        self.store.set(config)
        logger.info("Serve config replaced")
        return ReconcileResult(config, True)

    def show(self) -> ServeConfig | None:
        return self._read()

    def _read(self) -> ServeConfig | None:
        return self.store.get()

    def _commit(self, result: ReconcileResult, operation: str, **context: object) -> ReconcileResult:
        if not result.changed:
            logger.debug("Serve config unchanged", operation=operation, **context)
            return result
        if result.config is None:
            raise ValueError(f"{operation}: changed result without a document")
        self.store.set(result.config)
        logger.info("Serve config updated", operation=operation, **context)
        return result
