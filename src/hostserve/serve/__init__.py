"""hostserve serve config engine.

Reconciles single routing requests into the host-local serve config
document consumed by the reverse proxy runtime.

Features:
- Proxy, path and text handlers mounted under URL path prefixes
- Directory/file mount point overlap resolution
- Loopback-only proxy target validation and normalization
- Raw TCP forwarding with optional local TLS termination
- Public ingress toggle per node
- Clone-compare-write: unchanged requests never write

Usage:
    from hostserve.serve import (
        FileConfigStore,
        HandlerKind,
        ServeReconciler,
        StaticIdentity,
    )

    reconciler = ServeReconciler(
        store=FileConfigStore("serve.json"),
        identity=StaticIdentity("node.example.ts.net"),
    )

    # Proxy / to a local web server on port 3000
    reconciler.apply_web("/", HandlerKind.PROXY, "3000")

    # Forward raw TCP on 443 to a local database, terminating TLS
    reconciler.apply_tcp("5432", terminate_tls=True)

    # Allow access from the public internet
    reconciler.apply_ingress(True)
"""

from hostserve.serve.document import (
    HandlerKind,
    HTTPHandler,
    HTTPSPortHandler,
    PathHandler,
    ProxyHandler,
    ServeConfig,
    TCPForwardHandler,
    TCPPortHandler,
    TextHandler,
    WebServerConfig,
    handler_from_dict,
    tcp_handler_from_dict,
)
from hostserve.serve.handlers import merge_handler
from hostserve.serve.identity import (
    HostnameIdentity,
    IdentityResolver,
    LocalAPIIdentity,
    StaticIdentity,
)
from hostserve.serve.normalize import (
    join_host_port,
    normalize_mount_point,
    normalize_proxy_target,
    normalize_tcp_target,
)
from hostserve.serve.probe import FilesystemProbe, LocalFilesystemProbe, PathInfo
from hostserve.serve.reconciler import (
    HTTPS_PORT,
    PreparedHandler,
    ReconcileResult,
    ServeReconciler,
)
from hostserve.serve.store import (
    ConfigStore,
    FileConfigStore,
    LocalAPIConfigStore,
    MemoryConfigStore,
)

__all__ = [
    # Document
    "ServeConfig",
    "WebServerConfig",
    "HandlerKind",
    "HTTPHandler",
    "PathHandler",
    "ProxyHandler",
    "TextHandler",
    "TCPPortHandler",
    "HTTPSPortHandler",
    "TCPForwardHandler",
    "handler_from_dict",
    "tcp_handler_from_dict",
    # Normalization
    "normalize_proxy_target",
    "normalize_tcp_target",
    "normalize_mount_point",
    "join_host_port",
    # Merging
    "merge_handler",
    # Reconciler
    "ServeReconciler",
    "ReconcileResult",
    "PreparedHandler",
    "HTTPS_PORT",
    # Collaborators
    "ConfigStore",
    "FileConfigStore",
    "MemoryConfigStore",
    "LocalAPIConfigStore",
    "IdentityResolver",
    "StaticIdentity",
    "HostnameIdentity",
    "LocalAPIIdentity",
    "FilesystemProbe",
    "LocalFilesystemProbe",
    "PathInfo",
]
