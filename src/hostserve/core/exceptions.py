"""Exception hierarchy for hostserve.

Every error raised by the serve engine derives from HostServeError and carries
a short machine-readable ``code`` next to the human message. Validation errors
are raised before any document is mutated; collaborator errors (store,
identity) wrap the underlying cause with the step that failed.
"""

from __future__ import annotations


class HostServeError(Exception):
    """Base class for all hostserve errors."""

    code = "error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(HostServeError):
    """Malformed user input, detected before any mutation."""

    code = "invalid_input"


class InvalidPortError(ValidationError):
    """Port is zero, negative, non-numeric or wider than 16 bits."""

    code = "invalid_port"

    def __init__(self, port: str) -> None:
        super().__init__(f"invalid port {port!r}")
        self.port = port


class InvalidURLError(ValidationError):
    """Proxy target could not be parsed as a URL."""

    code = "invalid_url"


class UnsupportedSchemeError(ValidationError):
    code = "unsupported_scheme"

    def __init__(self, scheme: str) -> None:
        super().__init__(
            "must be a URL starting with http://, https://, or https+insecure://"
            f" (got {scheme!r})"
        )
        self.scheme = scheme


class NonLoopbackHostError(ValidationError):
    code = "non_loopback_host"

    def __init__(self, host: str) -> None:
        super().__init__(
            f"only localhost or 127.0.0.1 proxies are currently supported (got {host!r})"
        )
        self.host = host


class InvalidMountPointError(ValidationError):
    code = "invalid_mount_point"


class InvalidPathError(ValidationError):
    """Filesystem probe failed for a path handler."""

    code = "invalid_path"


class MalformedDocumentError(ValidationError):
    """Input does not match the serve config document schema."""

    code = "malformed_document"


class StoreError(HostServeError):
    """Reading or writing the serve config failed."""

    code = "store_error"


class LocalAPIError(StoreError):
    """The local control daemon could not be reached or refused the request."""

    code = "localapi_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IdentityError(HostServeError):
    """The node's own DNS name could not be resolved."""

    code = "identity_error"


def format_error_for_user(error: BaseException) -> str:
    """Render an exception as a one-line message for the CLI.

    HostServeError messages are already user facing. Anything else gets its
    type name so unexpected failures stay recognisable.
    """
    if isinstance(error, HostServeError):
        message = error.message
        cause = error.__cause__
        if (
            cause is not None
            and not isinstance(error, ValidationError)
            and str(cause) not in message
        ):
            message = f"{message}: {cause}"
        return message
    text = str(error)
    if not text:
        return type(error).__name__
    return f"{type(error).__name__}: {text}"
