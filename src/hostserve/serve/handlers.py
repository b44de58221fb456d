"""Merging HTTP handlers into a web server's handler table."""

from __future__ import annotations

from hostserve.serve.document import HTTPHandler


def merge_handler(
    table: dict[str, HTTPHandler],
    mount_point: str,
    handler: HTTPHandler,
    is_directory: bool = False,
) -> str:
    """Mount ``handler`` at ``mount_point``, updating ``table`` in place.

    Directory handlers always mount with a trailing slash so relative links
    in the served content resolve. A directory mount (``/foo/``) and a file
    mount of the same name (``/foo``) cannot coexist: whichever is set last
    replaces the other.

    Args:
        table: Mount point to handler mapping of one web server.
        mount_point: Normalized mount point (leading ``/``).
        handler: Handler to mount.
        is_directory: Whether the handler serves a directory.

    Returns:
        The mount point the handler was stored under.
    """
    if is_directory and not mount_point.endswith("/"):
        mount_point += "/"

    table[mount_point] = handler

    for key in list(table):
        if key == mount_point:
            continue
        if (mount_point.endswith("/") and key == mount_point[:-1]) or (
            key.endswith("/") and mount_point == key[:-1]
        ):
            del table[key]

    return mount_point
