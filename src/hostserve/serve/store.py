"""Storage backends for the serve config document.

A store holds at most one document. ``get`` returns None when no document
exists yet; ``set`` replaces it wholesale. Stores do not merge, lock or retry:
the reconciler performs one read and at most one write per request.

Storage file format (serve.json) is the document itself:
    {
        "TCP": {"443": {"HTTPS": true}},
        "Web": {"node.example.ts.net:443": {"Handlers": {"/": {"Proxy": "http://127.0.0.1:3000"}}}}
    }
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from hostserve.core.exceptions import LocalAPIError, MalformedDocumentError, StoreError
from hostserve.serve.document import ServeConfig

if TYPE_CHECKING:
    from hostserve.client.localapi import LocalAPIClient

logger = structlog.get_logger()


class ConfigStore(Protocol):
    def get(self) -> ServeConfig | None: ...

    def set(self, config: ServeConfig) -> None: ...


class MemoryConfigStore:
    """In-process store, mostly useful for tests and dry runs.

    Documents are copied on the way in and out so callers cannot mutate the
    stored state behind the store's back.
    """

    def __init__(self, initial: ServeConfig | None = None) -> None:
        self._config = initial.clone() if initial is not None else None
        self.writes = 0

    def get(self) -> ServeConfig | None:
        return self._config.clone() if self._config is not None else None

    def set(self, config: ServeConfig) -> None:
        self._config = config.clone()
        self.writes += 1


class FileConfigStore:
    """JSON file-based storage for the serve config.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so readers see either the old or the new
    document.
    """

    def __init__(self, path: str | Path = "serve.json") -> None:
        self.path = Path(path)

    def get(self) -> ServeConfig | None:
        if not self.path.exists():
            return None
        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"reading serve config from {self.path}") from e
        if not content.strip():
            return None
        try:
            return ServeConfig.from_json(content)
        except MalformedDocumentError as e:
            raise StoreError(f"reading serve config from {self.path}") from e

    def set(self, config: ServeConfig) -> None:
        content = config.to_json(indent=2) + "\n"
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"writing serve config to {self.path}") from e

        logger.debug("Serve config written", path=str(self.path), size=len(content))


class LocalAPIConfigStore:
    """Store backed by the local control daemon."""

    def __init__(self, client: LocalAPIClient) -> None:
        self.client = client

    def get(self) -> ServeConfig | None:
        try:
            return self.client.get_serve_config()
        except LocalAPIError as e:
            raise StoreError("getting serve config from local API") from e

    def set(self, config: ServeConfig) -> None:
        try:
            self.client.set_serve_config(config)
        except LocalAPIError as e:
            raise StoreError("setting serve config through local API") from e
