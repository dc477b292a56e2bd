"""MCP server store: one document per server over an EntityStore."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from pydantic import ValidationError

from .exceptions import AlreadyExistsError
from .exceptions import ConfigFormatError
from .exceptions import ConfigValidationError
from .exceptions import NotFoundError
from .files import dump_json
from .files import parse_json_object
from .schema import LocalServer
from .schema import OAuthConfig
from .schema import RemoteServer
from .schema import ServerMetadata
from .schema import dump_server
from .schema import parse_server
from .store import EntityStore
from .utils import utc_now

logger = logging.getLogger(__name__)

KIND = "MCP server"


@dataclass
class McpListing:
    """Result of a tolerant bulk read.

    Attributes:
        servers: Server name -> parsed server, in name order
        warnings: One message per document that failed to parse
    """

    servers: dict[str, LocalServer | RemoteServer] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        """Aggregate view: ``{"mcp": {name: structured server}}``."""
        return {"mcp": {name: dump_server(server) for name, server in self.servers.items()}}


def validate_server_name(name: str) -> str:
    """Check that a server name can be used as a storage key.

    Raises:
        ConfigValidationError: If the name is empty or contains a path separator
    """
    if not name or not name.strip():
        raise ConfigValidationError("MCP server name cannot be empty")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise ConfigValidationError(f"Invalid MCP server name '{name}'")
    return name


class McpStore:
    """Per-server CRUD with a tolerant bulk read.

    Args:
        store: Backend holding one JSON document per server name
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def _parse(self, name: str, content: str) -> LocalServer | RemoteServer:
        data = parse_json_object(content, f"{KIND} '{name}'")
        try:
            return parse_server(data)
        except ValidationError as e:
            raise ConfigFormatError(f"Invalid {KIND} '{name}': {e}") from e

    def _write(self, name: str, server: LocalServer | RemoteServer) -> None:
        self.store.write(name, dump_json(dump_server(server)))

    # ===== Reads =====

    def get(self, name: str) -> LocalServer | RemoteServer:
        """Read one server.

        Raises:
            NotFoundError: If the server doesn't exist
            ConfigFormatError: If its document is malformed
        """
        content = self.store.read(validate_server_name(name))
        if content is None:
            raise NotFoundError(KIND, name)
        return self._parse(name, content)

    def get_raw(self, name: str) -> dict[str, Any]:
        """Read one server document as stored, without normalization."""
        content = self.store.read(validate_server_name(name))
        if content is None:
            raise NotFoundError(KIND, name)
        return parse_json_object(content, f"{KIND} '{name}'")

    def exists(self, name: str) -> bool:
        return self.store.exists(validate_server_name(name))

    def names(self) -> list[str]:
        return self.store.keys()

    def list_with_warnings(self) -> McpListing:
        """Parse every server independently.

        A malformed document becomes a warning and is left out of the result;
        it never fails the whole read.
        """
        listing = McpListing()
        for name in self.store.keys():
            try:
                content = self.store.read(name)
                if content is None:
                    continue
                listing.servers[name] = self._parse(name, content)
            except ConfigFormatError as e:
                logger.warning(f"Skipping {KIND} '{name}': {e}")
                listing.warnings.append(str(e))
        return listing

    def list(self) -> dict[str, LocalServer | RemoteServer]:
        """All readable servers in name order."""
        return self.list_with_warnings().servers

    def aggregate(self) -> McpListing:
        """Alias of list_with_warnings for callers building the aggregate view."""
        return self.list_with_warnings()

    # ===== Writes =====

    def add_local(
        self,
        name: str,
        command: list[str],
        environment: dict[str, str] | None = None,
        *,
        timeout: int | None = None,
        enabled: bool = True,
        description: str | None = None,
    ) -> LocalServer:
        """Create a local (process) server.

        Raises:
            AlreadyExistsError: If the name is taken
        """
        validate_server_name(name)
        if self.store.exists(name):
            raise AlreadyExistsError(KIND, name)
        try:
            server = LocalServer(
                enabled=enabled,
                timeout=timeout,
                command=command,
                environment=environment or {},
                metadata=ServerMetadata(description=description),
            )
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid {KIND} '{name}': {e}") from e
        self._write(name, server)
        logger.info(f"Added local {KIND} '{name}'")
        return server

    def add_remote(
        self,
        name: str,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        oauth: OAuthConfig | None = None,
        timeout: int | None = None,
        enabled: bool = True,
        description: str | None = None,
    ) -> RemoteServer:
        """Create a remote (HTTP) server.

        Raises:
            AlreadyExistsError: If the name is taken
        """
        validate_server_name(name)
        if self.store.exists(name):
            raise AlreadyExistsError(KIND, name)
        if oauth is not None and oauth.is_empty():
            oauth = None
        try:
            server = RemoteServer(
                enabled=enabled,
                timeout=timeout,
                url=url,
                headers=headers or {},
                oauth=oauth,
                metadata=ServerMetadata(description=description),
            )
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid {KIND} '{name}': {e}") from e
        self._write(name, server)
        logger.info(f"Added remote {KIND} '{name}'")
        return server

    def save(self, name: str, server: LocalServer | RemoteServer) -> LocalServer | RemoteServer:
        """Create or replace a server and stamp its update time.

        The creation time of a readable existing record is kept.
        """
        validate_server_name(name)
        metadata = server.metadata.model_copy(update={"updated_at": utc_now()})

        content = self.store.read(name)
        if content is not None:
            try:
                metadata.created_at = self._parse(name, content).metadata.created_at
            except ConfigFormatError:
                # Overwriting is how a malformed record gets repaired
                logger.debug(f"Replacing unreadable {KIND} '{name}'")

        saved = server.model_copy(update={"metadata": metadata})
        self._write(name, saved)
        logger.info(f"Saved {KIND} '{name}'")
        return saved

    def save_raw(self, name: str, data: dict[str, Any]) -> LocalServer | RemoteServer:
        """Upsert from either the structured or the raw free-form shape."""
        try:
            server = parse_server(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid {KIND} '{name}': {e}") from e
        return self.save(name, server)

    def delete(self, name: str) -> None:
        self.store.delete(validate_server_name(name))
        logger.info(f"Deleted {KIND} '{name}'")

    def rename(self, old: str, new: str) -> None:
        """Move a server to a new name.

        Raises:
            NotFoundError: If old doesn't exist
            AlreadyExistsError: If new is taken
        """
        self.store.rename(validate_server_name(old), validate_server_name(new))
        logger.info(f"Renamed {KIND} '{old}' to '{new}'")

    def toggle_enabled(self, name: str) -> bool:
        """Flip the enabled flag.

        Returns:
            New enabled state
        """
        server = self.get(name)
        server.enabled = not server.enabled
        server.metadata.updated_at = utc_now()
        self._write(name, server)
        logger.info(f"{KIND} '{name}' {'enabled' if server.enabled else 'disabled'}")
        return server.enabled
