"""Portable JSON export/import of providers and MCP servers."""

import logging
from pathlib import Path

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from .exceptions import ConfigError
from .exceptions import ConfigFormatError
from .files import dump_json
from .files import read_text
from .files import write_text
from .mcp import McpStore
from .registry import ProviderRegistry
from .schema import LocalServer
from .schema import Model
from .schema import OAuthConfig
from .schema import Provider
from .schema import RemoteServer
from .utils import utc_now
from .variants import build_variants

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"
APP_NAME = "switchboard"


class ExportedModel(BaseModel):
    id: str
    name: str
    reasoning_effort: str | None = None


class ExportedProvider(BaseModel):
    name: str
    base_url: str
    api_key: str = Field(default="", repr=False)
    npm: str | None = None
    description: str | None = None
    model_type: str | None = None
    enabled: bool = True
    models: list[ExportedModel] = Field(default_factory=list)


class ExportedOAuthConfig(BaseModel):
    client_id: str | None = None
    client_secret: str | None = Field(default=None, repr=False)
    scope: str | None = None


class ExportedMcpServer(BaseModel):
    name: str
    server_type: str
    enabled: bool = True
    timeout: int | None = None
    command: list[str] | None = None
    environment: dict[str, str] | None = None
    url: str | None = None
    headers: dict[str, str] | None = None
    oauth: ExportedOAuthConfig | None = None


class BackupData(BaseModel):
    """Top-level structure of a backup file."""

    version: str = BACKUP_VERSION
    created_at: str = Field(default_factory=utc_now)
    app_name: str = APP_NAME
    providers: list[ExportedProvider] = Field(default_factory=list)
    mcp_servers: list[ExportedMcpServer] = Field(default_factory=list)


class ExportStats(BaseModel):
    providers: int = 0
    models: int = 0
    mcp_servers: int = 0


class ImportOptions(BaseModel):
    import_providers: bool = True
    import_mcp: bool = True
    overwrite_existing: bool = False


class ImportResult(BaseModel):
    """Counts per entity kind plus one message per entity that failed."""

    success: bool = True
    providers_imported: int = 0
    providers_skipped: int = 0
    mcp_imported: int = 0
    mcp_skipped: int = 0
    errors: list[str] = Field(default_factory=list)


# ===== Export =====


def _export_server(name: str, server: LocalServer | RemoteServer) -> ExportedMcpServer:
    exported = ExportedMcpServer(name=name, server_type=server.type, enabled=server.enabled, timeout=server.timeout)
    if isinstance(server, LocalServer):
        exported.command = list(server.command)
        exported.environment = dict(server.environment) or None
    else:
        exported.url = server.url
        exported.headers = dict(server.headers) or None
        if server.oauth is not None and not server.oauth.is_empty():
            exported.oauth = ExportedOAuthConfig(
                client_id=server.oauth.client_id,
                client_secret=server.oauth.client_secret,
                scope=server.oauth.scope,
            )
    return exported


def create_backup(registry: ProviderRegistry, mcp: McpStore) -> BackupData:
    """Snapshot the registry and every readable MCP server."""
    providers = [
        ExportedProvider(
            name=provider.name,
            base_url=provider.base_url,
            api_key=provider.api_key,
            npm=provider.npm,
            description=provider.description,
            model_type=provider.model_type,
            enabled=provider.enabled,
            models=[
                ExportedModel(id=model.id, name=model.name, reasoning_effort=model.reasoning_effort)
                for model in provider.models.values()
            ],
        )
        for provider in registry.list_providers()
    ]
    servers = [_export_server(name, server) for name, server in mcp.list().items()]
    return BackupData(providers=providers, mcp_servers=servers)


def export_backup(registry: ProviderRegistry, mcp: McpStore, path: Path) -> ExportStats:
    """Write a backup file.

    Returns:
        Counts of what was exported
    """
    backup = create_backup(registry, mcp)
    write_text(path, dump_json(backup.model_dump(mode="json")))
    stats = ExportStats(
        providers=len(backup.providers),
        models=sum(len(provider.models) for provider in backup.providers),
        mcp_servers=len(backup.mcp_servers),
    )
    logger.info(f"Exported {stats.providers} provider(s) and {stats.mcp_servers} MCP server(s) to {path}")
    return stats


# ===== Import =====


def preview_backup(path: Path) -> BackupData:
    """Parse a backup file without importing it.

    Raises:
        ConfigFileError: If the file can't be read
        ConfigFormatError: If the file is missing or isn't a valid backup
    """
    content = read_text(path)
    if content is None:
        raise ConfigFormatError(f"Backup file {path} does not exist")
    try:
        return BackupData.model_validate_json(content)
    except ValidationError as e:
        raise ConfigFormatError(f"Invalid backup file {path}: {e}") from e


def _import_provider(exported: ExportedProvider) -> Provider:
    variants = build_variants(exported.model_type)
    models = {
        model.id: Model(
            id=model.id,
            name=model.name,
            reasoning_effort=model.reasoning_effort,
            variants=dict(variants),
        )
        for model in exported.models
    }
    return Provider(
        name=exported.name,
        base_url=exported.base_url,
        api_key=exported.api_key,
        npm=exported.npm,
        description=exported.description,
        model_type=exported.model_type,
        enabled=exported.enabled,
        models=models,
    )


def _import_server(exported: ExportedMcpServer) -> LocalServer | RemoteServer:
    if exported.server_type == "local":
        return LocalServer(
            enabled=exported.enabled,
            timeout=exported.timeout,
            command=exported.command or [],
            environment=exported.environment or {},
        )
    if exported.server_type == "remote":
        oauth = None
        if exported.oauth is not None:
            oauth = OAuthConfig(
                client_id=exported.oauth.client_id,
                client_secret=exported.oauth.client_secret,
                scope=exported.oauth.scope,
            )
        return RemoteServer(
            enabled=exported.enabled,
            timeout=exported.timeout,
            url=exported.url or "",
            headers=exported.headers or {},
            oauth=None if oauth is None or oauth.is_empty() else oauth,
        )
    raise ValueError(f"Unknown server type '{exported.server_type}'")


def import_backup(
    registry: ProviderRegistry,
    mcp: McpStore,
    path: Path,
    options: ImportOptions | None = None,
) -> ImportResult:
    """Import a backup file entity by entity.

    Existing entities are skipped unless overwrite_existing is set. A failure
    on one entity is recorded in the result and the import carries on.

    Raises:
        ConfigFormatError: If the file isn't a valid backup
    """
    options = options or ImportOptions()
    backup = preview_backup(path)
    result = ImportResult()

    if options.import_providers:
        existing = {provider.name for provider in registry.list_providers()}
        for exported in backup.providers:
            if exported.name in existing and not options.overwrite_existing:
                result.providers_skipped += 1
                continue
            try:
                registry.put_provider(_import_provider(exported), overwrite=True)
            except (ConfigError, ValueError) as e:
                result.errors.append(f"Provider '{exported.name}': {e}")
                continue
            result.providers_imported += 1

    if options.import_mcp:
        existing = set(mcp.names())
        for exported in backup.mcp_servers:
            if exported.name in existing and not options.overwrite_existing:
                result.mcp_skipped += 1
                continue
            try:
                mcp.save(exported.name, _import_server(exported))
            except (ConfigError, ValueError) as e:
                result.errors.append(f"MCP server '{exported.name}': {e}")
                continue
            result.mcp_imported += 1

    result.success = not result.errors
    logger.info(
        f"Imported {result.providers_imported} provider(s) and {result.mcp_imported} MCP server(s) from {path}"
    )
    return result
