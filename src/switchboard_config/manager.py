"""Configuration manager: the handle every operation goes through."""

import logging
import threading
from collections.abc import Iterable
from collections.abc import Sequence
from pathlib import Path
from typing import assert_never

from .active import ActiveReferences
from .active import coerce_app
from .backup import BackupData
from .backup import ExportStats
from .backup import ImportOptions
from .backup import ImportResult
from .backup import export_backup
from .backup import import_backup
from .backup import preview_backup
from .dialects import write_claude_settings
from .dialects import write_codex_auth
from .dialects import write_codex_config
from .dialects import write_gemini_env
from .exceptions import ConfigValidationError
from .exceptions import NotFoundError
from .mcp import McpStore
from .models import App
from .models import ConfigPaths
from .models import Scope
from .presets import RECOMMENDED_MCP_SERVERS
from .presets import get_recommended_server
from .presets import resolve_preset_models
from .registry import ProviderRegistry
from .schema import LocalServer
from .schema import OAuthConfig
from .schema import Provider
from .schema import RemoteServer
from .schema import ServerMetadata
from .store import DirectoryEntityStore
from .store import EntityStore
from .store import SqliteEntityStore
from .sync import DeployedProvider
from .sync import SyncEngine
from .sync import SyncResult

logger = logging.getLogger(__name__)

MCP_KIND = "MCP server"


class ConfigManager:
    """Composes the stores and the sync engine behind one lock.

    Applications inject paths via ConfigPaths to define their configuration
    policy. Every public method holds the manager's lock for its whole
    duration, so a mutation and the syncs it triggers never interleave with
    another operation on the same manager.

    Args:
        paths: Configuration file paths
    """

    def __init__(self, paths: ConfigPaths):
        """Initialize configuration manager with injected paths.

        Args:
            paths: ConfigPaths defining where config files are located
        """
        self.paths = paths
        self.lock = threading.RLock()
        self.registry = ProviderRegistry(paths.canonical)
        self.mcp = McpStore(self._open_mcp_backend())
        self.active = ActiveReferences(paths.active, self.registry)
        self.engine = SyncEngine(self.registry, self.mcp)

    def _open_mcp_backend(self) -> EntityStore:
        if self.paths.mcp_db is not None:
            logger.debug(f"Using SQLite MCP store at {self.paths.mcp_db}")
            return SqliteEntityStore(self.paths.mcp_db, table="mcp_servers", kind=MCP_KIND)
        return DirectoryEntityStore(self.paths.mcp_dir, kind=MCP_KIND)

    def _targets(self, scopes: Iterable[Scope]) -> dict[Scope, Path | None]:
        return {scope: self.paths.target_for(scope) for scope in dict.fromkeys(scopes)}

    # ===== Provider Sync =====

    def apply_providers(
        self, names: Sequence[str], scopes: Iterable[Scope] = (Scope.GLOBAL,)
    ) -> dict[Scope, SyncResult]:
        """Sync providers to each requested scope independently.

        When the global scope is written successfully, the first name becomes
        the active OpenCode provider.

        Raises:
            NotFoundError: If a name isn't registered (no target is touched)
        """
        with self.lock:
            for name in names:
                if not self.registry.has_provider(name):
                    raise NotFoundError("Provider", name)

            results = self.engine.fan_out(self._targets(scopes), lambda path: self.engine.sync_providers(path, names))

            global_result = results.get(Scope.GLOBAL)
            if names and global_result is not None and global_result.success:
                self.active.set_active(App.OPENCODE, names[0])
            return results

    def check_provider_applied(self, name: str) -> dict[Scope, bool]:
        """Whether a provider entry is present in each OpenCode target."""
        with self.lock:
            applied = {}
            for scope, path in self._targets(Scope).items():
                applied[scope] = path is not None and self.engine.is_provider_applied(path, name)
            return applied

    def deployed_providers(self) -> list[DeployedProvider]:
        with self.lock:
            targets = {scope.value: path for scope, path in self._targets(Scope).items()}
            return self.engine.deployed_providers(targets)

    def remove_deployed_provider(
        self, name: str, scopes: Iterable[Scope] = (Scope.GLOBAL, Scope.PROJECT)
    ) -> dict[Scope, bool]:
        """Delete a provider entry from targets without touching the registry."""
        with self.lock:
            removed = {}
            for scope, path in self._targets(scopes).items():
                removed[scope] = path is not None and self.engine.remove_deployed_provider(path, name)
            return removed

    # ===== Provider Management =====

    def move_provider(self, old: str, new: str) -> Provider:
        """Rename a provider and repoint every active reference to it."""
        with self.lock:
            provider = self.registry.rename_provider(old, new)
            self.active.repoint(old, new)
            return provider

    def add_preset_models(self, name: str) -> list[str]:
        """Add the preset model list matching a provider's endpoint and tag.

        Returns:
            Model ids that were added

        Raises:
            ConfigValidationError: If no preset applies to the provider
        """
        with self.lock:
            provider = self.registry.get_provider(name)
            preset = resolve_preset_models(provider.base_url, provider.model_type, provider.npm)
            if preset is None:
                raise ConfigValidationError(f"No preset models known for provider '{name}'")
            source, model_ids = preset
            logger.debug(f"Using {source} presets for provider '{name}'")
            return self.registry.add_models_batch(name, model_ids)

    def apply_to_app(self, app: App | str, name: str, model: str | None = None) -> SyncResult:
        """Make a provider the active one of a downstream application.

        OpenCode goes through the global provider sync; the other tools get
        their own config file rewritten.

        Raises:
            NotFoundError: If the provider doesn't exist
            ConfigValidationError: If the application has no configured path
        """
        app = coerce_app(app)
        with self.lock:
            if app is App.OPENCODE:
                return self.apply_providers([name], (Scope.GLOBAL,))[Scope.GLOBAL]

            provider = self.registry.get_provider(name)
            match app:
                case App.CLAUDE:
                    path = self._require_path(app, self.paths.claude_settings)
                    backup = write_claude_settings(path, provider, model)
                case App.CODEX:
                    path = self._require_path(app, self.paths.codex_config)
                    auth_path = self._require_path(app, self.paths.codex_auth)
                    backup = write_codex_config(path, provider, model)
                    write_codex_auth(auth_path, provider)
                case App.GEMINI:
                    path = self._require_path(app, self.paths.gemini_env)
                    backup = write_gemini_env(path, provider, model)
                case _:
                    assert_never(app)

            self.active.set_active(app, name)
            return SyncResult(target=path, synced=[name], backup=backup)

    def _require_path(self, app: App, path: Path | None) -> Path:
        if path is None:
            raise ConfigValidationError(f"No config path configured for {app.value}")
        return path

    # ===== MCP Management =====

    def sync_mcp(
        self, names: Sequence[str] | None = None, scopes: Iterable[Scope] = (Scope.GLOBAL,)
    ) -> dict[Scope, SyncResult]:
        """Write MCP servers to each requested scope independently.

        Args:
            names: Servers to write; None selects every enabled server
            scopes: Target scopes
        """
        with self.lock:
            return self.engine.fan_out(self._targets(scopes), lambda path: self.engine.sync_mcp(path, names))

    def _resync_global(self) -> SyncResult:
        return self.sync_mcp(None, (Scope.GLOBAL,))[Scope.GLOBAL]

    def add_local_mcp(
        self,
        name: str,
        command: list[str],
        environment: dict[str, str] | None = None,
        *,
        timeout: int | None = None,
        enabled: bool = True,
        description: str | None = None,
    ) -> SyncResult:
        with self.lock:
            self.mcp.add_local(
                name, command, environment, timeout=timeout, enabled=enabled, description=description
            )
            return self._resync_global()

    def add_remote_mcp(
        self,
        name: str,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        oauth: OAuthConfig | None = None,
        timeout: int | None = None,
        enabled: bool = True,
        description: str | None = None,
    ) -> SyncResult:
        with self.lock:
            self.mcp.add_remote(
                name, url, headers, oauth=oauth, timeout=timeout, enabled=enabled, description=description
            )
            return self._resync_global()

    def save_mcp(self, name: str, server: LocalServer | RemoteServer) -> SyncResult:
        with self.lock:
            self.mcp.save(name, server)
            return self._resync_global()

    def delete_mcp(self, name: str) -> SyncResult:
        with self.lock:
            self.mcp.delete(name)
            return self._resync_global()

    def rename_mcp(self, old: str, new: str) -> SyncResult:
        with self.lock:
            self.mcp.rename(old, new)
            return self._resync_global()

    def toggle_mcp(self, name: str) -> SyncResult:
        with self.lock:
            self.mcp.toggle_enabled(name)
            return self._resync_global()

    def add_recommended_mcp_servers(self, names: Sequence[str] | None = None) -> tuple[list[str], SyncResult]:
        """Add well-known servers, skipping names that already exist.

        Args:
            names: Recommended server names; None adds all of them

        Returns:
            (names actually added, result of the global re-sync)

        Raises:
            NotFoundError: If a name isn't a recommended server
        """
        with self.lock:
            if names is None:
                selected = list(RECOMMENDED_MCP_SERVERS)
            else:
                selected = []
                for name in names:
                    recommended = get_recommended_server(name)
                    if recommended is None:
                        raise NotFoundError("Recommended MCP server", name)
                    selected.append(recommended)

            added = []
            for recommended in selected:
                if self.mcp.exists(recommended.name):
                    continue
                server = LocalServer(
                    command=list(recommended.command),
                    metadata=ServerMetadata(description=recommended.description),
                )
                self.mcp.save(recommended.name, server)
                added.append(recommended.name)
            return added, self._resync_global()

    # ===== Backup =====

    def export_backup(self, path: Path) -> ExportStats:
        with self.lock:
            return export_backup(self.registry, self.mcp, path)

    def preview_backup(self, path: Path) -> BackupData:
        return preview_backup(path)

    def import_backup(self, path: Path, options: ImportOptions | None = None) -> ImportResult:
        with self.lock:
            return import_backup(self.registry, self.mcp, path, options)
