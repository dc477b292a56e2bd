"""Sync engine: scoped merge of the canonical stores into OpenCode configs.

The merge itself is a set of pure functions from (existing target object,
selection) to a new target object. SyncEngine is the thin shell that reads
the target, runs the merge, backs the file up and writes it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import TypeVar
from typing import assert_never

from .exceptions import ConfigError
from .exceptions import ConfigFormatError
from .exceptions import NotFoundError
from .files import dump_json
from .files import read_json
from .files import replace_with_backup
from .mcp import McpStore
from .presets import uses_anthropic_protocol
from .registry import ProviderRegistry
from .schema import LocalServer
from .schema import Model
from .schema import Provider
from .schema import ReasoningEffortVariant
from .schema import RemoteServer
from .schema import ThinkingVariant
from .schema import Variant
from .utils import fill_missing

logger = logging.getLogger(__name__)

K = TypeVar("K")

# Minimum an OpenCode config needs to boot
SKELETON: dict[str, Any] = {
    "$schema": "https://opencode.ai/config.json",
    "theme": "tokyonight",
    "autoupdate": False,
    "tools": {"webfetch": True},
}

PROVIDER_KEY = "provider"
MCP_KEY = "mcp"


# ===== Pure merge functions =====


def ensure_skeleton(target: dict[str, Any]) -> dict[str, Any]:
    """Add the skeleton keys a target is missing; present keys are untouched."""
    return fill_missing(target, SKELETON)


def with_v1_suffix(base_url: str) -> str:
    """Append /v1 unless the URL already ends with it.

    Examples:
        >>> with_v1_suffix("https://api.example.com/")
        'https://api.example.com/v1'
        >>> with_v1_suffix("https://api.example.com/v1/")
        'https://api.example.com/v1/'
    """
    if base_url.endswith(("/v1", "/v1/")):
        return base_url
    return f"{base_url.rstrip('/')}/v1"


def variant_to_target(variant: Variant) -> dict[str, Any]:
    match variant:
        case ReasoningEffortVariant(reasoning_effort=effort):
            return {"reasoning_effort": effort}
        case ThinkingVariant(thinking=thinking):
            return {"thinking": {"budget_tokens": thinking.budget_tokens}}
        case _:
            assert_never(variant)


def model_to_target(model: Model) -> dict[str, Any]:
    entry: dict[str, Any] = {"name": model.name}
    if model.limit is not None:
        entry["limit"] = model.limit.model_dump(exclude_none=True)
    if model.reasoning_effort is not None:
        entry["reasoning_effort"] = model.reasoning_effort
    entry["reasoning"] = model.reasoning
    entry["variants"] = {name: variant_to_target(variant) for name, variant in model.variants.items()}
    return entry


def provider_to_target(provider: Provider) -> dict[str, Any]:
    """Serialize a provider the way OpenCode reads it.

    Registry-only fields (tag, enabled flag, suffix switch, description,
    timestamps) are left out.
    """
    base_url = provider.base_url
    if provider.auto_add_v1_suffix and uses_anthropic_protocol(base_url, provider.npm):
        base_url = with_v1_suffix(base_url)

    entry: dict[str, Any] = {}
    if provider.npm:
        entry["npm"] = provider.npm
    entry["name"] = provider.name
    entry["options"] = {"baseURL": base_url, "apiKey": provider.api_key}
    entry["models"] = {model_id: model_to_target(model) for model_id, model in provider.models.items()}
    return entry


def _object_at(target: dict[str, Any], key: str) -> dict[str, Any]:
    value = target.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigFormatError(f"Expected '{key}' to be an object in the target config")
    return value


def merge_providers(
    target: dict[str, Any],
    providers: list[Provider],
    tag_of: Mapping[str, str | None],
) -> dict[str, Any]:
    """Merge selected providers into a target object.

    The scope tag is the classification tag of the first selected provider.
    Existing entries whose registry tag equals it are dropped unless they
    are selected again; selected entries replace their old value in place,
    new ones are appended. Entries the registry doesn't know, and entries of
    other tags, are kept verbatim. Every selected provider is written, the
    enabled flag being one of the registry-only fields left out.

    Args:
        target: Current target object (not modified)
        providers: Providers to write
        tag_of: Registry provider name -> classification tag

    Returns:
        New target object
    """
    result = ensure_skeleton(target)
    existing = _object_at(result, PROVIDER_KEY)

    scope = providers[0].model_type if providers else None
    selected = {provider.name: provider for provider in providers}

    merged: dict[str, Any] = {}
    for name, entry in existing.items():
        if name in selected:
            merged[name] = provider_to_target(selected[name])
        elif scope is None or tag_of.get(name) != scope:
            merged[name] = entry

    for provider in providers:
        if provider.name not in merged:
            merged[provider.name] = provider_to_target(provider)

    result[PROVIDER_KEY] = merged
    return result


def server_to_target(server: LocalServer | RemoteServer) -> dict[str, Any]:
    """Serialize an MCP server the way OpenCode reads it."""
    entry: dict[str, Any] = {"type": server.type, "enabled": server.enabled}
    if server.timeout is not None:
        entry["timeout"] = server.timeout

    match server:
        case LocalServer():
            entry["command"] = list(server.command)
            if server.environment:
                entry["environment"] = dict(server.environment)
        case RemoteServer():
            entry["url"] = server.url
            if server.headers:
                entry["headers"] = dict(server.headers)
            if server.oauth is not None and not server.oauth.is_empty():
                entry["oauth"] = server.oauth.model_dump(by_alias=True, exclude_none=True)
        case _:
            assert_never(server)
    return entry


def merge_mcp(target: dict[str, Any], servers: Mapping[str, LocalServer | RemoteServer]) -> dict[str, Any]:
    """Replace the target's MCP map wholesale with the given servers."""
    result = ensure_skeleton(target)
    result[MCP_KEY] = {name: server_to_target(server) for name, server in servers.items()}
    return result


def remove_provider_entry(target: dict[str, Any], name: str) -> dict[str, Any] | None:
    """Drop one provider entry.

    Returns:
        New target object, or None when the entry wasn't there
    """
    existing = _object_at(target, PROVIDER_KEY)
    if name not in existing:
        return None
    result = target.copy()
    result[PROVIDER_KEY] = {key: value for key, value in existing.items() if key != name}
    return result


# ===== Results =====


@dataclass
class SyncResult:
    """Outcome of one sync against one target file.

    Attributes:
        target: Target path (None when the scope has no configured target)
        success: Whether the target was written
        synced: Names written into the target
        backup: Path of the .bak copy taken before writing, if any
        warnings: Recovered problems, such as unreadable MCP documents
        error: Failure message when success is False
    """

    target: Path | None
    success: bool = True
    synced: list[str] = field(default_factory=list)
    backup: Path | None = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, target: Path | None, error: str) -> SyncResult:
        return cls(target=target, success=False, error=error)


@dataclass
class DeployedProvider:
    """A provider entry found in a sync target."""

    name: str
    base_url: str
    model_count: int
    source: str


# ===== Filesystem shell =====


class SyncEngine:
    """Applies the merge functions to target files.

    Args:
        registry: Provider registry
        mcp: MCP server store
    """

    def __init__(self, registry: ProviderRegistry, mcp: McpStore):
        self.registry = registry
        self.mcp = mcp

    def read_target(self, path: Path) -> dict[str, Any]:
        """Read a target config ({} when the file doesn't exist).

        Raises:
            ConfigFormatError: If the file isn't a JSON object
        """
        data = read_json(path)
        if data is None:
            logger.debug(f"Target {path} does not exist yet")
            return {}
        return data

    def write_target(self, path: Path, data: dict[str, Any]) -> Path | None:
        """Back up the target (if present) and write the new object.

        Returns:
            Backup path, or None if there was no previous file
        """
        backup = replace_with_backup(path, dump_json(data))
        logger.info(f"Wrote {path}")
        return backup

    def _select_providers(self, names: Iterable[str]) -> tuple[list[Provider], dict[str, str | None]]:
        document = self.registry.load()
        providers: list[Provider] = []
        for name in dict.fromkeys(names):
            provider = document.providers.get(name)
            if provider is None:
                raise NotFoundError("Provider", name)
            providers.append(provider)
        tag_of = {name: provider.model_type for name, provider in document.providers.items()}
        return providers, tag_of

    def sync_providers(self, target: Path, names: Iterable[str]) -> SyncResult:
        """Write the named providers into one target file.

        Raises:
            NotFoundError: If a name isn't registered (nothing is written)
            ConfigFormatError: If the target isn't valid JSON
        """
        providers, tag_of = self._select_providers(names)
        merged = merge_providers(self.read_target(target), providers, tag_of)
        backup = self.write_target(target, merged)
        synced = [provider.name for provider in providers]
        logger.info(f"Synced {len(synced)} provider(s) to {target}")
        return SyncResult(target=target, synced=synced, backup=backup)

    def sync_mcp(self, target: Path, names: Iterable[str] | None = None) -> SyncResult:
        """Replace the MCP map of one target file.

        Args:
            target: Target path
            names: Servers to write; None selects every enabled server

        Raises:
            NotFoundError: If an explicitly named server doesn't exist
        """
        warnings: list[str] = []
        if names is None:
            listing = self.mcp.list_with_warnings()
            servers = {name: server for name, server in listing.servers.items() if server.enabled}
            warnings = listing.warnings
        else:
            servers = {name: self.mcp.get(name) for name in dict.fromkeys(names)}

        merged = merge_mcp(self.read_target(target), servers)
        backup = self.write_target(target, merged)
        logger.info(f"Synced {len(servers)} MCP server(s) to {target}")
        return SyncResult(target=target, synced=list(servers), backup=backup, warnings=warnings)

    def fan_out(self, targets: Mapping[K, Path | None], fn: Callable[[Path], SyncResult]) -> dict[K, SyncResult]:
        """Run one sync per target, each independently of the others.

        A ConfigError on one target becomes a failed result for that target;
        the remaining targets are still attempted.
        """
        results: dict[K, SyncResult] = {}
        for key, path in targets.items():
            if path is None:
                results[key] = SyncResult.failed(None, f"No target configured for {key}")
                continue
            try:
                results[key] = fn(path)
            except ConfigError as e:
                logger.warning(f"Sync to {path} failed: {e}")
                results[key] = SyncResult.failed(path, str(e))
        return results

    # ===== Deployed providers =====

    def deployed_providers(self, targets: Mapping[str, Path | None]) -> list[DeployedProvider]:
        """List provider entries found in the targets.

        Targets are read in the given order; a name seen in an earlier target
        hides later ones. Unreadable targets are skipped with a warning.

        Args:
            targets: Source label -> target path, e.g. {"global": ..., "project": ...}

        Returns:
            Providers sorted by name
        """
        found: dict[str, DeployedProvider] = {}
        for source, path in targets.items():
            if path is None:
                continue
            try:
                entries = _object_at(self.read_target(path), PROVIDER_KEY)
            except ConfigError as e:
                logger.warning(f"Skipping unreadable target {path}: {e}")
                continue
            for name, entry in entries.items():
                if name in found or not isinstance(entry, dict):
                    continue
                options = entry.get("options") if isinstance(entry.get("options"), dict) else {}
                models = entry.get("models") if isinstance(entry.get("models"), dict) else {}
                found[name] = DeployedProvider(
                    name=name,
                    base_url=str(options.get("baseURL", "")),
                    model_count=len(models),
                    source=source,
                )
        return [found[name] for name in sorted(found)]

    def remove_deployed_provider(self, target: Path, name: str) -> bool:
        """Delete one provider entry from a target file.

        Returns:
            True if the entry existed and the file was rewritten
        """
        if not target.exists():
            return False
        updated = remove_provider_entry(self.read_target(target), name)
        if updated is None:
            return False
        self.write_target(target, updated)
        logger.info(f"Removed provider '{name}' from {target}")
        return True

    def is_provider_applied(self, target: Path, name: str) -> bool:
        if not target.exists():
            return False
        return name in _object_at(self.read_target(target), PROVIDER_KEY)
