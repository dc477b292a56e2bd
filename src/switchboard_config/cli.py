"""Command-line interface over ConfigManager."""

from __future__ import annotations

from pathlib import Path

import click

from .backup import ImportOptions
from .exceptions import ConfigError
from .manager import ConfigManager
from .models import App
from .models import Scope
from .models import default_paths
from .presets import RECOMMENDED_MCP_SERVERS
from .redaction import setup_logging
from .schema import LocalServer
from .schema import OAuthConfig
from .sync import SyncResult

SCOPE_CHOICES = {
    "global": [Scope.GLOBAL],
    "project": [Scope.PROJECT],
    "both": [Scope.GLOBAL, Scope.PROJECT],
}


def mask_api_key(api_key: str) -> str:
    """Keep the first and last four characters of a key.

    Examples:
        >>> mask_api_key("sk-1234567890abcdef")
        'sk-1****cdef'
    """
    if not api_key:
        return ""
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}****{api_key[-4:]}"


def _parse_pairs(values: tuple[str, ...], option: str) -> dict[str, str]:
    pairs = {}
    for value in values:
        key, sep, item = value.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{value}'", param_hint=option)
        pairs[key] = item
    return pairs


def _echo_result(label: str, result: SyncResult) -> None:
    if result.success:
        click.echo(f"✓ {label}: {result.target}")
        if result.backup is not None:
            click.echo(f"  backup: {result.backup}")
    else:
        click.echo(click.style(f"✗ {label}: {result.error}", fg="red"))
    for warning in result.warnings:
        click.echo(click.style(f"  warning: {warning}", fg="yellow"))


def _echo_results(results: dict[Scope, SyncResult]) -> None:
    for scope, result in results.items():
        _echo_result(scope.value, result)
    if not all(result.success for result in results.values()):
        raise SystemExit(1)


class ConfigGroup(click.Group):
    """Group turning ConfigError into a clean CLI error."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except ConfigError as e:
            raise click.ClickException(str(e)) from e


@click.group(cls=ConfigGroup)
@click.option("--home", type=click.Path(file_okay=False, path_type=Path), help="Home directory to resolve paths from.")
@click.option("--project", type=click.Path(file_okay=False, path_type=Path), help="Project root for the project target.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, home: Path | None, project: Path | None, verbose: bool) -> None:
    """Keep AI-provider and MCP settings in sync across coding assistants."""
    setup_logging(verbose=verbose)
    if ctx.obj is None:
        ctx.obj = ConfigManager(default_paths(home=home, project_root=project))


# ===== provider =====


@main.group("provider")
def provider_group() -> None:
    """Manage providers in the canonical registry."""


@provider_group.command("list")
@click.pass_obj
def provider_list(manager: ConfigManager) -> None:
    providers = manager.registry.list_providers()
    if not providers:
        click.echo("No providers registered.")
        return
    for provider in providers:
        state = "" if provider.enabled else " (disabled)"
        tag = provider.model_type or "-"
        click.echo(f"{provider.name}{state}  [{tag}]  {provider.base_url}  models: {len(provider.models)}")


@provider_group.command("show")
@click.argument("name")
@click.pass_obj
def provider_show(manager: ConfigManager, name: str) -> None:
    provider = manager.registry.get_provider(name)
    click.echo(f"  {'name':12s}: {provider.name}")
    click.echo(f"  {'base_url':12s}: {provider.base_url}")
    click.echo(f"  {'api_key':12s}: {mask_api_key(provider.api_key) or '(not set)'}")
    click.echo(f"  {'npm':12s}: {provider.npm or '-'}")
    click.echo(f"  {'type':12s}: {provider.model_type or '-'}")
    click.echo(f"  {'enabled':12s}: {provider.enabled}")
    for model in manager.registry.get_models(name):
        click.echo(f"    - {model.id} ({', '.join(model.variants)})")


@provider_group.command("add")
@click.argument("name")
@click.option("--base-url", required=True)
@click.option("--api-key", default="", help="API key (prompted when omitted).")
@click.option("--npm", default=None, help="Package identifier; derived from --type when omitted.")
@click.option("--description", default=None)
@click.option("--type", "model_type", default=None, help="Classification tag: claude, codex, gemini, ...")
@click.option("--disabled", is_flag=True)
@click.option("--no-v1-suffix", is_flag=True, help="Never append /v1 to the base URL on sync.")
@click.pass_obj
def provider_add(
    manager: ConfigManager,
    name: str,
    base_url: str,
    api_key: str,
    npm: str | None,
    description: str | None,
    model_type: str | None,
    disabled: bool,
    no_v1_suffix: bool,
) -> None:
    """Register a new provider."""
    if not api_key:
        api_key = click.prompt("API key", default="", hide_input=True, show_default=False)
    with manager.lock:
        provider = manager.registry.add_provider(
            name,
            base_url,
            api_key,
            npm=npm,
            description=description,
            model_type=model_type,
            enabled=not disabled,
            auto_add_v1_suffix=not no_v1_suffix,
        )
    click.echo(f"✓ Added provider {provider.name}")


@provider_group.command("update")
@click.argument("name")
@click.option("--base-url", default=None)
@click.option("--api-key", default=None)
@click.option("--npm", default=None)
@click.option("--description", default=None)
@click.option("--type", "model_type", default=None)
@click.pass_obj
def provider_update(manager: ConfigManager, name: str, **options: str | None) -> None:
    """Change provider fields; options left out keep their value."""
    changes = {key: value for key, value in options.items() if value is not None}
    if not changes:
        raise click.UsageError("Nothing to update")
    with manager.lock:
        manager.registry.update_metadata(name, **changes)
    click.echo(f"✓ Updated provider {name}")


@provider_group.command("delete")
@click.argument("name")
@click.pass_obj
def provider_delete(manager: ConfigManager, name: str) -> None:
    with manager.lock:
        manager.registry.delete_provider(name)
    click.echo(f"✓ Deleted provider {name}")


@provider_group.command("toggle")
@click.argument("name")
@click.pass_obj
def provider_toggle(manager: ConfigManager, name: str) -> None:
    with manager.lock:
        enabled = manager.registry.toggle_enabled(name)
    click.echo(f"✓ {name} {'enabled' if enabled else 'disabled'}")


@provider_group.command("rename")
@click.argument("old")
@click.argument("new")
@click.pass_obj
def provider_rename(manager: ConfigManager, old: str, new: str) -> None:
    """Rename a provider, moving active references along."""
    manager.move_provider(old, new)
    click.echo(f"✓ Renamed {old} to {new}")


@provider_group.command("presets")
@click.argument("name")
@click.pass_obj
def provider_presets(manager: ConfigManager, name: str) -> None:
    """Add the preset models matching the provider."""
    added = manager.add_preset_models(name)
    click.echo(f"✓ Added {len(added)} model(s): {', '.join(added) or '-'}")


@provider_group.command("apply")
@click.argument("names", nargs=-1, required=True)
@click.option("--scope", type=click.Choice(sorted(SCOPE_CHOICES)), default="global", show_default=True)
@click.pass_obj
def provider_apply(manager: ConfigManager, names: tuple[str, ...], scope: str) -> None:
    """Sync providers into the OpenCode config(s)."""
    _echo_results(manager.apply_providers(list(names), SCOPE_CHOICES[scope]))


@provider_group.command("deployed")
@click.pass_obj
def provider_deployed(manager: ConfigManager) -> None:
    """List providers present in the OpenCode configs."""
    deployed = manager.deployed_providers()
    if not deployed:
        click.echo("No providers deployed.")
    for entry in deployed:
        click.echo(f"{entry.name}  [{entry.source}]  {entry.base_url}  models: {entry.model_count}")


@provider_group.command("undeploy")
@click.argument("name")
@click.option("--scope", type=click.Choice(sorted(SCOPE_CHOICES)), default="both", show_default=True)
@click.pass_obj
def provider_undeploy(manager: ConfigManager, name: str, scope: str) -> None:
    """Remove a provider entry from the OpenCode config(s)."""
    for target_scope, removed in manager.remove_deployed_provider(name, SCOPE_CHOICES[scope]).items():
        click.echo(f"{target_scope.value}: {'removed' if removed else 'not present'}")


# ===== model =====


@main.group("model")
def model_group() -> None:
    """Manage the models of a provider."""


@model_group.command("list")
@click.argument("provider")
@click.pass_obj
def model_list(manager: ConfigManager, provider: str) -> None:
    for model in manager.registry.get_models(provider):
        click.echo(f"{model.id}  {model.name}")


@model_group.command("add")
@click.argument("provider")
@click.argument("model_ids", nargs=-1, required=True)
@click.option("--name", default=None, help="Display name (single model only).")
@click.pass_obj
def model_add(manager: ConfigManager, provider: str, model_ids: tuple[str, ...], name: str | None) -> None:
    """Add one model, or several at once (duplicates are skipped)."""
    with manager.lock:
        if len(model_ids) == 1:
            manager.registry.add_model(provider, model_ids[0], name)
            added = list(model_ids)
        else:
            added = manager.registry.add_models_batch(provider, list(model_ids))
    click.echo(f"✓ Added {len(added)} model(s) to {provider}")


@model_group.command("delete")
@click.argument("provider")
@click.argument("model_id")
@click.pass_obj
def model_delete(manager: ConfigManager, provider: str, model_id: str) -> None:
    with manager.lock:
        manager.registry.delete_model(provider, model_id)
    click.echo(f"✓ Deleted model {model_id}")


# ===== mcp =====


@main.group("mcp")
def mcp_group() -> None:
    """Manage MCP servers."""


@mcp_group.command("list")
@click.pass_obj
def mcp_list(manager: ConfigManager) -> None:
    listing = manager.mcp.list_with_warnings()
    if not listing.servers:
        click.echo("No MCP servers.")
    for name, server in listing.servers.items():
        state = "" if server.enabled else " (disabled)"
        where = " ".join(server.command) if isinstance(server, LocalServer) else server.url
        click.echo(f"{name}{state}  [{server.type}]  {where}")
    for warning in listing.warnings:
        click.echo(click.style(f"warning: {warning}", fg="yellow"))


@mcp_group.command("add-local", context_settings={"ignore_unknown_options": True})
@click.argument("name")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--env", "env", multiple=True, help="Environment variable as KEY=VALUE.")
@click.option("--timeout", type=int, default=None)
@click.option("--description", default=None)
@click.pass_obj
def mcp_add_local(
    manager: ConfigManager,
    name: str,
    command: tuple[str, ...],
    env: tuple[str, ...],
    timeout: int | None,
    description: str | None,
) -> None:
    """Add a server started as COMMAND (use -- before flags of the command)."""
    result = manager.add_local_mcp(
        name, list(command), _parse_pairs(env, "--env"), timeout=timeout, description=description
    )
    _echo_result("global", result)


@mcp_group.command("add-remote")
@click.argument("name")
@click.argument("url")
@click.option("--header", "headers", multiple=True, help="HTTP header as KEY=VALUE.")
@click.option("--client-id", default=None)
@click.option("--client-secret", default=None)
@click.option("--oauth-scope", default=None)
@click.option("--timeout", type=int, default=None)
@click.option("--description", default=None)
@click.pass_obj
def mcp_add_remote(
    manager: ConfigManager,
    name: str,
    url: str,
    headers: tuple[str, ...],
    client_id: str | None,
    client_secret: str | None,
    oauth_scope: str | None,
    timeout: int | None,
    description: str | None,
) -> None:
    """Add a server reached over HTTP."""
    oauth = OAuthConfig(client_id=client_id, client_secret=client_secret, scope=oauth_scope)
    result = manager.add_remote_mcp(
        name,
        url,
        _parse_pairs(headers, "--header"),
        oauth=oauth,
        timeout=timeout,
        description=description,
    )
    _echo_result("global", result)


@mcp_group.command("delete")
@click.argument("name")
@click.pass_obj
def mcp_delete(manager: ConfigManager, name: str) -> None:
    _echo_result("global", manager.delete_mcp(name))


@mcp_group.command("rename")
@click.argument("old")
@click.argument("new")
@click.pass_obj
def mcp_rename(manager: ConfigManager, old: str, new: str) -> None:
    _echo_result("global", manager.rename_mcp(old, new))


@mcp_group.command("toggle")
@click.argument("name")
@click.pass_obj
def mcp_toggle(manager: ConfigManager, name: str) -> None:
    _echo_result("global", manager.toggle_mcp(name))


@mcp_group.command("sync")
@click.argument("names", nargs=-1)
@click.option("--scope", type=click.Choice(sorted(SCOPE_CHOICES)), default="global", show_default=True)
@click.pass_obj
def mcp_sync(manager: ConfigManager, names: tuple[str, ...], scope: str) -> None:
    """Write MCP servers into the OpenCode config(s); all enabled when no NAMES."""
    _echo_results(manager.sync_mcp(list(names) or None, SCOPE_CHOICES[scope]))


@mcp_group.command("recommended")
@click.argument("names", nargs=-1)
@click.option("--add", "add", is_flag=True, help="Add the listed servers (all when none listed).")
@click.pass_obj
def mcp_recommended(manager: ConfigManager, names: tuple[str, ...], add: bool) -> None:
    """List or add well-known MCP servers."""
    if not add:
        for server in RECOMMENDED_MCP_SERVERS:
            click.echo(f"{server.name:28s} {server.description}")
        return
    added, result = manager.add_recommended_mcp_servers(list(names) or None)
    click.echo(f"✓ Added {len(added)} server(s): {', '.join(added) or '-'}")
    _echo_result("global", result)


# ===== active =====


@main.group("active")
def active_group() -> None:
    """Show or change the active provider of each assistant."""


@active_group.command("show")
@click.argument("app", required=False, type=click.Choice([a.value for a in App]))
@click.pass_obj
def active_show(manager: ConfigManager, app: str | None) -> None:
    apps = [App(app)] if app else list(App)
    for item in apps:
        active = manager.active.get_active(item)
        if active is not None:
            click.echo(f"{item.value}: {active.name}  {active.base_url}")
            continue
        reference = manager.active.get_reference(item)
        click.echo(f"{item.value}: " + (f"{reference} (missing)" if reference else "-"))


@active_group.command("set")
@click.argument("app", type=click.Choice([a.value for a in App]))
@click.argument("name")
@click.option("--model", default=None, help="Model written into the assistant's config.")
@click.pass_obj
def active_set(manager: ConfigManager, app: str, name: str, model: str | None) -> None:
    """Apply a provider to an assistant and make it active."""
    result = manager.apply_to_app(app, name, model)
    _echo_result(app, result)
    if not result.success:
        raise SystemExit(1)


@active_group.command("clear")
@click.argument("app", type=click.Choice([a.value for a in App]))
@click.pass_obj
def active_clear(manager: ConfigManager, app: str) -> None:
    with manager.lock:
        manager.active.clear_active(app)
    click.echo(f"✓ Cleared active provider of {app}")


# ===== backup =====


@main.group("backup")
def backup_group() -> None:
    """Export and import providers and MCP servers."""


@backup_group.command("export")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def backup_export(manager: ConfigManager, path: Path) -> None:
    stats = manager.export_backup(path)
    click.echo(
        f"✓ Exported {stats.providers} provider(s), {stats.models} model(s), {stats.mcp_servers} MCP server(s)"
    )


@backup_group.command("preview")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def backup_preview(manager: ConfigManager, path: Path) -> None:
    backup = manager.preview_backup(path)
    click.echo(f"Backup {backup.version} from {backup.created_at}")
    for provider in backup.providers:
        click.echo(f"  provider {provider.name} ({len(provider.models)} models)")
    for server in backup.mcp_servers:
        click.echo(f"  mcp {server.name} [{server.server_type}]")


@backup_group.command("import")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--overwrite", is_flag=True, help="Replace entities that already exist.")
@click.option("--no-providers", is_flag=True)
@click.option("--no-mcp", is_flag=True)
@click.pass_obj
def backup_import(manager: ConfigManager, path: Path, overwrite: bool, no_providers: bool, no_mcp: bool) -> None:
    options = ImportOptions(
        import_providers=not no_providers,
        import_mcp=not no_mcp,
        overwrite_existing=overwrite,
    )
    result = manager.import_backup(path, options)
    click.echo(f"Providers: {result.providers_imported} imported, {result.providers_skipped} skipped")
    click.echo(f"MCP servers: {result.mcp_imported} imported, {result.mcp_skipped} skipped")
    for error in result.errors:
        click.echo(click.style(f"error: {error}", fg="red"))
    if not result.success:
        raise SystemExit(1)
