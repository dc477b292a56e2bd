"""Path and scope models for switchboard-config."""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .exceptions import ConfigValidationError


class Scope(Enum):
    """Sync target scope enumeration.

    Determines which OpenCode configuration file a sync writes into.
    """

    GLOBAL = "global"
    PROJECT = "project"


class App(Enum):
    """Downstream command-line assistants that can hold an active provider."""

    OPENCODE = "opencode"
    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"


class McpBackend(Enum):
    """Physical layout of the MCP server store."""

    DIRECTORY = "directory"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class ConfigPaths:
    """Paths to the canonical documents and to every sync target.

    Immutable configuration for where files are located. Applications inject
    these paths to define their configuration policy; the library only reads
    and writes them.

    Attributes:
        canonical: Provider registry document (YAML)
        active: Active-reference document (JSON)
        mcp_dir: Directory holding one JSON file per MCP server
        global_target: Global OpenCode config file
        project_target: Project OpenCode config file (optional)
        mcp_db: SQLite database for the MCP store (optional, selects that backend)
        claude_settings: Claude Code settings.json (optional)
        codex_config: Codex config.toml (optional)
        codex_auth: Codex auth.json holding the API key (optional)
        gemini_env: Gemini .env file (optional)
    """

    canonical: Path
    active: Path
    mcp_dir: Path
    global_target: Path
    project_target: Path | None = None
    mcp_db: Path | None = None
    claude_settings: Path | None = None
    codex_config: Path | None = None
    codex_auth: Path | None = None
    gemini_env: Path | None = None

    def target_for(self, scope: Scope) -> Path | None:
        """Return the OpenCode target path for a scope."""
        if scope is Scope.GLOBAL:
            return self.global_target
        return self.project_target


def default_paths(home: Path | None = None, project_root: Path | None = None) -> ConfigPaths:
    """Build the default file layout, honouring environment overrides.

    Environment variables:
        SWITCHBOARD_HOME: Directory for the canonical documents (default ~/.switchboard)
        SWITCHBOARD_OPENCODE_CONFIG: Global OpenCode config file
        SWITCHBOARD_PROJECT_ROOT: Project root used for the project target
        SWITCHBOARD_MCP_BACKEND: "directory" (default) or "sqlite"

    Args:
        home: User home directory (default: Path.home())
        project_root: Project root (default: current working directory)

    Returns:
        ConfigPaths for the default layout
    """
    home = home or Path.home()
    base = Path(os.environ.get("SWITCHBOARD_HOME", home / ".switchboard")).expanduser()

    global_target = Path(
        os.environ.get("SWITCHBOARD_OPENCODE_CONFIG", home / ".config" / "opencode" / "opencode.json")
    ).expanduser()

    if project_root is None:
        project_root = Path(os.environ.get("SWITCHBOARD_PROJECT_ROOT", Path.cwd())).expanduser()

    # Running from home would make the project target collide with user-level files
    project_target = None if project_root.resolve() == home.resolve() else project_root / ".opencode" / "opencode.json"

    backend_name = os.environ.get("SWITCHBOARD_MCP_BACKEND", McpBackend.DIRECTORY.value).lower()
    try:
        backend = McpBackend(backend_name)
    except ValueError as e:
        raise ConfigValidationError(f"Unknown MCP backend '{backend_name}'") from e

    return ConfigPaths(
        canonical=base / "providers.yaml",
        active=base / "active.json",
        mcp_dir=base / "mcp",
        mcp_db=base / "mcp.db" if backend is McpBackend.SQLITE else None,
        global_target=global_target,
        project_target=project_target,
        claude_settings=home / ".claude" / "settings.json",
        codex_config=home / ".codex" / "config.toml",
        codex_auth=home / ".codex" / "auth.json",
        gemini_env=home / ".gemini" / ".env",
    )
