"""switchboard-config: One provider and MCP registry for many coding assistants.

This library keeps a canonical description of AI providers (credentials,
models, reasoning variants) and MCP tool servers, and projects it into the
configuration files of several command-line assistants:
- OpenCode (typically ~/.config/opencode/opencode.json and .opencode/opencode.json)
- Claude Code (~/.claude/settings.json)
- Codex (~/.codex/config.toml)
- Gemini (~/.gemini/.env)

Syncs are scoped: only entries of the classification tags being synced are
replaced, everything else in a target file round-trips untouched, and the
previous file is copied to a .bak sibling before each write.

Applications inject paths to define their configuration policy. The library
provides the mechanism for storing, merging and writing configuration.

Public API:
    ConfigManager: Handle composing every store behind one lock
    ConfigPaths: Dataclass defining the canonical documents and sync targets
    default_paths: Default file layout with environment overrides
    Scope: Enum for GLOBAL/PROJECT OpenCode targets
    App: Enum of the downstream assistants
    build_variants: Variant table for a classification tag
    ConfigError and subclasses: Exception types

Example:
    ```python
    from switchboard_config import ConfigManager, Scope, default_paths

    config = ConfigManager(default_paths())

    config.registry.add_provider("P1", "https://api.example.com", "sk-...", model_type="claude")
    config.registry.add_model("P1", "m1")

    # Write P1 into the global and project OpenCode configs
    results = config.apply_providers(["P1"], [Scope.GLOBAL, Scope.PROJECT])
    ```
"""

from .exceptions import AlreadyExistsError
from .exceptions import ConfigError
from .exceptions import ConfigFileError
from .exceptions import ConfigFormatError
from .exceptions import ConfigValidationError
from .exceptions import NotFoundError
from .manager import ConfigManager
from .models import App
from .models import ConfigPaths
from .models import Scope
from .models import default_paths
from .sync import SyncResult
from .variants import build_variants

__version__ = "0.1.0"

__all__ = [
    "ConfigManager",
    "ConfigPaths",
    "default_paths",
    "Scope",
    "App",
    "SyncResult",
    "build_variants",
    "ConfigError",
    "ConfigFileError",
    "ConfigFormatError",
    "ConfigValidationError",
    "NotFoundError",
    "AlreadyExistsError",
]
