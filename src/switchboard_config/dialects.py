"""Projection of one provider into the Claude Code, Codex and Gemini configs.

Unlike OpenCode, these tools hold a single active provider, so each writer
takes one provider and replaces only the keys it owns.
"""

import json
import logging
from pathlib import Path
from urllib.parse import urlsplit

from .files import dump_json
from .files import read_json
from .files import read_text
from .files import replace_with_backup
from .schema import Provider
from .utils import deep_merge

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"
DEFAULT_CODEX_MODEL = "gpt-4o"
DEFAULT_CODEX_REASONING_EFFORT = "high"
DEFAULT_GEMINI_MODEL = "gemini-2.5-pro"

CODEX_PROVIDER_ID = "switchboard"


# ===== Claude Code =====


def claude_env(provider: Provider, model: str | None = None) -> dict[str, str]:
    """Environment block Claude Code reads from settings.json."""
    model = model or DEFAULT_CLAUDE_MODEL
    return {
        "ANTHROPIC_BASE_URL": provider.base_url,
        "ANTHROPIC_AUTH_TOKEN": provider.api_key,
        "ANTHROPIC_MODEL": model,
        "ANTHROPIC_DEFAULT_HAIKU_MODEL": model,
        "ANTHROPIC_DEFAULT_SONNET_MODEL": model,
        "ANTHROPIC_DEFAULT_OPUS_MODEL": model,
    }


def write_claude_settings(path: Path, provider: Provider, model: str | None = None) -> Path | None:
    """Merge the provider into settings.json's env; other keys are preserved.

    Returns:
        Backup path, or None if the file didn't exist
    """
    settings = deep_merge(read_json(path) or {}, {"env": claude_env(provider, model)})
    backup = replace_with_backup(path, dump_json(settings))
    logger.info(f"Applied provider '{provider.name}' to {path}")
    return backup


# ===== Codex =====


def _toml_string(value: str) -> str:
    # JSON string escapes are valid TOML basic-string escapes
    return json.dumps(value, ensure_ascii=False)


def codex_base_url(base_url: str) -> str:
    """Codex needs the /v1 path when only an origin is configured.

    Examples:
        >>> codex_base_url("https://api.example.com/")
        'https://api.example.com/v1'
        >>> codex_base_url("https://api.example.com/openai")
        'https://api.example.com/openai'
    """
    trimmed = base_url.rstrip("/")
    if trimmed.endswith("/v1"):
        return trimmed
    parts = urlsplit(trimmed)
    path = parts.path if parts.scheme else trimmed.partition("/")[2]
    return f"{trimmed}/v1" if not path.strip("/") else trimmed


def render_codex_config(provider: Provider, model: str | None = None, reasoning_effort: str | None = None) -> str:
    """Render a complete config.toml for one provider."""
    lines = [
        f"model_provider = {_toml_string(CODEX_PROVIDER_ID)}",
        f"model = {_toml_string(model or DEFAULT_CODEX_MODEL)}",
        f"model_reasoning_effort = {_toml_string(reasoning_effort or DEFAULT_CODEX_REASONING_EFFORT)}",
        "disable_response_storage = true",
        "",
        f"[model_providers.{CODEX_PROVIDER_ID}]",
        f"name = {_toml_string(provider.name)}",
        f"base_url = {_toml_string(codex_base_url(provider.base_url))}",
        'wire_api = "responses"',
        "requires_openai_auth = true",
    ]
    return "\n".join(lines) + "\n"


def write_codex_config(
    path: Path, provider: Provider, model: str | None = None, reasoning_effort: str | None = None
) -> Path | None:
    """Replace config.toml; the whole file is owned by this writer."""
    backup = replace_with_backup(path, render_codex_config(provider, model, reasoning_effort))
    logger.info(f"Applied provider '{provider.name}' to {path}")
    return backup


def write_codex_auth(path: Path, provider: Provider) -> Path | None:
    """Store the API key config.toml's requires_openai_auth points Codex at.

    Other keys of auth.json (login tokens) are preserved.
    """
    auth = deep_merge(read_json(path) or {}, {"OPENAI_API_KEY": provider.api_key})
    backup = replace_with_backup(path, dump_json(auth))
    logger.info(f"Applied credentials of provider '{provider.name}' to {path}")
    return backup


# ===== Gemini =====


def gemini_env(provider: Provider, model: str | None = None) -> dict[str, str]:
    return {
        "GOOGLE_GEMINI_BASE_URL": provider.base_url,
        "GEMINI_API_KEY": provider.api_key,
        "GEMINI_MODEL": model or DEFAULT_GEMINI_MODEL,
    }


def merge_env_lines(content: str, values: dict[str, str]) -> str:
    """Set KEY=value lines in .env text.

    Existing assignments of the keys are replaced where they stand, missing
    ones are appended, every other line is kept as is.

    Examples:
        >>> merge_env_lines("# keys\\nA=1\\nB=2\\n", {"B": "3", "C": "4"})
        '# keys\\nA=1\\nB=3\\nC=4\\n'
    """
    pending = dict(values)
    lines = []
    for line in content.splitlines():
        key = line.split("=", 1)[0].strip()
        if key.startswith("export "):
            key = key[len("export ") :].strip()
        if "=" in line and key in pending:
            lines.append(f"{key}={pending.pop(key)}")
        else:
            lines.append(line)
    lines.extend(f"{key}={value}" for key, value in pending.items())
    return "\n".join(lines) + "\n"


def write_gemini_env(path: Path, provider: Provider, model: str | None = None) -> Path | None:
    """Update the provider keys of a Gemini .env file."""
    content = merge_env_lines(read_text(path) or "", gemini_env(provider, model))
    backup = replace_with_backup(path, content)
    logger.info(f"Applied provider '{provider.name}' to {path}")
    return backup
