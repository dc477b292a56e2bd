"""Built-in presets: model lists, protocol heuristics and recommended MCP servers."""

from dataclasses import dataclass
from dataclasses import field

ANTHROPIC_NPM = "@ai-sdk/anthropic"
OPENAI_NPM = "@ai-sdk/openai"

CLAUDE_PRESET_MODELS = [
    "claude-4.1-opus",
    "claude-4.5-haiku",
    "claude-4.5-opus",
    "claude-4.5-sonnet",
]

ZHIPU_PRESET_MODELS = [
    "glm-4.7",
    "glm-4.6",
]

CODEX_PRESET_MODELS = [
    "gpt-5.2-codex",
    "gpt-5.2",
    "gpt-5.1-codex-max",
    "gpt-5.1-codex-mini",
    "gpt-5.1",
]

GEMINI_PRESET_MODELS = [
    "gemini-3-pro",
    "gemini-2.5-pro",
    "gemini-2.5-flash",
]

# Relays known to speak the Anthropic protocol
_ANTHROPIC_HOST_MARKERS = ("anthropic", "packyapi.com", "cubence.com", "aigocode.com")
_ZHIPU_HOST_MARKERS = ("bigmodel.cn", "zhipu", "glm")


def default_npm(tag: str | None) -> str | None:
    """Package identifier implied by a classification tag.

    Returns:
        Package name, or None when the provider has no tag
    """
    if tag is None:
        return None
    if tag.lower() in ("codex", "gemini"):
        return OPENAI_NPM
    return ANTHROPIC_NPM


def is_anthropic_protocol(base_url: str) -> bool:
    """Guess from the URL whether an endpoint speaks the Anthropic protocol."""
    url = base_url.lower()
    return any(marker in url for marker in _ANTHROPIC_HOST_MARKERS)


def is_zhipu_protocol(base_url: str) -> bool:
    url = base_url.lower()
    return any(marker in url for marker in _ZHIPU_HOST_MARKERS)


def uses_anthropic_protocol(base_url: str, npm: str | None) -> bool:
    """Anthropic protocol check by package name first, URL heuristic second."""
    if npm and "anthropic" in npm.lower():
        return True
    return is_anthropic_protocol(base_url)


def resolve_preset_models(base_url: str, tag: str | None, npm: str | None = None) -> tuple[str, list[str]] | None:
    """Pick a preset model list for a provider.

    Returns:
        (preset source, model ids), or None when no preset applies and the
        model list has to be discovered from the endpoint
    """
    tag = (tag or "").lower()

    if is_zhipu_protocol(base_url):
        return "zhipu", list(ZHIPU_PRESET_MODELS)
    if tag == "codex":
        return "codex", list(CODEX_PRESET_MODELS)
    if tag == "gemini":
        return "gemini", list(GEMINI_PRESET_MODELS)
    if tag == "claude" or uses_anthropic_protocol(base_url, npm):
        return "claude", list(CLAUDE_PRESET_MODELS)
    return None


@dataclass(frozen=True)
class RecommendedServer:
    """A well-known local MCP server that can be added in one step."""

    name: str
    description: str
    command: list[str] = field(default_factory=list)
    url: str = ""


def _npx(package: str, *extra: str) -> list[str]:
    return ["npx", "-y", package, *extra]


_MCP_SERVERS_REPO = "https://github.com/modelcontextprotocol/servers"

RECOMMENDED_MCP_SERVERS: list[RecommendedServer] = [
    RecommendedServer(
        "server-memory",
        "Knowledge-graph memory for persistent entities and relations",
        _npx("@modelcontextprotocol/server-memory"),
        _MCP_SERVERS_REPO,
    ),
    RecommendedServer(
        "server-sequential-thinking",
        "Step-by-step reasoning for complex problems",
        _npx("@modelcontextprotocol/server-sequential-thinking"),
        _MCP_SERVERS_REPO,
    ),
    RecommendedServer(
        "server-filesystem",
        "Sandboxed file reads and writes",
        _npx("@modelcontextprotocol/server-filesystem", "/path/to/allowed/files"),
        _MCP_SERVERS_REPO,
    ),
    RecommendedServer(
        "server-fetch",
        "Fetch web pages and convert them for LLM use",
        _npx("@modelcontextprotocol/server-fetch"),
        _MCP_SERVERS_REPO,
    ),
    RecommendedServer(
        "server-github",
        "GitHub issues, pull requests and repositories",
        _npx("@modelcontextprotocol/server-github"),
        _MCP_SERVERS_REPO,
    ),
    RecommendedServer(
        "server-git",
        "Read, search and manipulate Git repositories",
        _npx("@modelcontextprotocol/server-git"),
        _MCP_SERVERS_REPO,
    ),
    RecommendedServer(
        "context7-mcp",
        "Up-to-date library documentation and code examples",
        _npx("@upstash/context7-mcp@latest"),
        "https://context7.com",
    ),
    RecommendedServer(
        "playwright",
        "Browser automation, scraping and testing",
        _npx("@playwright/mcp@latest"),
        "https://github.com/microsoft/playwright-mcp",
    ),
    RecommendedServer(
        "server-postgres",
        "PostgreSQL queries",
        _npx("@modelcontextprotocol/server-postgres"),
        _MCP_SERVERS_REPO,
    ),
    RecommendedServer(
        "server-sqlite",
        "Lightweight SQLite database access",
        _npx("@modelcontextprotocol/server-sqlite"),
        _MCP_SERVERS_REPO,
    ),
]


def get_recommended_server(name: str) -> RecommendedServer | None:
    return next((server for server in RECOMMENDED_MCP_SERVERS if server.name == name), None)
