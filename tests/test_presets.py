"""Tests for presets and protocol heuristics."""

import pytest
from switchboard_config.presets import ANTHROPIC_NPM
from switchboard_config.presets import CLAUDE_PRESET_MODELS
from switchboard_config.presets import CODEX_PRESET_MODELS
from switchboard_config.presets import GEMINI_PRESET_MODELS
from switchboard_config.presets import OPENAI_NPM
from switchboard_config.presets import RECOMMENDED_MCP_SERVERS
from switchboard_config.presets import ZHIPU_PRESET_MODELS
from switchboard_config.presets import default_npm
from switchboard_config.presets import get_recommended_server
from switchboard_config.presets import is_anthropic_protocol
from switchboard_config.presets import is_zhipu_protocol
from switchboard_config.presets import resolve_preset_models
from switchboard_config.presets import uses_anthropic_protocol


class TestDefaultNpm:
    """Test default_npm function."""

    def test_claude(self):
        assert default_npm("claude") == ANTHROPIC_NPM

    @pytest.mark.parametrize("tag", ["codex", "gemini", "Codex"])
    def test_openai_compatible(self, tag):
        assert default_npm(tag) == OPENAI_NPM

    def test_unknown_tag_falls_back_to_anthropic(self):
        assert default_npm("zhipu") == ANTHROPIC_NPM

    def test_no_tag(self):
        assert default_npm(None) is None


class TestProtocolHeuristics:
    """Test URL based protocol detection."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://api.anthropic.com",
            "https://www.packyapi.com/claude",
            "https://api.cubence.com",
            "https://api.aigocode.com/v1",
        ],
    )
    def test_anthropic_urls(self, url):
        assert is_anthropic_protocol(url)

    def test_plain_url_is_not_anthropic(self):
        assert not is_anthropic_protocol("https://api.example.com")

    def test_npm_name_wins(self):
        assert uses_anthropic_protocol("https://api.example.com", "@ai-sdk/anthropic")
        assert not uses_anthropic_protocol("https://api.example.com", "@ai-sdk/openai")

    @pytest.mark.parametrize("url", ["https://open.bigmodel.cn/api", "https://zhipu.example.com", "https://GLM.example"])
    def test_zhipu_urls(self, url):
        assert is_zhipu_protocol(url)


class TestResolvePresetModels:
    """Test resolve_preset_models function."""

    def test_zhipu_url_first(self):
        """Test a zhipu endpoint wins over the claude tag."""
        assert resolve_preset_models("https://open.bigmodel.cn/api/anthropic", "claude") == (
            "zhipu",
            ZHIPU_PRESET_MODELS,
        )

    def test_codex_tag(self):
        assert resolve_preset_models("https://api.example.com", "codex") == ("codex", CODEX_PRESET_MODELS)

    def test_gemini_tag(self):
        assert resolve_preset_models("https://api.example.com", "gemini") == ("gemini", GEMINI_PRESET_MODELS)

    def test_claude_by_tag_npm_or_url(self):
        assert resolve_preset_models("https://api.example.com", "claude")[0] == "claude"
        assert resolve_preset_models("https://api.example.com", None, "@ai-sdk/anthropic")[0] == "claude"
        assert resolve_preset_models("https://api.anthropic.com", None)[0] == "claude"

    def test_no_preset(self):
        assert resolve_preset_models("https://api.example.com", None) is None

    def test_returns_copy(self):
        _, models = resolve_preset_models("https://api.example.com", "claude")
        models.clear()
        assert CLAUDE_PRESET_MODELS


class TestRecommendedServers:
    """Test the recommended MCP server list."""

    def test_names_are_unique(self):
        names = [server.name for server in RECOMMENDED_MCP_SERVERS]
        assert len(names) == len(set(names))

    def test_all_run_through_npx(self):
        for server in RECOMMENDED_MCP_SERVERS:
            assert server.command[:2] == ["npx", "-y"]

    def test_lookup(self):
        assert get_recommended_server("context7-mcp").command == ["npx", "-y", "@upstash/context7-mcp@latest"]
        assert get_recommended_server("nope") is None
