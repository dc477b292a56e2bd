"""Tests for ProviderRegistry."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from switchboard_config.exceptions import AlreadyExistsError
from switchboard_config.exceptions import ConfigFormatError
from switchboard_config.exceptions import ConfigValidationError
from switchboard_config.exceptions import NotFoundError
from switchboard_config.registry import ProviderRegistry
from switchboard_config.schema import ModelLimit
from switchboard_config.schema import ReasoningEffortVariant
from switchboard_config.schema import ThinkingVariant


class TestProviderRegistry:
    """Test ProviderRegistry class."""

    @pytest.fixture
    def registry(self):
        """Create a registry over a temporary document."""
        with TemporaryDirectory() as tmpdir:
            yield ProviderRegistry(Path(tmpdir) / "switchboard" / "providers.yaml")

    # ===== Provider Tests =====

    def test_empty_registry(self, registry):
        assert registry.list_providers() == []
        assert not registry.path.exists()

    def test_add_then_get_round_trips(self, registry):
        added = registry.add_provider(
            "P1",
            "https://api.example.com",
            "sk-123",
            description="Example",
            model_type="claude",
        )
        fetched = registry.get_provider("P1")

        assert fetched == added
        assert fetched.base_url == "https://api.example.com"
        assert fetched.api_key == "sk-123"
        assert fetched.description == "Example"
        assert fetched.enabled is True

    def test_document_is_yaml(self, registry):
        registry.add_provider("P1", "https://api.example.com", "sk-123")
        data = yaml.safe_load(registry.path.read_text())

        assert data["version"] == "1.0"
        assert data["providers"]["P1"]["base_url"] == "https://api.example.com"
        assert "updated_at" in data["metadata"]

    def test_npm_derived_from_tag(self, registry):
        assert registry.add_provider("a", "https://x", model_type="claude").npm == "@ai-sdk/anthropic"
        assert registry.add_provider("b", "https://x", model_type="codex").npm == "@ai-sdk/openai"
        assert registry.add_provider("c", "https://x").npm is None
        assert registry.add_provider("d", "https://x", npm="custom", model_type="codex").npm == "custom"

    def test_duplicate_add_leaves_document_unchanged(self, registry):
        registry.add_provider("P1", "https://api.example.com", "sk-123")
        before = registry.path.read_bytes()

        with pytest.raises(AlreadyExistsError):
            registry.add_provider("P1", "https://other.example.com", "sk-456")

        assert registry.path.read_bytes() == before

    def test_invalid_provider_rejected(self, registry):
        with pytest.raises(ConfigValidationError):
            registry.add_provider("", "https://x")

    def test_list_sorted_by_name(self, registry):
        for name in ["zeta", "alpha", "mid"]:
            registry.add_provider(name, "https://x")
        assert [p.name for p in registry.list_providers()] == ["alpha", "mid", "zeta"]

    def test_update_metadata(self, registry):
        registry.add_provider("P1", "https://x", model_type="codex")
        registry.add_model("P1", "m1")

        updated = registry.update_metadata("P1", base_url="https://y", description="new")

        assert updated.base_url == "https://y"
        assert updated.description == "new"
        assert "m1" in registry.get_provider("P1").models

    def test_update_metadata_rejects_unknown_field(self, registry):
        registry.add_provider("P1", "https://x")
        with pytest.raises(ConfigValidationError):
            registry.update_metadata("P1", name="P2")

    def test_update_missing_provider(self, registry):
        with pytest.raises(NotFoundError):
            registry.update_metadata("nope", base_url="https://y")

    def test_delete_removes_models(self, registry):
        registry.add_provider("P1", "https://x")
        registry.add_model("P1", "m1")
        registry.delete_provider("P1")

        assert not registry.has_provider("P1")
        with pytest.raises(NotFoundError):
            registry.get_models("P1")

    def test_delete_missing(self, registry):
        with pytest.raises(NotFoundError):
            registry.delete_provider("nope")

    def test_toggle_enabled(self, registry):
        registry.add_provider("P1", "https://x")
        assert registry.toggle_enabled("P1") is False
        assert registry.get_provider("P1").enabled is False
        assert registry.toggle_enabled("P1") is True

    def test_rename_provider(self, registry):
        registry.add_provider("P1", "https://x")
        registry.add_model("P1", "m1")
        registry.rename_provider("P1", "P2")

        assert not registry.has_provider("P1")
        assert registry.get_provider("P2").name == "P2"
        assert "m1" in registry.get_provider("P2").models

    def test_rename_to_taken_name(self, registry):
        registry.add_provider("P1", "https://x")
        registry.add_provider("P2", "https://x")
        with pytest.raises(AlreadyExistsError):
            registry.rename_provider("P1", "P2")

    def test_malformed_document(self, registry):
        registry.path.parent.mkdir(parents=True, exist_ok=True)
        registry.path.write_text("providers: [1, 2]\n")
        with pytest.raises(ConfigFormatError):
            registry.list_providers()

    # ===== Model Tests =====

    def test_add_model_uses_claude_variants(self, registry):
        registry.add_provider("P1", "https://x", model_type="claude")
        model = registry.add_model("P1", "m1", limit=ModelLimit(context=200000, output=64000))

        assert model.name == "m1"
        assert set(model.variants) == {"default", "high", "max"}
        assert isinstance(model.variants["default"], ThinkingVariant)
        assert registry.get_models("P1")[0].limit.context == 200000

    def test_add_model_duplicate(self, registry):
        registry.add_provider("P1", "https://x")
        registry.add_model("P1", "m1")
        with pytest.raises(AlreadyExistsError):
            registry.add_model("P1", "m1")

    def test_add_model_missing_provider(self, registry):
        with pytest.raises(NotFoundError):
            registry.add_model("nope", "m1")

    def test_tag_change_is_not_retroactive(self, registry):
        """Test existing models keep their variants until re-saved."""
        registry.add_provider("P1", "https://x", model_type="claude")
        registry.add_model("P1", "m1")
        registry.update_metadata("P1", model_type="codex")
        registry.add_model("P1", "m2")

        models = {m.id: m for m in registry.get_models("P1")}
        assert isinstance(models["m1"].variants["default"], ThinkingVariant)
        assert isinstance(models["m2"].variants["default"], ReasoningEffortVariant)

        registry.update_model("P1", "m1", name="Model One")
        m1 = registry.get_models("P1")[0]
        assert m1.name == "Model One"
        assert isinstance(m1.variants["default"], ReasoningEffortVariant)

    def test_batch_add_skips_duplicates(self, registry):
        registry.add_provider("P1", "https://x", model_type="codex")
        registry.add_model("P1", "m1")

        added = registry.add_models_batch("P1", ["m1", "m2", "m3", "m2"])

        assert added == ["m2", "m3"]
        assert [m.id for m in registry.get_models("P1")] == ["m1", "m2", "m3"]
        assert len(registry.get_models("P1")[2].variants) == 5

    def test_batch_add_nothing_new_does_not_write(self, registry):
        registry.add_provider("P1", "https://x")
        registry.add_model("P1", "m1")
        before = registry.path.read_bytes()

        assert registry.add_models_batch("P1", ["m1"]) == []
        assert registry.path.read_bytes() == before

    def test_update_model_missing(self, registry):
        registry.add_provider("P1", "https://x")
        with pytest.raises(NotFoundError):
            registry.update_model("P1", "nope", name="x")

    def test_update_model_rejects_unknown_field(self, registry):
        registry.add_provider("P1", "https://x")
        registry.add_model("P1", "m1")
        with pytest.raises(ConfigValidationError):
            registry.update_model("P1", "m1", id="m2")

    def test_delete_model(self, registry):
        registry.add_provider("P1", "https://x")
        registry.add_model("P1", "m1")
        registry.add_model("P1", "m2")
        registry.delete_model("P1", "m1")

        assert [m.id for m in registry.get_models("P1")] == ["m2"]
        with pytest.raises(NotFoundError):
            registry.delete_model("P1", "m1")
