"""Tests for backup export and import."""

import json

import pytest
from switchboard_config.backup import ImportOptions
from switchboard_config.backup import export_backup
from switchboard_config.backup import import_backup
from switchboard_config.backup import preview_backup
from switchboard_config.exceptions import ConfigFormatError
from switchboard_config.mcp import McpStore
from switchboard_config.registry import ProviderRegistry
from switchboard_config.schema import OAuthConfig
from switchboard_config.schema import RemoteServer
from switchboard_config.schema import ThinkingVariant
from switchboard_config.store import DirectoryEntityStore


def make_stores(root):
    registry = ProviderRegistry(root / "providers.yaml")
    mcp = McpStore(DirectoryEntityStore(root / "mcp"))
    return registry, mcp


class TestBackup:
    """Test the export/preview/import cycle."""

    @pytest.fixture
    def source(self, tmp_path):
        registry, mcp = make_stores(tmp_path / "source")
        registry.add_provider("C1", "https://claude.example.com", "sk-c", model_type="claude", description="Claude")
        registry.add_models_batch("C1", ["claude-a", "claude-b"])
        registry.add_provider("P2", "https://other.example.com", "sk-o")
        mcp.add_local("fetch", ["uvx", "mcp-server-fetch"], {"A": "1"})
        mcp.add_remote("docs", "https://mcp.example.com", oauth=OAuthConfig(client_id="id"))
        return registry, mcp

    @pytest.fixture
    def backup_file(self, tmp_path, source):
        path = tmp_path / "backup.json"
        export_backup(*source, path)
        return path

    def test_export_stats_and_shape(self, tmp_path, source):
        path = tmp_path / "out" / "backup.json"
        stats = export_backup(*source, path)

        assert (stats.providers, stats.models, stats.mcp_servers) == (2, 2, 2)
        data = json.loads(path.read_text())
        assert data["version"] == "1.0.0"
        assert data["app_name"] == "switchboard"
        servers = {server["name"]: server for server in data["mcp_servers"]}
        assert servers["fetch"]["server_type"] == "local"
        assert servers["docs"]["oauth"]["client_id"] == "id"

    def test_preview(self, backup_file):
        backup = preview_backup(backup_file)
        assert sorted(p.name for p in backup.providers) == ["C1", "P2"]

    def test_preview_missing_file(self, tmp_path):
        with pytest.raises(ConfigFormatError):
            preview_backup(tmp_path / "nope.json")

    def test_preview_invalid_json(self, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text("{broken")
        with pytest.raises(ConfigFormatError):
            preview_backup(path)

    def test_import_into_empty_stores(self, tmp_path, backup_file):
        registry, mcp = make_stores(tmp_path / "target")

        result = import_backup(registry, mcp, backup_file)

        assert result.success
        assert (result.providers_imported, result.mcp_imported) == (2, 2)
        claude = registry.get_provider("C1")
        assert claude.description == "Claude"
        assert sorted(claude.models) == ["claude-a", "claude-b"]
        assert isinstance(claude.models["claude-a"].variants["high"], ThinkingVariant)
        docs = mcp.get("docs")
        assert isinstance(docs, RemoteServer)
        assert docs.oauth.client_id == "id"
        assert mcp.get("fetch").environment == {"A": "1"}

    def test_existing_entities_skipped(self, tmp_path, backup_file):
        registry, mcp = make_stores(tmp_path / "target")
        registry.add_provider("C1", "https://mine.example.com")
        mcp.add_local("fetch", ["mine"])

        result = import_backup(registry, mcp, backup_file)

        assert (result.providers_imported, result.providers_skipped) == (1, 1)
        assert (result.mcp_imported, result.mcp_skipped) == (1, 1)
        assert registry.get_provider("C1").base_url == "https://mine.example.com"
        assert mcp.get("fetch").command == ["mine"]

    def test_overwrite(self, tmp_path, backup_file):
        registry, mcp = make_stores(tmp_path / "target")
        registry.add_provider("C1", "https://mine.example.com")

        result = import_backup(registry, mcp, backup_file, ImportOptions(overwrite_existing=True))

        assert result.providers_skipped == 0
        assert registry.get_provider("C1").base_url == "https://claude.example.com"

    def test_selective_import(self, tmp_path, backup_file):
        registry, mcp = make_stores(tmp_path / "target")

        result = import_backup(registry, mcp, backup_file, ImportOptions(import_mcp=False))

        assert result.providers_imported == 2
        assert mcp.names() == []

    def test_bad_entity_recorded_and_import_continues(self, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text(
            json.dumps(
                {
                    "providers": [],
                    "mcp_servers": [
                        {"name": "odd", "server_type": "socket"},
                        {"name": "nourl", "server_type": "remote"},
                        {"name": "ok", "server_type": "local", "command": ["x"]},
                    ],
                }
            )
        )
        registry, mcp = make_stores(tmp_path / "target")

        result = import_backup(registry, mcp, path)

        assert not result.success
        assert result.mcp_imported == 1
        assert len(result.errors) == 2
        assert mcp.names() == ["ok"]
