"""Tests for McpStore."""

import json

import pytest
from switchboard_config.exceptions import AlreadyExistsError
from switchboard_config.exceptions import ConfigFormatError
from switchboard_config.exceptions import ConfigValidationError
from switchboard_config.exceptions import NotFoundError
from switchboard_config.mcp import McpStore
from switchboard_config.schema import LocalServer
from switchboard_config.schema import OAuthConfig
from switchboard_config.schema import RemoteServer
from switchboard_config.store import DirectoryEntityStore
from switchboard_config.store import SqliteEntityStore


class TestMcpStore:
    """Test McpStore over the directory backend."""

    @pytest.fixture
    def mcp_dir(self, tmp_path):
        return tmp_path / "mcp"

    @pytest.fixture
    def mcp(self, mcp_dir):
        return McpStore(DirectoryEntityStore(mcp_dir, kind="MCP server"))

    def write_file(self, mcp_dir, name, content):
        mcp_dir.mkdir(parents=True, exist_ok=True)
        (mcp_dir / f"{name}.json").write_text(content, encoding="utf-8")

    # ===== CRUD Tests =====

    def test_add_local_and_get(self, mcp):
        mcp.add_local("fetch", ["uvx", "mcp-server-fetch"], {"A": "1"}, timeout=3000, description="Fetch")
        server = mcp.get("fetch")

        assert isinstance(server, LocalServer)
        assert server.command == ["uvx", "mcp-server-fetch"]
        assert server.environment == {"A": "1"}
        assert server.timeout == 3000
        assert server.metadata.description == "Fetch"

    def test_add_remote_and_get(self, mcp):
        mcp.add_remote(
            "docs",
            "https://mcp.example.com",
            {"Authorization": "Bearer x"},
            oauth=OAuthConfig(client_id="id", scope="read"),
        )
        server = mcp.get("docs")

        assert isinstance(server, RemoteServer)
        assert server.headers == {"Authorization": "Bearer x"}
        assert server.oauth.client_id == "id"

    def test_add_remote_drops_empty_oauth(self, mcp, mcp_dir):
        mcp.add_remote("docs", "https://mcp.example.com", oauth=OAuthConfig())
        assert "oauth" not in json.loads((mcp_dir / "docs.json").read_text())

    def test_add_existing_fails(self, mcp):
        mcp.add_local("fetch", ["uvx"])
        with pytest.raises(AlreadyExistsError):
            mcp.add_local("fetch", ["npx"])
        with pytest.raises(AlreadyExistsError):
            mcp.add_remote("fetch", "https://x.example.com")

    def test_add_invalid_remote_url(self, mcp):
        with pytest.raises(ConfigValidationError):
            mcp.add_remote("bad", "not-a-url")

    @pytest.mark.parametrize("name", ["", "   ", "a/b", "a\\b", ".."])
    def test_invalid_names(self, mcp, name):
        with pytest.raises(ConfigValidationError):
            mcp.add_local(name, ["x"])

    def test_get_missing(self, mcp):
        with pytest.raises(NotFoundError):
            mcp.get("nope")

    def test_save_upserts_and_stamps(self, mcp):
        created = mcp.add_local("fetch", ["uvx"])
        saved = mcp.save("fetch", LocalServer(command=["npx", "fetch"]))

        assert mcp.get("fetch").command == ["npx", "fetch"]
        assert saved.metadata.created_at == created.metadata.created_at
        assert saved.metadata.updated_at >= created.metadata.updated_at

        mcp.save("new", LocalServer(command=["x"]))
        assert mcp.names() == ["fetch", "new"]

    def test_save_raw_shape(self, mcp):
        server = mcp.save_raw("git", {"command": "uvx", "args": ["mcp-server-git"], "env": {}})
        assert server.command == ["uvx", "mcp-server-git"]

    def test_save_raw_invalid(self, mcp):
        with pytest.raises(ConfigValidationError):
            mcp.save_raw("bad", {"type": "socket"})

    def test_delete(self, mcp, mcp_dir):
        mcp.add_local("fetch", ["uvx"])
        mcp.delete("fetch")
        assert not (mcp_dir / "fetch.json").exists()
        with pytest.raises(NotFoundError):
            mcp.delete("fetch")

    def test_rename(self, mcp):
        mcp.add_local("a", ["x"])
        mcp.add_local("b", ["y"])

        with pytest.raises(AlreadyExistsError):
            mcp.rename("a", "b")
        with pytest.raises(NotFoundError):
            mcp.rename("missing", "c")

        mcp.rename("a", "c")
        assert mcp.names() == ["b", "c"]
        assert mcp.get("c").command == ["x"]

    def test_toggle_enabled(self, mcp):
        mcp.add_local("fetch", ["uvx"])
        assert mcp.toggle_enabled("fetch") is False
        assert mcp.get("fetch").enabled is False
        assert mcp.toggle_enabled("fetch") is True

    # ===== Parsing Tests =====

    def test_raw_file_is_normalized(self, mcp, mcp_dir):
        self.write_file(mcp_dir, "memory", '{"command": "npx", "args": ["-y", "server-memory"], "env": {"K": "v"}}')
        server = mcp.get("memory")

        assert server.command == ["npx", "-y", "server-memory"]
        assert server.environment == {"K": "v"}
        assert mcp.get_raw("memory")["command"] == "npx"

    def test_bom_is_tolerated(self, mcp, mcp_dir):
        self.write_file(mcp_dir, "bom", '\ufeff{"type": "local", "command": ["x"]}')
        assert mcp.get("bom").command == ["x"]

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"command": 42}'])
    def test_malformed_single_read(self, mcp, mcp_dir, content):
        self.write_file(mcp_dir, "broken", content)
        with pytest.raises(ConfigFormatError):
            mcp.get("broken")

    def test_bulk_read_tolerates_malformed_file(self, mcp, mcp_dir):
        mcp.add_local("good", ["uvx", "good"])
        self.write_file(mcp_dir, "broken", "{not json")

        listing = mcp.list_with_warnings()

        assert list(listing.servers) == ["good"]
        assert len(listing.warnings) == 1
        assert "broken" in listing.warnings[0]

    def test_bulk_read_tolerates_non_utf8_file(self, mcp, mcp_dir):
        mcp.add_local("good", ["uvx", "good"])
        (mcp_dir / "binary.json").write_bytes(b'{"command": "\xff\xfe"}')

        listing = mcp.list_with_warnings()

        assert list(listing.servers) == ["good"]
        assert len(listing.warnings) == 1
        with pytest.raises(ConfigFormatError):
            mcp.get("binary")

    def test_unknown_type_rejected(self, mcp, mcp_dir):
        with pytest.raises(ConfigValidationError):
            mcp.save_raw("s", {"type": "sse", "url": "https://x.example.com"})
        assert not mcp.exists("s")

        self.write_file(mcp_dir, "sse", '{"type": "sse", "url": "https://x.example.com"}')
        listing = mcp.list_with_warnings()
        assert "sse" not in listing.servers
        assert len(listing.warnings) == 1

    def test_list_sorted(self, mcp):
        for name in ["zeta", "alpha", "mid"]:
            mcp.add_local(name, ["x"])
        assert list(mcp.list()) == ["alpha", "mid", "zeta"]

    def test_aggregate_document(self, mcp, mcp_dir):
        mcp.add_local("fetch", ["uvx"])
        self.write_file(mcp_dir, "remote", '{"url": "https://mcp.example.com"}')

        document = mcp.aggregate().to_document()

        assert set(document["mcp"]) == {"fetch", "remote"}
        assert document["mcp"]["remote"]["type"] == "remote"

    def test_save_repairs_malformed_record(self, mcp, mcp_dir):
        self.write_file(mcp_dir, "broken", "{not json")
        mcp.save("broken", LocalServer(command=["x"]))
        assert mcp.get("broken").command == ["x"]


def test_sqlite_backend(tmp_path):
    backend = SqliteEntityStore(tmp_path / "mcp.db", table="mcp_servers", kind="MCP server")
    mcp = McpStore(backend)

    mcp.add_local("fetch", ["uvx"])
    backend.write("broken", "{not json")
    listing = mcp.list_with_warnings()

    assert list(listing.servers) == ["fetch"]
    assert len(listing.warnings) == 1
    backend.close()
