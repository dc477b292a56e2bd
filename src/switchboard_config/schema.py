"""Pydantic models for the canonical store and the MCP server records."""

from __future__ import annotations

from typing import Annotated
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import TypeAdapter
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from .utils import utc_now

DOCUMENT_VERSION = "1.0"

ReasoningEffort = Literal["low", "minimal", "medium", "high"]


# ===== Variants =====


class ThinkingBudget(BaseModel):
    """Extended-thinking token budget."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    budget_tokens: int = Field(ge=0)


class ReasoningEffortVariant(BaseModel):
    """Variant selecting a reasoning-effort level."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    reasoning_effort: ReasoningEffort


class ThinkingVariant(BaseModel):
    """Variant selecting a thinking-token budget."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    thinking: ThinkingBudget


# Both forbid extra keys, so a payload carrying both fields matches neither.
Variant = ReasoningEffortVariant | ThinkingVariant


# ===== Providers =====


class ModelLimit(BaseModel):
    """Token limits of a model."""

    context: int | None = None
    output: int | None = None


class Model(BaseModel):
    """A model offered by a provider."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    reasoning_effort: str | None = None
    thinking_budget: int | None = Field(default=None, ge=0)
    variants: dict[str, Variant] = Field(default_factory=dict)
    # Lets the assistant's UI cycle through variants
    reasoning: bool = True
    limit: ModelLimit | None = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate model id is not empty."""
        if not v or not v.strip():
            raise ValueError("Model id cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def default_name(self) -> Model:
        """Fall back to the id as display name."""
        if not self.name:
            self.name = self.id
        return self


class Provider(BaseModel):
    """Credentials, endpoint and models of one AI provider."""

    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    name: str
    base_url: str
    api_key: str = Field(default="", repr=False)
    npm: str | None = None
    description: str | None = None
    # Classification tag: "claude", "codex", "gemini", ... or None
    model_type: str | None = None
    enabled: bool = True
    auto_add_v1_suffix: bool = True
    models: dict[str, Model] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate provider name."""
        if not v or not v.strip():
            raise ValueError("Provider name cannot be empty")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        return v.strip()

    def touch(self) -> None:
        """Stamp the modification time."""
        self.updated_at = utc_now()


class DocumentMetadata(BaseModel):
    """Creation and modification timestamps of a document."""

    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class ProviderDocument(BaseModel):
    """Top-level structure of the canonical provider document."""

    version: str = DOCUMENT_VERSION
    providers: dict[str, Provider] = Field(default_factory=dict)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)


class ActiveDocument(BaseModel):
    """Top-level structure of the active-reference document.

    Maps downstream application name -> provider name.
    """

    version: str = DOCUMENT_VERSION
    active: dict[str, str] = Field(default_factory=dict)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)


# ===== MCP servers =====


class OAuthConfig(BaseModel):
    """OAuth settings of a remote MCP server.

    Values may use the downstream tool's {env:VAR} substitution syntax.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_id: str | None = Field(default=None, alias="clientId")
    client_secret: str | None = Field(default=None, alias="clientSecret", repr=False)
    scope: str | None = None

    def is_empty(self) -> bool:
        return self.client_id is None and self.client_secret is None and self.scope is None


class ServerMetadata(BaseModel):
    """Bookkeeping fields that never reach a sync target."""

    description: str | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class LocalServer(BaseModel):
    """MCP server started as a local process."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["local"] = "local"
    enabled: bool = True
    timeout: int | None = Field(default=None, ge=0, description="Request timeout in milliseconds")
    command: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    metadata: ServerMetadata = Field(default_factory=ServerMetadata)


class RemoteServer(BaseModel):
    """MCP server reached over HTTP."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["remote"] = "remote"
    enabled: bool = True
    timeout: int | None = Field(default=None, ge=0, description="Request timeout in milliseconds")
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    oauth: OAuthConfig | None = None
    metadata: ServerMetadata = Field(default_factory=ServerMetadata)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v


SERVER_TYPES = ("local", "remote")

McpServer = Annotated[LocalServer | RemoteServer, Field(discriminator="type")]

_server_adapter: TypeAdapter[LocalServer | RemoteServer] = TypeAdapter(McpServer)


class RawServerInput(BaseModel):
    """Free-form server shape as commonly pasted from other tools.

    Covers ``{"command": "npx", "args": [...], "env": {...}}`` for local
    servers and ``{"url": ..., "headers": ..., "oauth": ...}`` for remote ones.
    """

    model_config = ConfigDict(extra="ignore")

    command: str | list[str] | None = None
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    environment: dict[str, str] = Field(default_factory=dict)
    url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    oauth: OAuthConfig | None = None
    enabled: bool = True
    disabled: bool = False
    timeout: int | None = Field(default=None, ge=0)
    description: str | None = None

    def to_server(self) -> LocalServer | RemoteServer:
        """Normalize into the structured server shape."""
        enabled = self.enabled and not self.disabled
        metadata = ServerMetadata(description=self.description)

        if self.command is not None or self.args:
            if isinstance(self.command, list):
                argv = list(self.command)
            else:
                argv = [self.command] if self.command else []
            return LocalServer(
                enabled=enabled,
                timeout=self.timeout,
                command=argv + self.args,
                environment={**self.env, **self.environment},
                metadata=metadata,
            )

        if self.url is not None:
            oauth = self.oauth if self.oauth is not None and not self.oauth.is_empty() else None
            return RemoteServer(
                enabled=enabled,
                timeout=self.timeout,
                url=self.url,
                headers=self.headers,
                oauth=oauth,
                metadata=metadata,
            )

        # Unrecognized shape: keep it as an empty local server so it stays editable
        return LocalServer(enabled=enabled, timeout=self.timeout, metadata=metadata)


def parse_server(data: dict[str, Any]) -> LocalServer | RemoteServer:
    """Parse a server record in either the structured or the raw shape.

    Raises:
        pydantic.ValidationError: If the type is unknown or neither shape fits
    """
    if "type" in data:
        try:
            return _server_adapter.validate_python(data)
        except ValidationError:
            # A known type with foreign keys may still be a raw command/env record
            if data["type"] not in SERVER_TYPES or not any(key in data for key in ("command", "args", "url")):
                raise
    return RawServerInput.model_validate(data).to_server()


def dump_server(server: LocalServer | RemoteServer) -> dict[str, Any]:
    """Serialize a server to its on-disk structured shape."""
    return server.model_dump(mode="json", by_alias=True, exclude_none=True)
