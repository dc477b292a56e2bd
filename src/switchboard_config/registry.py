"""Provider registry backed by the canonical YAML document."""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .exceptions import AlreadyExistsError
from .exceptions import ConfigFormatError
from .exceptions import ConfigValidationError
from .exceptions import NotFoundError
from .files import read_yaml
from .files import write_yaml
from .presets import default_npm
from .schema import Model
from .schema import ModelLimit
from .schema import Provider
from .schema import ProviderDocument
from .utils import utc_now
from .variants import build_variants

logger = logging.getLogger(__name__)

# Fields update_metadata may change; name changes go through rename_provider
PROVIDER_FIELDS = frozenset(
    {"base_url", "api_key", "npm", "description", "model_type", "enabled", "auto_add_v1_suffix"}
)
MODEL_FIELDS = frozenset({"name", "reasoning_effort", "thinking_budget", "reasoning", "limit"})


class ProviderRegistry:
    """CRUD over providers and their models.

    Every mutation reads the whole document, applies the change in memory and
    writes the whole document back. Lookups and validation finish before the
    write, so a failing call leaves the file untouched.

    Args:
        path: Canonical document path
    """

    def __init__(self, path: Path):
        self.path = path

    # ===== Document I/O =====

    def load(self) -> ProviderDocument:
        """Read the canonical document (empty document if the file is missing).

        Raises:
            ConfigFormatError: If the document doesn't match the provider schema
        """
        data = read_yaml(self.path)
        if data is None:
            return ProviderDocument()
        try:
            return ProviderDocument.model_validate(data)
        except ValidationError as e:
            raise ConfigFormatError(f"Invalid provider document {self.path}: {e}") from e

    def _save(self, document: ProviderDocument) -> None:
        document.metadata.updated_at = utc_now()
        write_yaml(self.path, document.model_dump(mode="json", exclude_none=True))

    def _require(self, document: ProviderDocument, name: str) -> Provider:
        provider = document.providers.get(name)
        if provider is None:
            raise NotFoundError("Provider", name)
        return provider

    # ===== Providers =====

    def add_provider(
        self,
        name: str,
        base_url: str,
        api_key: str = "",
        *,
        npm: str | None = None,
        description: str | None = None,
        model_type: str | None = None,
        enabled: bool = True,
        auto_add_v1_suffix: bool = True,
    ) -> Provider:
        """Register a new provider.

        When npm is not given it is derived from the classification tag.

        Returns:
            The stored provider

        Raises:
            AlreadyExistsError: If the name is taken
            ConfigValidationError: If a field is invalid
        """
        try:
            provider = Provider(
                name=name,
                base_url=base_url,
                api_key=api_key,
                npm=npm if npm is not None else default_npm(model_type),
                description=description,
                model_type=model_type,
                enabled=enabled,
                auto_add_v1_suffix=auto_add_v1_suffix,
            )
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid provider '{name}': {e}") from e

        document = self.load()
        if provider.name in document.providers:
            raise AlreadyExistsError("Provider", provider.name)

        document.providers[provider.name] = provider
        self._save(document)
        logger.info(f"Added provider '{provider.name}'")
        return provider

    def put_provider(self, provider: Provider, *, overwrite: bool = False) -> Provider:
        """Store a fully built provider (models included) in one write.

        Raises:
            AlreadyExistsError: If the name is taken and overwrite is False
        """
        document = self.load()
        if provider.name in document.providers and not overwrite:
            raise AlreadyExistsError("Provider", provider.name)
        document.providers[provider.name] = provider
        self._save(document)
        logger.info(f"Stored provider '{provider.name}'")
        return provider

    def update_metadata(self, name: str, **changes: Any) -> Provider:
        """Change provider-level fields; models are kept as they are.

        Args:
            name: Provider name
            **changes: Any of base_url, api_key, npm, description, model_type,
                enabled, auto_add_v1_suffix

        Raises:
            NotFoundError: If the provider doesn't exist
            ConfigValidationError: If a field is unknown or invalid
        """
        unknown = set(changes) - PROVIDER_FIELDS
        if unknown:
            raise ConfigValidationError(f"Cannot update provider field(s): {', '.join(sorted(unknown))}")

        document = self.load()
        current = self._require(document, name)
        try:
            updated = Provider.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid provider '{name}': {e}") from e

        updated.touch()
        document.providers[name] = updated
        self._save(document)
        logger.info(f"Updated provider '{name}'")
        return updated

    def delete_provider(self, name: str) -> None:
        """Remove a provider together with its models."""
        document = self.load()
        self._require(document, name)
        del document.providers[name]
        self._save(document)
        logger.info(f"Deleted provider '{name}'")

    def toggle_enabled(self, name: str) -> bool:
        """Flip the enabled flag.

        Returns:
            New enabled state
        """
        document = self.load()
        provider = self._require(document, name)
        provider.enabled = not provider.enabled
        provider.touch()
        self._save(document)
        logger.info(f"Provider '{name}' {'enabled' if provider.enabled else 'disabled'}")
        return provider.enabled

    def rename_provider(self, old: str, new: str) -> Provider:
        """Move a provider to a new key, keeping position and models.

        Callers holding references to the old name must repoint them.
        """
        document = self.load()
        provider = self._require(document, old)
        new = new.strip()
        if not new:
            raise ConfigValidationError("Provider name cannot be empty")
        if new in document.providers:
            raise AlreadyExistsError("Provider", new)

        provider.name = new
        provider.touch()
        document.providers = {(new if key == old else key): value for key, value in document.providers.items()}
        self._save(document)
        logger.info(f"Renamed provider '{old}' to '{new}'")
        return provider

    def get_provider(self, name: str) -> Provider:
        return self._require(self.load(), name)

    def has_provider(self, name: str) -> bool:
        return name in self.load().providers

    def list_providers(self) -> list[Provider]:
        """All providers sorted by name."""
        document = self.load()
        return [document.providers[name] for name in sorted(document.providers)]

    # ===== Models =====

    def get_models(self, name: str) -> list[Model]:
        """Models of a provider sorted by id."""
        provider = self.get_provider(name)
        return [provider.models[model_id] for model_id in sorted(provider.models)]

    def add_model(
        self,
        provider_name: str,
        model_id: str,
        name: str | None = None,
        *,
        reasoning_effort: str | None = None,
        thinking_budget: int | None = None,
        limit: ModelLimit | None = None,
    ) -> Model:
        """Add one model; variants come from the provider's current tag.

        Raises:
            NotFoundError: If the provider doesn't exist
            AlreadyExistsError: If the model id is already present
            ConfigValidationError: If a field is invalid
        """
        document = self.load()
        provider = self._require(document, provider_name)
        try:
            model = Model(
                id=model_id,
                name=name or "",
                reasoning_effort=reasoning_effort,
                thinking_budget=thinking_budget,
                variants=build_variants(provider.model_type),
                limit=limit,
            )
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid model '{model_id}': {e}") from e

        if model.id in provider.models:
            raise AlreadyExistsError("Model", model.id)

        provider.models[model.id] = model
        provider.touch()
        self._save(document)
        logger.info(f"Added model '{model.id}' to provider '{provider_name}'")
        return model

    def add_models_batch(self, provider_name: str, model_ids: list[str]) -> list[str]:
        """Add several models with one read and one write.

        Ids already present (or repeated in the input) are skipped silently.

        Returns:
            Ids that were actually added, in input order
        """
        document = self.load()
        provider = self._require(document, provider_name)
        variants = build_variants(provider.model_type)

        added: list[str] = []
        for model_id in model_ids:
            try:
                model = Model(id=model_id, variants=dict(variants))
            except ValidationError as e:
                raise ConfigValidationError(f"Invalid model '{model_id}': {e}") from e
            if model.id in provider.models:
                continue
            provider.models[model.id] = model
            added.append(model.id)

        if added:
            provider.touch()
            self._save(document)
            logger.info(f"Added {len(added)} model(s) to provider '{provider_name}'")
        return added

    def update_model(self, provider_name: str, model_id: str, **changes: Any) -> Model:
        """Replace model fields in place.

        The variants are rebuilt from the provider's current tag, the same way
        a newly added model gets them.

        Args:
            provider_name: Provider name
            model_id: Model id
            **changes: Any of name, reasoning_effort, thinking_budget,
                reasoning, limit
        """
        unknown = set(changes) - MODEL_FIELDS
        if unknown:
            raise ConfigValidationError(f"Cannot update model field(s): {', '.join(sorted(unknown))}")

        document = self.load()
        provider = self._require(document, provider_name)
        current = provider.models.get(model_id)
        if current is None:
            raise NotFoundError("Model", model_id)

        data = current.model_dump()
        data.update(changes)
        data["variants"] = build_variants(provider.model_type)
        try:
            updated = Model.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid model '{model_id}': {e}") from e

        provider.models[model_id] = updated
        provider.touch()
        self._save(document)
        logger.info(f"Updated model '{model_id}' of provider '{provider_name}'")
        return updated

    def delete_model(self, provider_name: str, model_id: str) -> None:
        document = self.load()
        provider = self._require(document, provider_name)
        if model_id not in provider.models:
            raise NotFoundError("Model", model_id)
        del provider.models[model_id]
        provider.touch()
        self._save(document)
        logger.info(f"Deleted model '{model_id}' from provider '{provider_name}'")
