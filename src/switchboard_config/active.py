"""Active provider per downstream application."""

import logging
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from pydantic import ValidationError

from .exceptions import ConfigFormatError
from .exceptions import ConfigValidationError
from .exceptions import NotFoundError
from .files import read_json
from .files import write_json
from .models import App
from .registry import ProviderRegistry
from .schema import ActiveDocument
from .schema import Model
from .utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ActiveProvider:
    """An active reference joined against the registry."""

    app: App
    name: str
    base_url: str
    api_key: str = field(repr=False)
    description: str | None = None
    models: list[Model] = field(default_factory=list)


def coerce_app(app: App | str) -> App:
    """Accept an App or its name.

    Raises:
        ConfigValidationError: If the name isn't a known application
    """
    if isinstance(app, App):
        return app
    try:
        return App(app.lower())
    except ValueError as e:
        valid = ", ".join(a.value for a in App)
        raise ConfigValidationError(f"Unknown application '{app}' (expected one of: {valid})") from e


class ActiveReferences:
    """Resolver for the per-application provider pointers.

    Pointers are not foreign keys: deleting a provider leaves its pointer in
    place, and get_active reports no active provider for it.

    Args:
        path: Active-reference document path
        registry: Registry the pointers are resolved against
    """

    def __init__(self, path: Path, registry: ProviderRegistry):
        self.path = path
        self.registry = registry

    def _load(self) -> ActiveDocument:
        data = read_json(self.path)
        if data is None:
            return ActiveDocument()
        try:
            return ActiveDocument.model_validate(data)
        except ValidationError as e:
            raise ConfigFormatError(f"Invalid active-reference document {self.path}: {e}") from e

    def _save(self, document: ActiveDocument) -> None:
        document.metadata.updated_at = utc_now()
        write_json(self.path, document.model_dump(mode="json"))

    def get_reference(self, app: App | str) -> str | None:
        """Raw pointer, whether or not the provider still exists."""
        return self._load().active.get(coerce_app(app).value)

    def get_active(self, app: App | str) -> ActiveProvider | None:
        """Resolve the pointer of an application.

        Returns:
            The active provider, or None when unset or dangling
        """
        app = coerce_app(app)
        name = self.get_reference(app)
        if name is None:
            return None
        try:
            provider = self.registry.get_provider(name)
        except NotFoundError:
            logger.debug(f"Active provider '{name}' of {app.value} no longer exists")
            return None
        return ActiveProvider(
            app=app,
            name=provider.name,
            base_url=provider.base_url,
            api_key=provider.api_key,
            description=provider.description,
            models=list(provider.models.values()),
        )

    def set_active(self, app: App | str, name: str) -> None:
        """Point an application at a provider.

        Raises:
            NotFoundError: If the provider doesn't exist
        """
        app = coerce_app(app)
        if not self.registry.has_provider(name):
            raise NotFoundError("Provider", name)
        document = self._load()
        document.active[app.value] = name
        self._save(document)
        logger.info(f"Active provider for {app.value} set to '{name}'")

    def clear_active(self, app: App | str) -> None:
        app = coerce_app(app)
        document = self._load()
        if document.active.pop(app.value, None) is not None:
            self._save(document)
            logger.info(f"Cleared active provider for {app.value}")

    def repoint(self, old: str, new: str) -> list[App]:
        """Move every pointer at old to new.

        Returns:
            Applications whose pointer changed
        """
        document = self._load()
        known = {a.value for a in App}
        moved = [App(app) for app, name in document.active.items() if name == old and app in known]
        if not moved:
            return []
        for app in moved:
            document.active[app.value] = new
        self._save(document)
        logger.info(f"Repointed {', '.join(a.value for a in moved)} from '{old}' to '{new}'")
        return moved
