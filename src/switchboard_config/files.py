"""Low-level document I/O shared by the stores and the sync engine.

Every helper wraps filesystem failures in ConfigFileError and malformed
content in ConfigFormatError, so callers only deal with the package's own
exception types.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigFileError
from .exceptions import ConfigFormatError

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


def read_text(path: Path) -> str | None:
    """Read a text file, returning None when it doesn't exist.

    A leading UTF-8 byte order mark is dropped; editors on Windows
    commonly write one into JSON files.

    Raises:
        ConfigFileError: If the file can't be read
        ConfigFormatError: If the content isn't valid UTF-8
    """
    if not path.exists():
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigFormatError(f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigFileError(f"Failed to read {path}: {e}") from e
    return content.lstrip("\ufeff")


def write_text(path: Path, content: str) -> None:
    """Write a text file, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Failed to write {path}: {e}") from e


def read_yaml(path: Path) -> dict[str, Any] | None:
    """Read YAML mapping.

    Args:
        path: Path to YAML file

    Returns:
        Dictionary from YAML, {} for an empty file, None if the file doesn't exist

    Raises:
        ConfigFileError: If the file can't be read
        ConfigFormatError: If the content isn't a YAML mapping
    """
    content = read_text(path)
    if content is None:
        return None

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigFormatError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFormatError(f"Expected a mapping at top level of {path}")
    return data


def write_yaml(path: Path, data: dict[str, Any]) -> None:
    """Write YAML mapping.

    Args:
        path: Path to YAML file
        data: Dictionary to write

    Raises:
        ConfigFileError: If write fails
    """
    content = yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
    write_text(path, content)


def parse_json_object(content: str, source: str) -> dict[str, Any]:
    """Parse JSON text that must hold an object."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigFormatError(f"Invalid JSON in {source}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigFormatError(f"Expected a JSON object in {source}")
    return data


def read_json(path: Path) -> dict[str, Any] | None:
    """Read JSON object, returning None when the file doesn't exist.

    Raises:
        ConfigFileError: If the file can't be read
        ConfigFormatError: If the content isn't a JSON object
    """
    content = read_text(path)
    if content is None:
        return None
    if not content.strip():
        return {}
    return parse_json_object(content, str(path))


def dump_json(data: dict[str, Any]) -> str:
    """Serialize a JSON document the way every written file is formatted."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON object with two-space indentation."""
    write_text(path, dump_json(data))


def backup_path(path: Path) -> Path:
    """Sibling path holding the previous contents of a target file."""
    return path.with_name(path.name + BACKUP_SUFFIX)


def backup_file(path: Path) -> Path | None:
    """Copy a file to its .bak sibling before it gets overwritten.

    Returns:
        Backup path, or None when there was nothing to back up
    """
    if not path.exists():
        return None
    destination = backup_path(path)
    try:
        shutil.copyfile(path, destination)
    except OSError as e:
        raise ConfigFileError(f"Failed to back up {path}: {e}") from e
    logger.debug(f"Backed up {path} to {destination}")
    return destination


def replace_with_backup(path: Path, content: str) -> Path | None:
    """Back up the current file (if any) and write new content.

    The two steps are not atomic: a crash in between leaves the new backup
    next to the old content. Nothing attempts to repair that pairing.

    Returns:
        Backup path, or None if the file didn't exist before
    """
    backup = backup_file(path)
    write_text(path, content)
    return backup
