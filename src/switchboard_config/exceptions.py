"""Exceptions for switchboard-config."""


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileError(ConfigError):
    """Error reading or writing configuration file."""

    pass


class ConfigFormatError(ConfigError):
    """Serialized content on disk is malformed."""

    pass


class ConfigValidationError(ConfigError):
    """Caller-supplied data has an invalid shape."""

    pass


class NotFoundError(ConfigError):
    """Named entity does not exist."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' not found")


class AlreadyExistsError(ConfigError):
    """Entity with the same key already exists."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' already exists")
