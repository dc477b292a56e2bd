"""Logging setup with redaction of API keys and tokens."""

import logging
import re
import sys

_SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Bearer tokens
    (re.compile(r"(Bearer\s+)\S+", re.IGNORECASE), r"\1[REDACTED]"),
    # OpenAI-style keys: sk-...
    (re.compile(r"\bsk-[A-Za-z0-9_-]{10,}\b"), "[REDACTED_API_KEY]"),
    # "apiKey": "..." and "api_key": "..." in serialized configs
    (re.compile(r'("api[_-]?key"\s*:\s*")[^"]*(")', re.IGNORECASE), r"\1[REDACTED]\2"),
    # api_key=... / api-key: ...
    (re.compile(r"(api[_-]?key\s*[=:]\s*)['\"]?[^\s'\",]+['\"]?", re.IGNORECASE), r"\1[REDACTED]"),
    # Env-style assignments written to assistant configs
    (re.compile(r"\b((?:ANTHROPIC_AUTH_TOKEN|GEMINI_API_KEY|OPENAI_API_KEY)\s*[=:]\s*)\S+"), r"\1[REDACTED]"),
]


def redact(text: str) -> str:
    """Mask secrets in a string.

    Examples:
        >>> redact("Authorization: Bearer abc123")
        'Authorization: Bearer [REDACTED]'
    """
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Logging filter that masks secrets in every record it sees."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if record.args:
            record.msg = redact(record.getMessage())
            record.args = None
        return True


secret_filter = SecretRedactingFilter()


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send package logs to stderr through the redacting filter.

    Args:
        verbose: Log at DEBUG instead of INFO
        quiet: Only log errors (wins over verbose)
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)-8s %(message)s"))
    handler.addFilter(secret_filter)

    package_logger = logging.getLogger("switchboard_config")
    for existing in package_logger.handlers[:]:
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False
