"""Tests for secret redaction in logs."""

import logging

import pytest
from switchboard_config.redaction import SecretRedactingFilter
from switchboard_config.redaction import redact
from switchboard_config.redaction import setup_logging


@pytest.mark.parametrize(
    "text, secret",
    [
        ("Authorization: Bearer abc.def.ghi", "abc.def.ghi"),
        ("using key sk-abcdefghijklmnop", "sk-abcdefghijklmnop"),
        ('{"apiKey": "plain-secret"}', "plain-secret"),
        ("api_key=plain-secret", "plain-secret"),
        ("ANTHROPIC_AUTH_TOKEN=plain-secret", "plain-secret"),
        ("GEMINI_API_KEY=plain-secret", "plain-secret"),
    ],
)
def test_redact(text, secret):
    assert secret not in redact(text)


def test_redact_leaves_plain_text():
    assert redact("Synced 2 provider(s) to opencode.json") == "Synced 2 provider(s) to opencode.json"


def test_filter_masks_args():
    record = logging.LogRecord("switchboard_config", logging.INFO, __file__, 1, "key is %s", ("sk-abcdefghijklmnop",), None)

    assert SecretRedactingFilter().filter(record) is True
    assert "sk-abcdefghijklmnop" not in record.getMessage()


def test_setup_logging_levels():
    package_logger = logging.getLogger("switchboard_config")

    setup_logging(verbose=True)
    assert package_logger.level == logging.DEBUG
    setup_logging(verbose=True, quiet=True)
    assert package_logger.level == logging.ERROR
    setup_logging()
    assert package_logger.level == logging.INFO
    assert len(package_logger.handlers) == 1
    assert package_logger.propagate is False
