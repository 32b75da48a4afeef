"""Tests for the logging setup module."""

import logging

from docfill.utils.logger import CredentialFilter, get_logger, redact, setup_logging


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def test_setup_creates_handler(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()

        setup_logging("DEBUG")
        assert len(root.handlers) >= 1
        assert root.level == logging.DEBUG
        assert any(isinstance(f, CredentialFilter) for f in root.handlers[0].filters)

        root.handlers.clear()

    def test_setup_idempotent(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()

        setup_logging("INFO")
        count = len(root.handlers)
        setup_logging("INFO")
        assert len(root.handlers) == count

        root.handlers.clear()

    def test_setup_invalid_level_defaults_to_info(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()

        setup_logging("NONEXISTENT")
        assert root.level == logging.INFO

        root.handlers.clear()

    def test_http_client_quieted(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()

        setup_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

        root.handlers.clear()


class TestRedact:
    """Tests for credential masking."""

    def test_masks_query_key(self) -> None:
        url = "https://vision.googleapis.com/v1/images:annotate?key=AIzaSecret"
        assert redact(url).endswith("?key=***")

    def test_masks_bearer_token(self) -> None:
        assert redact("Authorization: Bearer sk-abc.123") == "Authorization: Bearer ***"

    def test_leaves_plain_text(self) -> None:
        assert redact("HTTP 500 Internal Server Error") == "HTTP 500 Internal Server Error"

    def test_filter_rewrites_record(self) -> None:
        record = logging.LogRecord(
            "httpx", logging.INFO, __file__, 1, "POST %s", ("https://x/?key=abc",), None
        )
        assert CredentialFilter().filter(record) is True
        assert record.getMessage() == "POST https://x/?key=***"


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_named_logger(self) -> None:
        logger = get_logger("test.module")
        assert logger.name == "test.module"
        assert isinstance(logger, logging.Logger)

    def test_same_name_returns_same_logger(self) -> None:
        assert get_logger("test.same") is get_logger("test.same")
