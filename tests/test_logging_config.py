import io
import logging

import pytest

from addon_validator.config import LoggingConfig
from addon_validator.logging_config import (
    ColoredFormatter,
    get_logger,
    setup_logging,
    setup_logging_from_config,
)


@pytest.fixture
def reset_package_logger():
    yield
    logger = logging.getLogger("addon_validator")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logging.getLogger("urllib3").setLevel(logging.NOTSET)


def test_setup_logging_writes_console_and_file(tmp_path, reset_package_logger):
    log_file = tmp_path / "run.log"
    console = io.StringIO()

    logger = setup_logging(level="info", log_file=str(log_file), stream=console)
    get_logger("pipeline").info("Matched 3 known addons")
    get_logger("pipeline").debug("pass detail")
    for handler in logger.handlers:
        handler.flush()

    assert logger.name == "addon_validator"
    assert len(logger.handlers) == 2
    assert console.getvalue() == "INFO - Matched 3 known addons\n"
    content = log_file.read_text()
    assert "addon_validator.pipeline - INFO" in content
    assert "\033[" not in content


def test_setup_logging_replaces_handlers(reset_package_logger):
    setup_logging(stream=io.StringIO())
    logger = setup_logging(level="WARNING", stream=io.StringIO())

    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_unknown_level_defaults_to_info(reset_package_logger):
    assert setup_logging(level="chatty", stream=io.StringIO()).level == logging.INFO


def test_verbose_format_names_the_logger(reset_package_logger):
    console = io.StringIO()
    setup_logging(verbose=True, stream=console)

    get_logger("fetch").warning("Failed to fetch https://example.com")

    assert "addon_validator.fetch - WARNING" in console.getvalue()


@pytest.mark.parametrize("level, expected", [("DEBUG", logging.DEBUG), ("INFO", logging.WARNING)])
def test_http_client_logging_follows_level(level, expected, reset_package_logger):
    setup_logging(level=level, stream=io.StringIO())

    assert logging.getLogger("urllib3").level == expected


def test_setup_logging_from_config(tmp_path, reset_package_logger):
    config = LoggingConfig(level="DEBUG", log_file=str(tmp_path / "debug.log"))

    logger = setup_logging_from_config(config)

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2


def test_colored_formatter_does_not_modify_record():
    record = logging.LogRecord("addon_validator", logging.ERROR, __file__, 1, "boom", None, None)

    formatted = ColoredFormatter("%(levelname)s - %(message)s").format(record)

    assert formatted == "\033[31mERROR\033[0m - boom"
    assert record.levelname == "ERROR"


def test_colored_formatter_without_color():
    record = logging.LogRecord("addon_validator", logging.ERROR, __file__, 1, "boom", None, None)

    assert ColoredFormatter("%(levelname)s - %(message)s", use_color=False).format(record) == "ERROR - boom"
