import logging
import os

from shared.logging.logging_setup import ColorLogger, ColoredFormatter, TimezoneFormatter, resolve_log_level, setup_logging


def _record(level: int, msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("docsync", level, __file__, 1, msg, args, None)


def test_resolve_log_level():
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level(" WARNING ") == logging.WARNING
    assert resolve_log_level(None) == logging.INFO
    assert resolve_log_level("chatty") == logging.INFO


def test_formatter_marks_errors_and_warnings():
    formatter = TimezoneFormatter("UTC", "%(message)s")

    assert formatter.format(_record(logging.ERROR, "document_id=%s failed", 3)) == "⛔ document_id=3 failed"
    assert formatter.format(_record(logging.WARNING, "careful")) == "⚠️ careful"
    assert formatter.format(_record(logging.INFO, "fine")) == "fine"


def test_formatter_keeps_template_on_broken_args():
    formatter = TimezoneFormatter("UTC", "%(message)s")

    assert formatter.format(_record(logging.INFO, "%d items", "many")) == "%d items"


def test_colored_formatter_only_colors_tagged_records():
    formatter = ColoredFormatter("UTC", "%(message)s")
    tagged = _record(logging.INFO, "ready")
    tagged.color = "green"

    assert formatter.format(tagged) == "\033[32mready\033[0m"
    assert formatter.format(_record(logging.INFO, "plain")) == "plain"


def test_color_logger_passes_color_as_extra(caplog):
    logger = ColorLogger(logging.getLogger("docsync-color-test"))

    with caplog.at_level(logging.INFO, logger="docsync-color-test"):
        logger.info("collection %s ready", "chunks", color="cyan")
        logger.info("no color")

    assert caplog.records[0].getMessage() == "collection chunks ready"
    assert caplog.records[0].color == "cyan"
    assert not hasattr(caplog.records[1], "color")


def test_setup_logging_writes_log_file(tmp_path, monkeypatch):
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    monkeypatch.setenv("TIMEZONE", "UTC")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    logger = setup_logging("docsync-setup-test")
    logger.debug("document_id=%s hello", 1)
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert isinstance(logger, ColorLogger)
    assert logging.getLogger("httpx").level == logging.DEBUG
    with open(os.path.join(tmp_path, "logs", "app.log"), encoding="utf-8") as log_file:
        assert "document_id=1 hello" in log_file.read()

    # drop the configured handlers so later tests do not write to them
    for handler in list(logging.getLogger().handlers):
        if isinstance(handler.formatter, TimezoneFormatter):
            logging.getLogger().removeHandler(handler)
            handler.close()
