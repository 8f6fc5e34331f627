import logging
from pathlib import Path

from sms_template.logging_config import log_security_event, log_template_event, setup_logging


def test_template_event_levels(caplog):
    with caplog.at_level(logging.INFO, logger="template"):
        log_template_event("template_request", "add", app_id="1400000000")
        log_template_event("template_request", "get", tpl_id=[1, 2], success=False, error="HTTP 502")

    ok, failed = caplog.records
    assert ok.levelno == logging.INFO
    assert "operation=add" in ok.getMessage()
    assert "app_id=1400000000" in ok.getMessage()
    assert failed.levelno == logging.ERROR
    assert "error=HTTP 502" in failed.getMessage()
    assert "tpl_id=[1, 2]" in failed.getMessage()


def test_security_event(caplog):
    with caplog.at_level(logging.WARNING, logger="security"):
        log_security_event("sig_mismatch", "invalid signature", client_ip="127.0.0.1", app_id="1")
    assert "SECURITY: event_type=sig_mismatch" in caplog.records[0].getMessage()


def test_setup_logging_to_file(tmp_path: Path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_file = tmp_path / "template.log"
    try:
        setup_logging(log_level="debug", log_file=str(log_file))
        logging.getLogger("template").debug("hello")
        for handler in root.handlers:
            handler.flush()
        assert root.level == logging.DEBUG
        assert "hello" in log_file.read_text()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
