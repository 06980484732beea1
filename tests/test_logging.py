import logging
from pathlib import Path

from recursive_wrapper.foundation.logging_utils import LOGGER_NAME, setup_operational_logger


def test_log_file_receives_debug_and_unicode(tmp_path: Path):
    log_path = tmp_path / "logs" / "wrapper.log"

    logger = setup_operational_logger(logging.WARNING, log_file=log_path)
    logger.debug("Included build café at %s", tmp_path)
    for handler in logger.handlers:
        handler.flush()

    content = log_path.read_text(encoding="utf-8")
    assert "| DEBUG | Included build café" in content


def test_setup_replaces_previous_handlers(tmp_path: Path):
    setup_operational_logger(logging.INFO, log_file=tmp_path / "a.log")
    logger = setup_operational_logger(logging.INFO)

    assert logger.name == LOGGER_NAME
    assert logger.propagate is False
    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.INFO
