"""Tests for repo_mirror.logging_config.

Run with:
    pytest tests/test_logging_config.py --maxfail=1 -v --cov=repo_mirror.logging_config --cov-report=term-missing
"""

import logging

from repo_mirror.logging_config import setup_logging


def test_setup_logging_writes_timestamped_file(tmp_path):
    log_file = tmp_path / "logs" / "mirror.log"
    setup_logging("debug", log_file)
    try:
        logging.getLogger("repo_mirror.test").info("[sync] hello")
        for handler in logging.getLogger().handlers:
            handler.flush()
        line = log_file.read_text().strip()
        assert line.endswith("| INFO     | repo_mirror.test | [sync] hello")
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING
    finally:
        for handler in list(logging.getLogger().handlers):
            handler.close()
            logging.getLogger().removeHandler(handler)
        logging.getLogger().setLevel(logging.WARNING)
