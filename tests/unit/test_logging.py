"""
Unit tests for logging setup.
"""

import logging
import logging.handlers

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from ecohavest_bot.utils.config import LoggingConfig
from ecohavest_bot.utils.logging import log_response_time, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:

    def test_console_and_rotating_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / 'logs' / 'bot.log'
        logger = setup_logging(LoggingConfig(level='DEBUG', log_file=str(log_file)))

        assert logger.level == logging.DEBUG
        assert log_file.parent.is_dir()
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)
        assert any(type(h) is logging.StreamHandler for h in logger.handlers)
        assert logging.getLogger('httpx').level == logging.WARNING

    def test_console_disabled(self, tmp_path, restore_root_logger):
        logger = setup_logging(LoggingConfig(log_file=str(tmp_path / 'bot.log'), console_output=False))
        assert not any(type(h) is logging.StreamHandler for h in logger.handlers)


class TestResponseTime:

    @pytest.mark.asyncio
    async def test_wrapped_handler_result_and_log(self, caplog):
        @log_response_time
        async def handler(value):
            return value * 2

        with caplog.at_level(logging.DEBUG, logger=__name__):
            assert await handler(21) == 42

        assert any('Response time for handler' in record.getMessage() for record in caplog.records)
