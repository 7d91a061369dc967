import logging

import pytest

from essaymark.utils import logging_setup
from essaymark.utils.logging_setup import configure_logging


@pytest.fixture
def root_logger(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(logging_setup, '_configured', False)
    monkeypatch.setattr(root, 'handlers', list(root.handlers))
    level = root.level
    yield root
    root.setLevel(level)


def test_configure_twice_adds_one_handler(root_logger):
    before = len(root_logger.handlers)
    configure_logging(level='debug', log_to_file=False)
    configure_logging(level='warning', log_to_file=False)
    assert len(root_logger.handlers) == before + 1
    assert root_logger.level == logging.WARNING
    assert not hasattr(root_logger, '_essaymark_configured')
