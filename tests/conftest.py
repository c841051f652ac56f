import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def _reset_loguru():
    # configure_logging() binds a sink to the current (possibly captured) stderr
    yield
    logger.remove()
