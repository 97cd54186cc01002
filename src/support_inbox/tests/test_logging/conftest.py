import pytest

from support_inbox.config import get_settings
from support_inbox.core.logging.builder import setup_logging, stop_queue_logging


@pytest.fixture(autouse=True)
def restore_app_logging():
    """Tests here install their own logging config; put the suite's config back afterwards."""
    yield
    stop_queue_logging()
    setup_logging(get_settings())
