import logging

from deschrambler.config import LOG_FORMAT


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
