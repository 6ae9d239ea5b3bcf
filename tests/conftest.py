"""
Shared test configuration for the client observer tests.
"""

import logging
import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))


@pytest.fixture
def test_logger() -> logging.Logger:
    """Logger propagating to the root so caplog sees its records."""
    logger = logging.getLogger("tests.observer")
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    return logger
