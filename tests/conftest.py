"""Pytest configuration and shared fixtures."""

import pytest
import sys
import numpy as np
from pathlib import Path

# Add the source directory to the Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture
def rng():
    """Provide a seeded random number generator."""
    return np.random.default_rng(12345)


@pytest.fixture
def default_config():
    """Provide a default configuration (no file)."""
    from evoibs.run.config import Config
    return Config()
