"""
Shared pytest fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hedge_fund.data.cache import Cache
from hedge_fund.utils.config import Config


@pytest.fixture
def cache() -> Cache:
    """Private cache per test."""
    return Cache()


@pytest.fixture
def config() -> Config:
    return Config(
        financial_datasets_api_key="fd-test-key",
        groq_api_key="groq-test-key",
        openai_api_key="openai-test-key",
    )
