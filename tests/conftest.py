"""
Pytest configuration and fixtures for the chat relay test suite.
"""

import os

# File logging off before the logger is first imported
os.environ.setdefault("LOG_DIR", "")

from typing import Dict, List

import pytest

from chat_relay.core.config import GatewayConfig
from tests.relay_utils import CLIENT_ID, make_config


@pytest.fixture
def config() -> GatewayConfig:
    return make_config()


@pytest.fixture
def caller_headers() -> Dict[str, str]:
    return {"X-Client": CLIENT_ID, "Content-Type": "application/json"}


@pytest.fixture
def sample_messages() -> List[Dict[str, str]]:
    return [{"role": "user", "content": "hi"}]
