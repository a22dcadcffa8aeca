"""
Shared fixtures for chain explorer tests.

============================================================
PURPOSE
============================================================
Small, offline configurations and a mocked HTTP transport so
sources, the policy and the service can be exercised without
network access.

============================================================
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chain_explorer.config import ExplorerConfig, default_chain_configs
from chain_explorer.credentials import CredentialStore
from chain_explorer.models import ChainFamily
from chain_explorer.transport import HttpTransport
from tests.chain_explorer.helpers import make_chain


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def default_config():
    """The built-in chain table."""
    return ExplorerConfig(chains=default_chain_configs())


@pytest.fixture
def test_chain():
    return make_chain()


@pytest.fixture
def test_config(test_chain):
    """Single EVM chain with a keyed API and a three-endpoint pool."""
    return ExplorerConfig(chains={test_chain.chain_id: test_chain})


@pytest.fixture
def blank_credentials(test_config):
    return CredentialStore(test_config, keys={"testchain": "   "}, load_env=False)


@pytest.fixture
def keyed_credentials(test_config):
    return CredentialStore(test_config, keys={"testchain": "KEY123"}, load_env=False)


@pytest.fixture
def mock_transport():
    """HttpTransport double with async request methods."""
    transport = MagicMock(spec=HttpTransport)
    transport.rpc_call = AsyncMock()
    transport.get_json = AsyncMock()
    transport.get_text = AsyncMock()
    transport.post_json = AsyncMock()
    transport.close = AsyncMock()
    return transport


@pytest.fixture
def mock_rpc_source():
    source = MagicMock()
    source.family = ChainFamily.EVM
    source.name = "mock_rpc"
    source.probe = AsyncMock(return_value=True)
    return source


@pytest.fixture
def mock_api_source():
    source = MagicMock()
    source.family = ChainFamily.EVM
    source.name = "mock_api"
    source.validate_key = AsyncMock(return_value=True)
    return source
