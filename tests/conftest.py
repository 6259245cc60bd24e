"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests.
"""

from unittest.mock import MagicMock

import pytest
from eth_utils import to_checksum_address

from minime_proofs.proofs.minime import Minime
from minime_proofs.token.erc20 import ERC20Token
from tests.helpers import FakeTokenChain


@pytest.fixture
def sample_token_address() -> str:
    """Sample MiniMe token address for tests."""
    return to_checksum_address("0xe41d2489571d322189246dafa5ebde1f4699f498")


@pytest.fixture
def sample_holder_address() -> str:
    """Sample token holder address for tests."""
    return to_checksum_address("0x52f541764e6e90eebc5c21ff570de0e2d63766b6")


@pytest.fixture
def sample_decimals() -> int:
    return 18


@pytest.fixture
def chain(sample_token_address) -> FakeTokenChain:
    """Block-versioned storage of the sample token."""
    return FakeTokenChain(sample_token_address)


@pytest.fixture
def mock_w3(chain):
    """Mock Web3 whose eth namespace is served by the fake chain."""
    w3 = MagicMock()
    w3.eth.get_storage_at.side_effect = chain.get_storage_at
    w3.eth.get_block.side_effect = chain.get_block
    w3.eth.get_proof.side_effect = chain.get_proof
    return w3


@pytest.fixture
def mock_contract(sample_decimals):
    """Mock ERC-20 contract with a zero balance by default."""
    contract = MagicMock()
    contract.functions.name.return_value.call.return_value = "Sample Token"
    contract.functions.symbol.return_value.call.return_value = "SMPL"
    contract.functions.decimals.return_value.call.return_value = sample_decimals
    contract.functions.totalSupply.return_value.call.return_value = 10**27
    contract.functions.balanceOf.return_value.call.return_value = 0
    return contract


@pytest.fixture
def token(mock_w3, sample_token_address, mock_contract) -> ERC20Token:
    return ERC20Token(mock_w3, sample_token_address, contract=mock_contract)


@pytest.fixture
def minime(token) -> Minime:
    return Minime(token)


@pytest.fixture
def mock_web3_service(mock_w3, mock_contract):
    """Mock Web3Service for unit tests."""
    service = MagicMock()
    service.w3 = mock_w3
    service.get_contract.return_value = mock_contract
    return service


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
