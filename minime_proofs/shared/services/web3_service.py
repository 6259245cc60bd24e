"""
Web3 Service module for interacting with Ethereum-based blockchains.

This module provides a Web3Service class that owns the connection to one
network and hands out contract bindings built from packaged ABIs.
"""

from typing import Any, Dict, Optional

from web3 import Web3

from minime_proofs.shared.constants import GlobalConstants
from minime_proofs.shared.services.resource_manager import resource_manager


class Web3Service:
    """
    A service class for managing a Web3 connection.

    The service caches contract objects only; chain data is never cached so
    that every proof reflects the node's answer at call time.
    """

    def __init__(
        self,
        chain_id: int,
        rpc_url: str,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the Web3Service.

        Args:
            chain_id (int): The chain ID to use.
            rpc_url (str): The RPC URL to use.
            timeout (float): HTTP timeout for each RPC request, in seconds.
        """
        self.chain_id = chain_id
        self.timeout = timeout or GlobalConstants.RPC_TIMEOUT
        self.w3 = self._initialize_web3(rpc_url)
        self._contract_cache: Dict[Any, Any] = {}

    def _initialize_web3(self, rpc_url: str) -> Web3:
        """Initialize Web3 instance with middleware if needed"""
        w3 = Web3(
            Web3.HTTPProvider(
                rpc_url, request_kwargs={"timeout": self.timeout}
            )
        )

        # Add POA middleware for non-mainnet chains
        if self.chain_id != 1:
            from web3.middleware import ExtraDataToPOAMiddleware

            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        return w3

    @classmethod
    def get_instance(cls, chain_id: int) -> "Web3Service":
        """Get or create a Web3Service instance for a specific chain"""
        if not hasattr(cls, "_instances"):
            cls._instances = {}

        if chain_id not in cls._instances:
            rpc_url = GlobalConstants.get_rpc_url(chain_id)
            cls._instances[chain_id] = cls(chain_id, rpc_url)

        return cls._instances[chain_id]

    def get_contract(self, address: str, abi_name: str) -> Any:
        """Get a contract instance for a given address and ABI name"""
        key = (address, abi_name)
        if key not in self._contract_cache:
            abi = resource_manager.load_abi(abi_name)
            self._contract_cache[key] = self.w3.eth.contract(
                address=Web3.to_checksum_address(address.lower()), abi=abi
            )
        return self._contract_cache[key]
