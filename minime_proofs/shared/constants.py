"""All constants for the project"""

import os

from dotenv import load_dotenv

load_dotenv()


class MinimeConstants:
    """Constants describing the MiniMe checkpoint storage layout"""

    # Highest mapping slot index (exclusive) tried during discovery
    DISCOVERY_LIMIT = 20

    # struct Checkpoint { uint128 fromBlock; uint128 value; }
    # fromBlock sits in the low-order half of the word, value in the high half
    CHECKPOINT_VALUE_BYTES = slice(0, 16)
    CHECKPOINT_BLOCK_BYTES = slice(16, 32)
    UINT128_MAX = 2**128 - 1

    UNKNOWN_NAME = "unknown-name"
    UNKNOWN_SYMBOL = "unknown-symbol"


class GlobalConstants:
    """Global class constants for the project"""

    RPC_TIMEOUT = float(os.getenv("MINIME_RPC_TIMEOUT", "20"))

    CHAIN_ID_TO_RPC = {
        1: os.getenv("ETHEREUM_MAINNET_RPC_URL") or None,
        5: os.getenv("GOERLI_RPC_URL") or None,
        10: os.getenv("OPTIMISM_MAINNET_RPC_URL") or None,
        100: os.getenv("GNOSIS_RPC_URL") or None,
        137: os.getenv("POLYGON_MAINNET_RPC_URL") or None,
        11155111: os.getenv("SEPOLIA_RPC_URL") or None,
    }

    @staticmethod
    def get_rpc_url(chain_id: int) -> str:
        """Get RPC URL for specified chain"""
        chain_id = int(chain_id)
        if chain_id not in GlobalConstants.CHAIN_ID_TO_RPC:
            raise ValueError(f"Chain ID {chain_id} not supported")

        rpc_url = GlobalConstants.CHAIN_ID_TO_RPC[chain_id]
        if not rpc_url:
            raise ValueError(f"RPC URL not set for chain {chain_id}")

        return rpc_url
