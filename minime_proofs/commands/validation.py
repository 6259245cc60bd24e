from eth_utils import is_address, to_checksum_address

from minime_proofs.shared.constants import GlobalConstants


def validate_eth_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum ethereum address"""
    if not address or not isinstance(address, str):
        raise ValueError(
            f"Invalid {param_name}: address must be a non-empty string"
        )
    if not is_address(address):
        raise ValueError(
            f"Invalid {param_name}: {address} is not a valid Ethereum address"
        )
    return to_checksum_address(address)


def validate_chain_id(chain_id: int) -> None:
    """Validate chain ID"""
    valid_chain_ids = set(GlobalConstants.CHAIN_ID_TO_RPC)
    if chain_id not in valid_chain_ids:
        raise ValueError(
            f"Invalid chain_id: {chain_id}. Must be one of {valid_chain_ids}"
        )


def validate_block_number(block_number: int) -> int:
    """Validate a historical block number"""
    if block_number <= 0:
        raise ValueError("Block number must be a positive integer")
    return block_number


def validate_slot_index(slot_index: int) -> int:
    """Validate a mapping slot index"""
    if slot_index < 0:
        raise ValueError("Slot index must be a non-negative integer")
    return slot_index
