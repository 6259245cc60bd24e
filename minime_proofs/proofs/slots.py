"""Storage slot derivation for MiniMe checkpoint arrays"""

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

_WORD_MODULUS = 2**256


def mapping_base_slot(holder: str, slot_index: int) -> bytes:
    """
    Calculate the storage slot of `balances[holder]` for a mapping declared
    at `slot_index`.

    Solidity stores a mapping value at keccak256(pad32(key) ++ pad32(slot)).

    Args:
        holder (str): The token holder address.
        slot_index (int): The declared position of the balances mapping.

    Returns:
        bytes: The 32 byte storage key.
    """
    if slot_index < 0:
        raise ValueError(f"Slot index must be non-negative, got {slot_index}")
    return keccak(
        encode(["address", "uint256"], [to_checksum_address(holder), slot_index])
    )


def array_length_slot(holder: str, slot_index: int) -> bytes:
    """
    Calculate the storage slot holding the length of the holder's
    checkpoint array.

    A dynamic array keeps its length at its own slot, which for a mapping
    value is the mapping base slot.
    """
    return mapping_base_slot(holder, slot_index)


def hash_from_position(slot: bytes) -> bytes:
    """Hash a slot to get the location of a dynamic array's first element"""
    return keccak(slot)


def entry_slot(holder: str, slot_index: int, position: int) -> bytes:
    """
    Calculate the storage slot of the checkpoint at `position`.

    Positions are 1-based: the first checkpoint lives at
    keccak256(mapping_base_slot), the n-th one n - 1 words further.

    Args:
        holder (str): The token holder address.
        slot_index (int): The declared position of the balances mapping.
        position (int): 1-based index into the checkpoint array.

    Returns:
        bytes: The 32 byte storage key.
    """
    if position < 1:
        raise ValueError(f"Checkpoint positions start at 1, got {position}")
    first = int.from_bytes(
        hash_from_position(mapping_base_slot(holder, slot_index)),
        byteorder="big",
    )
    return ((first + position - 1) % _WORD_MODULUS).to_bytes(
        32, byteorder="big"
    )


def entry_position(holder: str, slot_index: int, key: bytes) -> int:
    """
    Invert entry_slot: return the 1-based position a key addresses.

    Raises ValueError when the key lies before the start of the array.
    """
    first = int.from_bytes(
        hash_from_position(mapping_base_slot(holder, slot_index)),
        byteorder="big",
    )
    offset = (int.from_bytes(key, byteorder="big") - first) % _WORD_MODULUS
    # Keys below the array start wrap around to a huge offset
    if offset >= 2**64:
        raise ValueError("Key does not belong to the checkpoint array")
    return offset + 1
