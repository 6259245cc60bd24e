from fractions import Fraction
from typing import Optional, Sequence, Tuple, Union

import rlp
from hexbytes import HexBytes

BlockIdentifier = Union[int, str]


def to_block_arg(block: Optional[int]) -> BlockIdentifier:
    """Convert an optional block number to a web3 block identifier"""
    if block is None:
        return "latest"
    if block < 0:
        raise ValueError(f"Block number must be non-negative, got {block}")
    return block


def to_bytes32(value: Union[int, bytes]) -> bytes:
    """Left pad an integer or a short byte string to a 32 byte word"""
    if isinstance(value, int):
        return value.to_bytes(32, byteorder="big")
    if len(value) > 32:
        raise ValueError(f"Value is {len(value)} bytes long, max is 32")
    return bytes(value).rjust(32, b"\x00")


def trim_left_zeroes(value: bytes) -> bytes:
    """Strip the leading zero bytes of a storage word"""
    return bytes(value).lstrip(b"\x00")


def balance_to_rat(raw_balance: int, decimals: int) -> Fraction:
    """Scale a raw token amount down by the token decimals"""
    return Fraction(raw_balance, 10**decimals)


def encode_rlp_proofs(
    account_proof: Sequence[bytes], storage_proofs: Sequence[Sequence[bytes]]
) -> Tuple[bytes, bytes]:
    """Encode RLP proofs for on-chain Ethereum storage verifiers"""
    account_nodes = list(map(rlp.decode, map(HexBytes, account_proof)))
    storage_nodes = [
        list(map(rlp.decode, map(HexBytes, proof))) for proof in storage_proofs
    ]
    return rlp.encode(account_nodes), rlp.encode(storage_nodes)
