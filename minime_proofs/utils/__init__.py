from minime_proofs.utils.blockchain import (
    balance_to_rat,
    encode_rlp_proofs,
    to_block_arg,
    to_bytes32,
    trim_left_zeroes,
)

__all__ = [
    "balance_to_rat",
    "encode_rlp_proofs",
    "to_block_arg",
    "to_bytes32",
    "trim_left_zeroes",
]
