"""
Merkle-Patricia trie proof walking.

eth_getProof returns, for each key, the RLP encoded trie nodes on the path
from the root to the key. Walking them against a trusted root yields the
value stored under the key, or b"" when the proof shows the key is absent.
"""

from typing import Sequence

import rlp
from eth_utils import keccak
from rlp.exceptions import DecodingError
from trie import HexaryTrie
from trie.exceptions import BadTrieProof

from minime_proofs.shared.exceptions import ProofVerificationError


def get_from_proof(root: bytes, key: bytes, proof: Sequence[bytes]) -> bytes:
    """
    Walk `proof` from `root` along keccak(key).

    Returns:
        bytes: The RLP encoded value under the key, b"" if absent

    Raises:
        ProofVerificationError: The proof is not a valid path from `root`
    """
    try:
        nodes = [rlp.decode(bytes(node)) for node in proof]
    except DecodingError as e:
        raise ProofVerificationError(f"proof node is not RLP: {e}") from e

    try:
        return HexaryTrie.get_from_proof(bytes(root), keccak(key), nodes)
    except BadTrieProof as e:
        raise ProofVerificationError(f"invalid Merkle proof: {e}") from e
