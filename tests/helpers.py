"""
Test doubles: an in-memory Merkle-Patricia trie and a block-versioned
token storage that answers eth_getStorageAt, eth_getBlockByNumber and
eth_getProof like a node would.
"""

from typing import Dict, List, Set, Tuple

import rlp
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes
from trie import HexaryTrie
from trie.constants import BLANK_NODE_HASH

from minime_proofs.proofs import slots
from minime_proofs.proofs.checkpoint import pack_checkpoint
from minime_proofs.utils.blockchain import to_bytes32, trim_left_zeroes

EMPTY_CODE_HASH = keccak(b"")


class ProofTrie:
    """Secure trie (keys are hashed) built once from a dict of items"""

    def __init__(self, items: Dict[bytes, bytes]):
        self._trie = HexaryTrie(db={})
        for key, value in items.items():
            self._trie[keccak(key)] = value

    @property
    def root(self) -> bytes:
        return self._trie.root_hash

    def prove(self, key: bytes) -> List[bytes]:
        """RLP encoded nodes on the path to keccak(key)"""
        return [rlp.encode(node) for node in self._trie.get_proof(keccak(key))]


def storage_trie(storage: Dict[int, int]) -> ProofTrie:
    return ProofTrie(
        {
            to_bytes32(slot): rlp.encode(trim_left_zeroes(to_bytes32(value)))
            for slot, value in storage.items()
            if value
        }
    )


class FakeTokenChain:
    """
    Storage of one token contract, versioned by block.

    A write at block N is visible to reads at N and later blocks.
    """

    OTHER_ACCOUNT = "0x00000000000000000000000000000000000000aa"

    def __init__(self, token_address: str):
        self.address = to_checksum_address(token_address)
        self.head = 1
        self._writes: Dict[int, List[Tuple[int, int]]] = {}
        self.failing_keys: Set[int] = set()

    def write(self, key: bytes, value, block: int) -> None:
        if isinstance(value, (bytes, bytearray)):
            value = int.from_bytes(value, byteorder="big")
        slot = int.from_bytes(key, byteorder="big")
        self._writes.setdefault(slot, []).append((block, value))
        self._writes[slot].sort(key=lambda w: w[0])
        self.head = max(self.head, block)

    def add_checkpoints(
        self, holder: str, slot_index: int, checkpoints: List[Tuple[int, int]]
    ) -> None:
        """Append (raw_balance, block) checkpoints the way the token does"""
        length_key = slots.array_length_slot(holder, slot_index)
        for position, (raw_balance, block) in enumerate(checkpoints, 1):
            self.write(
                slots.entry_slot(holder, slot_index, position),
                pack_checkpoint(raw_balance, block),
                block,
            )
            self.write(length_key, position, block)

    def _resolve(self, block_identifier) -> int:
        if block_identifier in (None, "latest"):
            return self.head
        return int(block_identifier)

    def value_at(self, slot: int, block: int) -> int:
        value = 0
        for written_at, written in self._writes.get(slot, []):
            if written_at <= block:
                value = written
        return value

    def storage_at_block(self, block: int) -> Dict[int, int]:
        return {slot: self.value_at(slot, block) for slot in self._writes}

    def _account_trie(self, storage_root: bytes) -> ProofTrie:
        token = rlp.encode([1, 0, storage_root, EMPTY_CODE_HASH])
        other = rlp.encode([7, 10**18, BLANK_NODE_HASH, EMPTY_CODE_HASH])
        return ProofTrie(
            {
                bytes(HexBytes(self.address)): token,
                bytes(HexBytes(self.OTHER_ACCOUNT)): other,
            }
        )

    # Node API, shaped like web3.eth

    def get_storage_at(self, address, position: int, block_identifier="latest"):
        if position in self.failing_keys:
            raise ConnectionError(f"node dropped eth_getStorageAt {position:#x}")
        block = self._resolve(block_identifier)
        return HexBytes(to_bytes32(self.value_at(position, block)))

    def get_block(self, block_identifier="latest"):
        block = self._resolve(block_identifier)
        storage = storage_trie(self.storage_at_block(block))
        return {
            "number": block,
            "stateRoot": HexBytes(self._account_trie(storage.root).root),
        }

    def get_proof(self, address, positions, block_identifier="latest"):
        block = self._resolve(block_identifier)
        values = self.storage_at_block(block)
        storage = storage_trie(values)
        accounts = self._account_trie(storage.root)
        return {
            "address": self.address,
            "accountProof": [
                HexBytes(n) for n in accounts.prove(bytes(HexBytes(self.address)))
            ],
            "balance": 0,
            "codeHash": HexBytes(EMPTY_CODE_HASH),
            "nonce": 1,
            "storageHash": HexBytes(storage.root),
            "storageProof": [
                {
                    "key": HexBytes(to_bytes32(position)),
                    "value": values.get(position, 0),
                    "proof": [
                        HexBytes(n) for n in storage.prove(to_bytes32(position))
                    ],
                }
                for position in positions
            ],
        }


def positions_of(proof, holder: str, slot_index: int) -> Tuple[int, ...]:
    """Map the keys of a StorageProof back to checkpoint positions"""
    return tuple(
        slots.entry_position(holder, slot_index, key) for key in proof.keys
    )
