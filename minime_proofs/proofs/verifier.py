"""
Verification of MiniMe storage proofs.

The verifier recomputes the checkpoint keys from the holder and slot index,
walks both Merkle paths against the account storage root, and checks that
the two checkpoints bracket the target block with the claimed balance.
"""

from typing import List, Sequence

import rlp
from eth_utils import to_checksum_address
from rlp.exceptions import DecodingError

from minime_proofs.proofs import slots
from minime_proofs.proofs.checkpoint import CheckpointEntry
from minime_proofs.proofs.trie import get_from_proof
from minime_proofs.proofs.types import StorageProof, StorageResult
from minime_proofs.shared.exceptions import ProofVerificationError
from minime_proofs.utils.blockchain import to_bytes32

_WORD_LIMIT = 2**256


def _decode_leaf(encoded: bytes, what: str):
    try:
        return rlp.decode(encoded)
    except DecodingError as e:
        raise ProofVerificationError(f"{what} is not RLP: {e}") from e


def _decode_word(encoded: bytes) -> int:
    item = _decode_leaf(encoded, "storage value")
    if not isinstance(item, bytes) or len(item) > 32:
        raise ProofVerificationError("storage value is not a 32 byte word")
    return int.from_bytes(item, byteorder="big")


def _decode_account(encoded: bytes) -> List[bytes]:
    fields = _decode_leaf(encoded, "account leaf")
    if (
        not isinstance(fields, list)
        or len(fields) != 4
        or not all(isinstance(f, bytes) for f in fields)
    ):
        raise ProofVerificationError(
            "account leaf is not a [nonce, balance, storage root, code hash] list"
        )
    return fields


def _check_word(result: StorageResult) -> None:
    if result.value is None:
        raise ProofVerificationError("value is nil")
    if not isinstance(result.value, int) or not 0 <= result.value < _WORD_LIMIT:
        raise ProofVerificationError(
            f"value of key 0x{bytes(result.key).hex()} is not a storage word"
        )
    if len(result.key) != 32:
        raise ProofVerificationError(
            f"key 0x{bytes(result.key).hex()} is not 32 bytes long"
        )


def check_minime_keys(
    key0: bytes, key1: bytes, holder: str, map_index_slot: int
) -> int:
    """
    Check both keys address consecutive positions of the holder's array.

    Returns:
        int: The 1-based position of the first key
    """
    try:
        position = slots.entry_position(holder, map_index_slot, key0)
    except ValueError as e:
        raise ProofVerificationError(
            f"key 0 is not a checkpoint of the holder: {e}"
        ) from e
    if bytes(key1) != slots.entry_slot(holder, map_index_slot, position + 1):
        raise ProofVerificationError("storage keys are not consecutive")
    return position


def verify_storage_result(storage_root: bytes, result: StorageResult) -> None:
    """Check one storage Merkle path terminates in the reported value"""
    _check_word(result)
    encoded = get_from_proof(storage_root, bytes(result.key), result.proof)
    stored = 0 if encoded == b"" else _decode_word(encoded)
    if stored != result.value:
        raise ProofVerificationError(
            f"proof for key 0x{bytes(result.key).hex()} holds {stored:#x}, "
            f"reported {result.value:#x}"
        )


def verify_account_proof(
    state_root: bytes,
    address: str,
    account_proof: Sequence[bytes],
    storage_hash: bytes,
) -> None:
    """Check the account leaf under `state_root` carries `storage_hash`"""
    try:
        address_bytes = bytes.fromhex(to_checksum_address(address)[2:])
    except ValueError as e:
        raise ProofVerificationError(f"invalid account address: {e}") from e
    encoded = get_from_proof(state_root, address_bytes, account_proof)
    if encoded == b"":
        raise ProofVerificationError(f"account {address} is not in the state")
    _nonce, _balance, storage_root, _code_hash = _decode_account(encoded)
    if bytes(storage_root) != bytes(storage_hash):
        raise ProofVerificationError(
            "account storage root does not match the proof storage hash"
        )


def verify_proof(
    holder: str,
    storage_root: bytes,
    proofs: Sequence[StorageResult],
    map_index_slot: int,
    target_balance: int,
    target_block: int,
) -> None:
    """
    Verify a MiniMe storage proof.

    Args:
        holder: Token holder address
        storage_root: Storage root of the token account
        proofs: The two storage results returned by Minime.get_proof
        map_index_slot: Slot index of the checkpoint balances mapping
        target_balance: Claimed balance, in the token's smallest unit
        target_block: Block at which the balance is claimed

    Raises:
        ProofVerificationError: The proofs do not prove the claim
    """
    if len(proofs) != 2:
        raise ProofVerificationError("wrong length of storage proofs")
    for result in proofs:
        _check_word(result)

    check_minime_keys(proofs[0].key, proofs[1].key, holder, map_index_slot)

    for result in proofs:
        verify_storage_result(storage_root, result)

    # Only raw units are compared, decimals do not matter here
    current = CheckpointEntry.from_word(to_bytes32(proofs[0].value), 0)
    following = CheckpointEntry.from_word(to_bytes32(proofs[1].value), 0)

    if current.block_number == 0:
        raise ProofVerificationError("proof 0 is not a checkpoint")
    if current.raw_balance != target_balance:
        raise ProofVerificationError(
            "proof balance and provided balance mismatch"
        )
    if current.block_number > target_block:
        raise ProofVerificationError("proof block is bigger than target block")

    if following.block_number == 0:
        if following.raw_balance != 0:
            raise ProofVerificationError("proof of nil has a balance value")
    else:
        if following.block_number <= target_block:
            raise ProofVerificationError(
                "proof 1 block is smaller or equal than target block"
            )
        if following.block_number <= current.block_number:
            raise ProofVerificationError(
                "proof 1 block is not newer than proof 0 block"
            )


def verify_storage_proof_bundle(
    bundle: StorageProof,
    holder: str,
    map_index_slot: int,
    target_balance: int,
    target_block: int,
) -> None:
    """Verify a full bundle: account path to the state root, then the
    checkpoint proofs against the account storage root."""
    verify_account_proof(
        bundle.state_root,
        bundle.address,
        bundle.account_proof,
        bundle.storage_hash,
    )
    verify_proof(
        holder,
        bundle.storage_hash,
        bundle.storage_proof,
        map_index_slot,
        target_balance,
        target_block,
    )
