"""
Unit tests for MiniMe proof verification.
"""

import pytest
import rlp

from minime_proofs.proofs import MinimeProofs, slots
from minime_proofs.proofs.checkpoint import pack_checkpoint
from minime_proofs.proofs.types import StorageProof, StorageResult
from minime_proofs.proofs.verifier import (
    check_minime_keys,
    verify_account_proof,
    verify_proof,
    verify_storage_result,
)
from minime_proofs.shared.exceptions import ProofVerificationError
from tests.helpers import ProofTrie, storage_trie

SLOT = 3


def _word(raw_balance: int, block: int) -> int:
    return int.from_bytes(pack_checkpoint(raw_balance, block), "big")


def _prove(storage, holder, positions):
    """Build (storage_root, results) for checkpoint positions of holder"""
    by_slot = {
        int.from_bytes(slots.entry_slot(holder, SLOT, p), "big"): v
        for p, v in storage.items()
    }
    trie = storage_trie(by_slot)
    results = []
    for position in positions:
        key = slots.entry_slot(holder, SLOT, position)
        results.append(
            StorageResult(
                key=key,
                value=by_slot.get(int.from_bytes(key, "big"), 0),
                proof=tuple(trie.prove(key)),
            )
        )
    return trie.root, results


@pytest.fixture
def checkpoints():
    return {1: _word(10, 70), 2: _word(20, 80), 3: _word(30, 90)}


class TestCheckMinimeKeys:
    """Tests for check_minime_keys."""

    def test_consecutive(self, sample_holder_address):
        key0 = slots.entry_slot(sample_holder_address, SLOT, 4)
        key1 = slots.entry_slot(sample_holder_address, SLOT, 5)
        assert check_minime_keys(key0, key1, sample_holder_address, SLOT) == 4

    def test_not_consecutive(self, sample_holder_address):
        key0 = slots.entry_slot(sample_holder_address, SLOT, 4)
        key1 = slots.entry_slot(sample_holder_address, SLOT, 6)
        with pytest.raises(ProofVerificationError, match="consecutive"):
            check_minime_keys(key0, key1, sample_holder_address, SLOT)

    def test_other_slot(self, sample_holder_address):
        key0 = slots.entry_slot(sample_holder_address, SLOT + 1, 1)
        key1 = slots.entry_slot(sample_holder_address, SLOT + 1, 2)
        with pytest.raises(ProofVerificationError, match="holder"):
            check_minime_keys(key0, key1, sample_holder_address, SLOT)


class TestVerifyProof:
    """Tests for verify_proof."""

    def test_checkpoint_followed_by_newer(
        self, sample_holder_address, checkpoints
    ):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        verify_proof(sample_holder_address, root, results, SLOT, 20, 87)

    def test_checkpoint_followed_by_nil(
        self, sample_holder_address, checkpoints
    ):
        root, results = _prove(checkpoints, sample_holder_address, (3, 4))
        verify_proof(sample_holder_address, root, results, SLOT, 30, 95)

    def test_wrong_length(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        with pytest.raises(ProofVerificationError, match="length"):
            verify_proof(sample_holder_address, root, results[:1], SLOT, 20, 87)

    def test_missing_value(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        results[1] = StorageResult(results[1].key, None, results[1].proof)
        with pytest.raises(ProofVerificationError, match="nil"):
            verify_proof(sample_holder_address, root, results, SLOT, 20, 87)

    def test_balance_mismatch(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        with pytest.raises(ProofVerificationError, match="mismatch"):
            verify_proof(sample_holder_address, root, results, SLOT, 21, 87)

    def test_checkpoint_after_target(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        with pytest.raises(ProofVerificationError, match="bigger"):
            verify_proof(sample_holder_address, root, results, SLOT, 20, 75)

    def test_following_not_after_target(
        self, sample_holder_address, checkpoints
    ):
        """Position 3 (block 90) does not close a bracket at block 95."""
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        with pytest.raises(ProofVerificationError, match="smaller or equal"):
            verify_proof(sample_holder_address, root, results, SLOT, 20, 95)

    def test_first_position_empty(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (4, 5))
        with pytest.raises(ProofVerificationError, match="not a checkpoint"):
            verify_proof(sample_holder_address, root, results, SLOT, 0, 95)

    def test_nil_with_balance(self, sample_holder_address, checkpoints):
        storage = {**checkpoints, 4: _word(7, 0)}
        root, results = _prove(storage, sample_holder_address, (3, 4))
        with pytest.raises(ProofVerificationError, match="balance value"):
            verify_proof(sample_holder_address, root, results, SLOT, 30, 95)

    def test_reported_value_differs_from_trie(
        self, sample_holder_address, checkpoints
    ):
        """The value field is checked against the Merkle path."""
        root, results = _prove(checkpoints, sample_holder_address, (3, 4))
        forged = StorageResult(results[0].key, _word(99, 90), results[0].proof)
        with pytest.raises(ProofVerificationError, match="reported"):
            verify_proof(
                sample_holder_address, root, [forged, results[1]], SLOT, 99, 95
            )

    def test_forged_nil(self, sample_holder_address, checkpoints):
        """Claiming position 3 is empty is caught by its Merkle path."""
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        forged = StorageResult(results[1].key, 0, results[1].proof)
        with pytest.raises(ProofVerificationError):
            verify_proof(
                sample_holder_address, root, [results[0], forged], SLOT, 20, 95
            )

    def test_other_holder(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        other = "0x000000073D065Fc33a3050C2d4a8e82EE5C5C25a"
        with pytest.raises(ProofVerificationError):
            verify_proof(other, root, results, SLOT, 20, 87)


class TestVerifyAccountProof:
    """Tests for the account leaf check, using a fake chain bundle."""

    def test_account_storage_root(self, chain, sample_holder_address):
        chain.add_checkpoints(sample_holder_address, SLOT, [(5, 10)])
        raw = chain.get_proof(chain.address, [], 10)
        header = chain.get_block(10)

        verify_account_proof(
            bytes(header["stateRoot"]),
            chain.address,
            [bytes(n) for n in raw["accountProof"]],
            bytes(raw["storageHash"]),
        )

    def test_storage_root_mismatch(self, chain, sample_holder_address):
        chain.add_checkpoints(sample_holder_address, SLOT, [(5, 10)])
        raw = chain.get_proof(chain.address, [], 10)
        header = chain.get_block(10)

        with pytest.raises(ProofVerificationError, match="storage root"):
            verify_account_proof(
                bytes(header["stateRoot"]),
                chain.address,
                [bytes(n) for n in raw["accountProof"]],
                b"\x11" * 32,
            )

    def test_absent_account(self, chain):
        raw = chain.get_proof(chain.address, [], 1)
        header = chain.get_block(1)
        with pytest.raises(ProofVerificationError):
            verify_account_proof(
                bytes(header["stateRoot"]),
                "0x00000000000000000000000000000000000000bb",
                [bytes(n) for n in raw["accountProof"]],
                bytes(raw["storageHash"]),
            )


class TestMalformedLeaves:
    """Leaves that are valid trie nodes but not storage words or accounts."""

    def test_storage_leaf_is_a_list(self, sample_holder_address):
        key = slots.entry_slot(sample_holder_address, SLOT, 1)
        forged = ProofTrie({key: rlp.encode([b"\x01"])})
        result = StorageResult(key, 1, tuple(forged.prove(key)))

        with pytest.raises(ProofVerificationError, match="32 byte word"):
            verify_storage_result(forged.root, result)

    def test_storage_leaf_longer_than_a_word(self, sample_holder_address):
        key = slots.entry_slot(sample_holder_address, SLOT, 1)
        forged = ProofTrie({key: rlp.encode(b"\x01" * 33)})
        result = StorageResult(key, 1, tuple(forged.prove(key)))

        with pytest.raises(ProofVerificationError, match="32 byte word"):
            verify_storage_result(forged.root, result)

    def test_value_outside_word_range(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        results[0] = StorageResult(results[0].key, 2**256, results[0].proof)

        with pytest.raises(ProofVerificationError, match="not a storage word"):
            verify_proof(sample_holder_address, root, results, SLOT, 20, 87)

    def test_negative_value(self, sample_holder_address, checkpoints):
        root, results = _prove(checkpoints, sample_holder_address, (2, 3))
        results[1] = StorageResult(results[1].key, -1, results[1].proof)

        with pytest.raises(ProofVerificationError, match="not a storage word"):
            verify_proof(sample_holder_address, root, results, SLOT, 20, 87)

    def test_account_leaf_is_not_a_list(self, chain):
        address = bytes.fromhex(chain.address[2:])
        forged = ProofTrie({address: rlp.encode(b"\x01")})

        with pytest.raises(ProofVerificationError, match="account leaf"):
            verify_account_proof(
                forged.root, chain.address, forged.prove(address), b"\x00" * 32
            )

    def test_account_leaf_with_wrong_arity(self, chain):
        address = bytes.fromhex(chain.address[2:])
        forged = ProofTrie({address: rlp.encode([b"\x01", b"\x02"])})

        with pytest.raises(ProofVerificationError, match="account leaf"):
            verify_account_proof(
                forged.root, chain.address, forged.prove(address), b"\x00" * 32
            )

    def test_facade_reports_forged_account(
        self, chain, sample_holder_address
    ):
        address = bytes.fromhex(chain.address[2:])
        forged = ProofTrie({address: rlp.encode(b"\x01")})
        bundle = StorageProof(
            address=chain.address,
            account_proof=tuple(forged.prove(address)),
            balance=0,
            code_hash=b"\x00" * 32,
            nonce=0,
            storage_hash=b"\x00" * 32,
            storage_proof=(),
            state_root=forged.root,
            height=1,
        )

        result = MinimeProofs.verify(bundle, sample_holder_address, SLOT, 1, 1)

        assert result.success is False
        assert result.errors[0].source == "verify"
        assert isinstance(result.errors[0].exception, ProofVerificationError)
