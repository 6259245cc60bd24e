"""
MiniMe checkpoint proofs.

A MiniMe token stores, per holder, the whole list of balances the holder
has had as an append-only array of {fromBlock, value} checkpoints. Proving
a balance at a block therefore takes two storage proofs: the checkpoint in
force at the block, and the next array position, which must be either
empty or a checkpoint written after the block.

Examples (checkpoints are block numbers):

    checkpoints [100], block 105
        -> checkpoint 100 and a proof-of-nil for position 2

    checkpoints [70] [80] [90] [100], block 87
        -> checkpoints at positions 2 and 3
"""

from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

from eth_utils import to_checksum_address

from minime_proofs.proofs import slots
from minime_proofs.proofs.checkpoint import CheckpointEntry
from minime_proofs.proofs.types import (
    CandidateProbe,
    CandidateStatus,
    SlotDiscovery,
    StorageProof,
    StorageResult,
)
from minime_proofs.proofs.verifier import verify_proof
from minime_proofs.shared.constants import MinimeConstants
from minime_proofs.shared.context import BACKGROUND, CallContext
from minime_proofs.shared.exceptions import (
    CheckpointNotFound,
    InvariantViolation,
    RemoteReadFailure,
    SlotNotFound,
)
from minime_proofs.shared.logging import get_logger
from minime_proofs.token.erc20 import ERC20Token
from minime_proofs.utils.blockchain import trim_left_zeroes

_logger = get_logger(__name__)


class Minime:
    """Discovers checkpoint slots and builds checkpoint proofs for a token"""

    def __init__(
        self,
        token: ERC20Token,
        discovery_limit: int = MinimeConstants.DISCOVERY_LIMIT,
    ):
        self.token = token
        self.discovery_limit = discovery_limit

    def read_checkpoint_count(
        self, holder: str, slot_index: int, ctx: CallContext = BACKGROUND
    ) -> int:
        """
        Read the length of the holder's checkpoint array at the latest block.

        Zero means the candidate slot is not an array or is an empty one.
        """
        word = self.token.storage_at(
            slots.array_length_slot(holder, slot_index), None, ctx
        )
        return int.from_bytes(trim_left_zeroes(word), byteorder="big")

    def read_checkpoint(
        self,
        holder: str,
        slot_index: int,
        position: int,
        block: Optional[int] = None,
        decimals: Optional[int] = None,
        ctx: CallContext = BACKGROUND,
    ) -> Tuple[CheckpointEntry, bytes]:
        """
        Read and decode the checkpoint at a 1-based array position.

        Args:
            holder: The token holder address
            slot_index: The balances mapping slot index
            position: 1-based index into the checkpoint array
            block: Block to read at, None for latest
            decimals: Token decimals, fetched from the token when None
            ctx: Cancellation context

        Returns:
            The decoded entry and the storage key it was read from
        """
        if decimals is None:
            decimals = self.token.decimals(ctx)
        key = slots.entry_slot(holder, slot_index, position)
        word = self.token.storage_at(key, block, ctx)
        return CheckpointEntry.from_word(word, decimals), key

    def _probe_candidate(
        self,
        holder: str,
        candidate: int,
        oracle: Fraction,
        decimals: int,
        ctx: CallContext,
    ) -> CandidateProbe:
        count = self.read_checkpoint_count(holder, candidate, ctx)
        if count <= 0:
            return CandidateProbe(candidate, CandidateStatus.EMPTY_ARRAY)

        # Known leniency: any failure reading the top entry only rules this
        # candidate out, so a malformed node answer looks like "not this slot"
        try:
            entry, _ = self.read_checkpoint(
                holder, candidate, count, None, decimals, ctx
            )
        except RemoteReadFailure as e:
            _logger.warning(
                f"Skipping slot {candidate} for {holder}: {e.message}"
            )
            return CandidateProbe(
                candidate, CandidateStatus.READ_FAILED, count, error=e
            )

        if entry.block_number == 0:
            status = CandidateStatus.NO_CHECKPOINT
        elif entry.balance == oracle:
            status = CandidateStatus.MATCH
        else:
            status = CandidateStatus.BALANCE_MISMATCH
        return CandidateProbe(candidate, status, count, entry)

    def discover_slot(
        self, holder: str, ctx: CallContext = BACKGROUND
    ) -> SlotDiscovery:
        """
        Find the mapping slot index of the checkpoint balances.

        Candidates 0..discovery_limit-1 are tried in order. The last
        checkpoint of the holder's array always equals the current balance,
        so the first candidate whose top entry is a real checkpoint holding
        the balanceOf() value is the answer.

        Raises:
            SlotNotFound: No candidate matched
            RemoteReadFailure: balanceOf, decimals or a length read failed
        """
        holder = to_checksum_address(holder)
        decimals = self.token.decimals(ctx)
        oracle = self.token.balance(holder, ctx)
        probes: List[CandidateProbe] = []

        for candidate in range(self.discovery_limit):
            probe = self._probe_candidate(
                holder, candidate, oracle, decimals, ctx
            )
            probes.append(probe)
            _logger.debug(
                f"Slot {candidate} for {holder}: {probe.status.value}"
            )
            if probe.status is CandidateStatus.MATCH:
                _logger.info(
                    f"Found checkpoint slot {candidate} for {holder} "
                    f"on {self.token.address}"
                )
                return SlotDiscovery(candidate, probe.entry.balance, probes)

        raise SlotNotFound(
            "storage slot not found",
            context={
                "token": self.token.address,
                "holder": holder,
                "discovery_limit": self.discovery_limit,
                "balance": str(oracle),
                "probes": [p.to_dict() for p in probes],
            },
        )

    def select_positions(
        self,
        holder: str,
        slot_index: int,
        block: int,
        ctx: CallContext = BACKGROUND,
    ) -> Tuple[int, int]:
        """
        Select the pair of consecutive array positions proving the balance
        of `holder` at `block`.

        The first position holds the newest checkpoint written at or before
        `block`; the second is either empty at `block` or holds a checkpoint
        written after it.

        Raises:
            CheckpointNotFound: The holder had no checkpoint at `block`
            InvariantViolation: The closing position is neither empty nor newer
        """
        holder = to_checksum_address(holder)
        context = {
            "token": self.token.address,
            "holder": holder,
            "slot_index": slot_index,
            "block": block,
        }

        # The array only grows, so its latest length bounds every past one
        count = self.read_checkpoint_count(holder, slot_index, ctx)
        if count <= 0:
            raise CheckpointNotFound(
                "checkpoint not found: empty checkpoint array", context
            )

        decimals = self.token.decimals(ctx)

        def read(position: int) -> CheckpointEntry:
            entry, _ = self.read_checkpoint(
                holder, slot_index, position, block, decimals, ctx
            )
            return entry

        # The newest known checkpoint already covers the block: pair it with
        # a proof-of-nil for the position after it
        last = read(count)
        if last.block_number != 0 and block >= last.block_number:
            following = read(count + 1)
            if not following.is_empty:
                raise InvariantViolation(
                    "proof of nil is not empty past the array end",
                    {**context, "position": count + 1},
                )
            return count, count + 1

        # Walk back from the end. Exit when position i - 1 holds a checkpoint
        # written at or before the block; position i was read in the
        # previous step and closes the bracket.
        current = last
        for i in range(count, 1, -1):
            previous = read(i - 1)
            if previous.block_number != 0 and previous.block_number <= block:
                _check_bracket_end(current, block, {**context, "position": i})
                return i - 1, i
            current = previous

        raise CheckpointNotFound("checkpoint not found", context)

    def get_proof(
        self,
        holder: str,
        slot_index: int,
        block: int,
        ctx: CallContext = BACKGROUND,
    ) -> StorageProof:
        """
        Build the two-key storage proof of the holder's balance at `block`.
        """
        first, second = self.select_positions(holder, slot_index, block, ctx)
        keys = [
            slots.entry_slot(holder, slot_index, first),
            slots.entry_slot(holder, slot_index, second),
        ]
        _logger.info(
            f"Proving {holder} at block {block} with checkpoint positions "
            f"{first} and {second}"
        )
        return self.token.get_proof(keys, block, ctx)

    def verify_proof(
        self,
        holder: str,
        storage_root: bytes,
        proofs: Sequence[StorageResult],
        slot_index: int,
        target_balance: int,
        target_block: int,
    ) -> None:
        """Verify a MiniMe storage proof, raising ProofVerificationError"""
        verify_proof(
            holder,
            storage_root,
            proofs,
            slot_index,
            target_balance,
            target_block,
        )


def _check_bracket_end(entry: CheckpointEntry, block: int, context) -> None:
    if entry.block_number == 0:
        if entry.raw_balance != 0:
            raise InvariantViolation(
                "proof of nil has a balance value", context
            )
    elif entry.block_number <= block:
        raise InvariantViolation("proof of nil has a block value", context)
