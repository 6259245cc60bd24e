"""Types returned by the token binding and the proof engine"""

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from hexbytes import HexBytes

from minime_proofs.proofs.checkpoint import CheckpointEntry


class TokenData(TypedDict):
    """ERC-20 token metadata."""

    address: str  # Token contract address
    name: str  # "unknown-name" when the contract has no name()
    symbol: str  # "unknown-symbol" when the contract has no symbol()
    decimals: int
    total_supply: int  # Raw total supply, not scaled


def _hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


@dataclass(frozen=True)
class StorageResult:
    """Merkle proof of one storage key."""

    key: bytes
    value: int
    proof: Tuple[bytes, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": _hex(self.key),
            "value": hex(self.value),
            "proof": [_hex(node) for node in self.proof],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageResult":
        value = data["value"]
        return cls(
            key=bytes(HexBytes(data["key"])).rjust(32, b"\x00"),
            value=int(value, 16) if isinstance(value, str) else int(value),
            proof=tuple(bytes(HexBytes(node)) for node in data["proof"]),
        )


@dataclass(frozen=True)
class StorageProof:
    """
    Result of eth_getProof for a token contract, stitched with the state
    root and number of the block it was taken at.
    """

    address: str
    account_proof: Tuple[bytes, ...]
    balance: int
    code_hash: bytes
    nonce: int
    storage_hash: bytes
    storage_proof: Tuple[StorageResult, ...]
    state_root: bytes
    height: int

    @property
    def keys(self) -> Tuple[bytes, ...]:
        return tuple(result.key for result in self.storage_proof)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON serializable dictionary"""
        return {
            "address": self.address,
            "accountProof": [_hex(node) for node in self.account_proof],
            "balance": hex(self.balance),
            "codeHash": _hex(self.code_hash),
            "nonce": hex(self.nonce),
            "storageHash": _hex(self.storage_hash),
            "storageProof": [r.to_dict() for r in self.storage_proof],
            "stateRoot": _hex(self.state_root),
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageProof":
        """Build from to_dict() output or from a raw eth_getProof response"""

        def _int(value: Any) -> int:
            return int(value, 16) if isinstance(value, str) else int(value)

        return cls(
            address=data["address"],
            account_proof=tuple(
                bytes(HexBytes(node)) for node in data["accountProof"]
            ),
            balance=_int(data.get("balance", 0)),
            code_hash=bytes(HexBytes(data["codeHash"])),
            nonce=_int(data.get("nonce", 0)),
            storage_hash=bytes(HexBytes(data["storageHash"])),
            storage_proof=tuple(
                StorageResult.from_dict(r) for r in data["storageProof"]
            ),
            state_root=bytes(HexBytes(data["stateRoot"])),
            height=_int(data["height"]),
        )


class CandidateStatus(Enum):
    """Outcome of probing one mapping slot index during discovery."""

    MATCH = "match"
    EMPTY_ARRAY = "empty_array"  # Length word is zero
    NO_CHECKPOINT = "no_checkpoint"  # Top entry has block number zero
    BALANCE_MISMATCH = "balance_mismatch"
    READ_FAILED = "read_failed"  # Tolerated, see Minime.discover_slot


@dataclass
class CandidateProbe:
    """What discovery observed at one candidate slot index."""

    candidate: int
    status: CandidateStatus
    checkpoint_count: int = 0
    entry: Optional[CheckpointEntry] = None
    error: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate": self.candidate,
            "status": self.status.value,
            "checkpoint_count": self.checkpoint_count,
            "balance": str(self.entry.balance) if self.entry else None,
            "block_number": self.entry.block_number if self.entry else None,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class SlotDiscovery:
    """Discovered mapping slot index with the balance that matched."""

    slot_index: int
    balance: Fraction
    probes: List[CandidateProbe] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot_index": self.slot_index,
            "balance": str(self.balance),
            "probes": [p.to_dict() for p in self.probes],
        }
