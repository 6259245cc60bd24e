from minime_proofs.proofs.manager import MinimeProofs
from minime_proofs.proofs.minime import Minime
from minime_proofs.proofs.types import (
    CandidateProbe,
    CandidateStatus,
    SlotDiscovery,
    StorageProof,
    StorageResult,
    TokenData,
)
from minime_proofs.proofs.verifier import verify_proof

__all__ = [
    "MinimeProofs",
    "Minime",
    "CandidateProbe",
    "CandidateStatus",
    "SlotDiscovery",
    "StorageProof",
    "StorageResult",
    "TokenData",
    "verify_proof",
]
