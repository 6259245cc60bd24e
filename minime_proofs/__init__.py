"""MiniMe Proofs - Python SDK for MiniMe token balance storage proofs."""

__version__ = "0.1.0"

from .proofs import Minime, MinimeProofs
from .token.erc20 import ERC20Token

__all__ = ["Minime", "MinimeProofs", "ERC20Token"]
