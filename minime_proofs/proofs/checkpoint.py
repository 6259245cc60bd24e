"""Packing and parsing of MiniMe checkpoint storage words"""

from dataclasses import dataclass
from fractions import Fraction
from typing import Union

from minime_proofs.shared.constants import MinimeConstants
from minime_proofs.utils.blockchain import balance_to_rat, to_bytes32


@dataclass(frozen=True)
class CheckpointEntry:
    """
    One element of a holder's checkpoint array.

    Attributes:
        balance: Token balance scaled by the token decimals
        raw_balance: Balance in the token's smallest unit
        block_number: Block from which the balance applies
    """

    balance: Fraction
    raw_balance: int
    block_number: int

    @property
    def is_empty(self) -> bool:
        """True for the all-zero word of an unset array position"""
        return self.raw_balance == 0 and self.block_number == 0

    @classmethod
    def from_word(cls, word: bytes, decimals: int) -> "CheckpointEntry":
        """Parse a raw storage word using the token decimals"""
        word = to_bytes32(bytes(word))
        raw_balance = int.from_bytes(
            word[MinimeConstants.CHECKPOINT_VALUE_BYTES], byteorder="big"
        )
        block_number = int.from_bytes(
            word[MinimeConstants.CHECKPOINT_BLOCK_BYTES], byteorder="big"
        )
        return cls(
            balance=balance_to_rat(raw_balance, decimals),
            raw_balance=raw_balance,
            block_number=block_number,
        )

    @classmethod
    def from_balance(
        cls,
        balance: Union[Fraction, int, str],
        block_number: int,
        decimals: int,
    ) -> "CheckpointEntry":
        """Build an entry from a scaled balance such as Fraction("12.5")"""
        raw = Fraction(balance) * 10**decimals
        if raw.denominator != 1:
            raise ValueError(
                f"Balance {balance} is not representable with {decimals} decimals"
            )
        return cls(
            balance=Fraction(balance),
            raw_balance=int(raw),
            block_number=block_number,
        )

    def to_word(self) -> bytes:
        """Pack the entry back into its 32 byte storage word"""
        return pack_checkpoint(self.raw_balance, self.block_number)


def pack_checkpoint(raw_balance: int, block_number: int) -> bytes:
    """
    Pack `struct Checkpoint { uint128 fromBlock; uint128 value; }` into one
    word. Solidity places the first member in the low-order bytes.
    """
    for name, value in (("balance", raw_balance), ("block", block_number)):
        if not 0 <= value <= MinimeConstants.UINT128_MAX:
            raise ValueError(f"Checkpoint {name} {value} does not fit uint128")
    return raw_balance.to_bytes(16, byteorder="big") + block_number.to_bytes(
        16, byteorder="big"
    )
