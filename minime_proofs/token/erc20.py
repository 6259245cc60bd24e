"""
ERC-20 token binding.

Wraps the optional ERC-20 metadata calls {name, symbol, decimals,
totalSupply}, balanceOf, raw storage reads and eth_getProof for one token
contract. Every remote call takes a CallContext and is wrapped so that node
and transport failures surface as RemoteReadFailure.
"""

from fractions import Fraction
from typing import Any, Callable, Optional, Sequence

from eth_utils import to_checksum_address
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, Web3Exception

from minime_proofs.proofs.types import StorageProof, StorageResult, TokenData
from minime_proofs.shared.constants import MinimeConstants
from minime_proofs.shared.context import BACKGROUND, CallContext
from minime_proofs.shared.exceptions import (
    MetadataUnavailable,
    RemoteReadFailure,
)
from minime_proofs.shared.logging import get_logger
from minime_proofs.shared.services.resource_manager import resource_manager
from minime_proofs.utils.blockchain import balance_to_rat, to_block_arg

_logger = get_logger(__name__)

# Transport errors (requests raises OSError subclasses) and node/ABI errors
REMOTE_ERRORS = (Web3Exception, OSError)


class ERC20Token:
    """
    Read-only binding of a Web3 connection to an ERC-20 like contract.

    The binding holds no mutable state, so a single instance can be shared
    by concurrent proof requests for different holders.
    """

    def __init__(self, w3: Web3, token_address: str, contract: Any = None):
        self.w3 = w3
        self.address = to_checksum_address(token_address)
        self.contract = contract or w3.eth.contract(
            address=self.address, abi=resource_manager.load_abi("erc20")
        )

    def _remote(
        self,
        ctx: CallContext,
        operation: str,
        call: Callable[[], Any],
        **context: Any,
    ) -> Any:
        ctx.check(operation)
        try:
            return call()
        except REMOTE_ERRORS as e:
            raise RemoteReadFailure(
                f"{operation} failed: {e}",
                context={"token": self.address, **context},
            ) from e

    def name(self, ctx: CallContext = BACKGROUND) -> str:
        """Wraps the name() function contract call"""
        return self._remote(ctx, "name", self.contract.functions.name().call)

    def symbol(self, ctx: CallContext = BACKGROUND) -> str:
        """Wraps the symbol() function contract call"""
        return self._remote(
            ctx, "symbol", self.contract.functions.symbol().call
        )

    def decimals(self, ctx: CallContext = BACKGROUND) -> int:
        """Wraps the decimals() function contract call"""
        try:
            return self._remote(
                ctx, "decimals", self.contract.functions.decimals().call
            )
        except RemoteReadFailure as e:
            raise MetadataUnavailable(
                f"unable to get token decimals data: {e.message}",
                context=e.context,
            ) from e.__cause__

    def total_supply(self, ctx: CallContext = BACKGROUND) -> int:
        """Wraps the totalSupply() function contract call"""
        try:
            return self._remote(
                ctx,
                "totalSupply",
                self.contract.functions.totalSupply().call,
            )
        except RemoteReadFailure as e:
            raise MetadataUnavailable(
                f"unable to get token supply data: {e.message}",
                context=e.context,
            ) from e.__cause__

    def raw_balance(self, holder: str, ctx: CallContext = BACKGROUND) -> int:
        """Wraps the balanceOf() function contract call"""
        holder = to_checksum_address(holder)
        return self._remote(
            ctx,
            "balanceOf",
            self.contract.functions.balanceOf(holder).call,
            holder=holder,
        )

    def get_token_data(self, ctx: CallContext = BACKGROUND) -> TokenData:
        """
        Get name, symbol, decimals and total supply.

        name and symbol are cosmetic: a contract returning no data for them
        gets a placeholder. decimals and totalSupply are required.
        """
        name = self._optional_text(
            self.name, ctx, MinimeConstants.UNKNOWN_NAME
        )
        symbol = self._optional_text(
            self.symbol, ctx, MinimeConstants.UNKNOWN_SYMBOL
        )
        return {
            "address": self.address,
            "name": name,
            "symbol": symbol,
            "decimals": self.decimals(ctx),
            "total_supply": self.total_supply(ctx),
        }

    def _optional_text(
        self,
        getter: Callable[[CallContext], str],
        ctx: CallContext,
        placeholder: str,
    ) -> str:
        try:
            return getter(ctx)
        except RemoteReadFailure as e:
            if isinstance(e.__cause__, BadFunctionCallOutput):
                _logger.debug(
                    f"{self.address} returned no data for {placeholder}"
                )
                return placeholder
            raise

    def balance(self, holder: str, ctx: CallContext = BACKGROUND) -> Fraction:
        """Current balance of `holder` scaled by the token decimals"""
        raw = self.raw_balance(holder, ctx)
        return balance_to_rat(raw, self.decimals(ctx))

    def storage_at(
        self,
        key: bytes,
        block: Optional[int] = None,
        ctx: CallContext = BACKGROUND,
    ) -> bytes:
        """Read one storage word of the token at `block` (None for latest)"""
        word = self._remote(
            ctx,
            "eth_getStorageAt",
            lambda: self.w3.eth.get_storage_at(
                self.address,
                int.from_bytes(key, byteorder="big"),
                block_identifier=to_block_arg(block),
            ),
            key="0x" + bytes(key).hex(),
            block=block,
        )
        return bytes(word)

    def get_proof(
        self,
        keys: Sequence[bytes],
        block: Optional[int] = None,
        ctx: CallContext = BACKGROUND,
    ) -> StorageProof:
        """
        Call eth_getProof for the token and `keys`.

        The block is resolved to its header first so that the proof and the
        returned state root refer to the same block even when `block` is
        None (latest).
        """
        header = self._remote(
            ctx,
            "eth_getBlockByNumber",
            lambda: self.w3.eth.get_block(to_block_arg(block)),
            block=block,
        )
        height = int(header["number"])
        raw = self._remote(
            ctx,
            "eth_getProof",
            lambda: self.w3.eth.get_proof(
                self.address,
                [int.from_bytes(k, byteorder="big") for k in keys],
                block_identifier=height,
            ),
            keys=["0x" + bytes(k).hex() for k in keys],
            block=height,
        )
        return _to_storage_proof(raw, bytes(header["stateRoot"]), height)


def _as_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16)
    return int.from_bytes(bytes(value), byteorder="big")


def _to_storage_proof(raw: Any, state_root: bytes, height: int) -> StorageProof:
    return StorageProof(
        address=to_checksum_address(raw["address"]),
        account_proof=tuple(bytes(HexBytes(n)) for n in raw["accountProof"]),
        balance=_as_int(raw["balance"]),
        code_hash=bytes(HexBytes(raw["codeHash"])),
        nonce=_as_int(raw["nonce"]),
        storage_hash=bytes(HexBytes(raw["storageHash"])),
        storage_proof=tuple(
            StorageResult(
                key=bytes(HexBytes(item["key"])).rjust(32, b"\x00"),
                value=_as_int(item["value"]),
                proof=tuple(bytes(HexBytes(n)) for n in item["proof"]),
            )
            for item in raw["storageProof"]
        ),
        state_root=state_root,
        height=height,
    )
