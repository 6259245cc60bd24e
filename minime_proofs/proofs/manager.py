from typing import Optional

from minime_proofs.proofs.minime import Minime
from minime_proofs.proofs.types import SlotDiscovery, StorageProof, TokenData
from minime_proofs.proofs.verifier import verify_storage_proof_bundle
from minime_proofs.shared.constants import MinimeConstants
from minime_proofs.shared.context import BACKGROUND, CallContext
from minime_proofs.shared.exceptions import (
    ConfigurationException,
    InvariantViolation,
    NonRetryableException,
    OperationCancelled,
    RetryableException,
)
from minime_proofs.shared.logging import get_logger
from minime_proofs.shared.results import (
    ErrorSeverity,
    ProcessingError,
    Result,
)
from minime_proofs.shared.retry import (
    RPC_RETRY_CONFIG,
    RetryConfig,
    retry_sync_operation,
)
from minime_proofs.shared.services.web3_service import Web3Service
from minime_proofs.token.erc20 import ERC20Token

_logger = get_logger(__name__)


def _severity(error: Exception) -> ErrorSeverity:
    if isinstance(error, InvariantViolation):
        return ErrorSeverity.CRITICAL
    return ErrorSeverity.ERROR


def _failure(source: str, error: Exception, context: dict) -> Result:
    if isinstance(
        error, (RetryableException, NonRetryableException, OperationCancelled)
    ):
        context = {**context, **error.context}
    _logger.error(f"{source} failed: {error}")
    return Result.fail(
        ProcessingError(
            source=source,
            message=str(error),
            severity=_severity(error),
            context=context,
            exception=error,
        )
    )


class MinimeProofs:
    """Proof facade for one MiniMe token on one chain"""

    def __init__(
        self,
        chain_id: int,
        token_address: str,
        discovery_limit: int = MinimeConstants.DISCOVERY_LIMIT,
        web3_service: Optional[Web3Service] = None,
        retry_config: RetryConfig = RPC_RETRY_CONFIG,
    ):
        self.chain_id = chain_id
        self.retry_config = retry_config
        if web3_service is None:
            try:
                web3_service = Web3Service.get_instance(chain_id)
            except ValueError as e:
                raise ConfigurationException(str(e)) from e
        self.web3_service = web3_service
        self.token = ERC20Token(
            web3_service.w3,
            token_address,
            contract=web3_service.get_contract(token_address, "erc20"),
        )
        self.minime = Minime(self.token, discovery_limit)

    def get_token_data(
        self, ctx: CallContext = BACKGROUND, max_retries: int = 1
    ) -> Result[TokenData]:
        """
        Fetch the token name, symbol, decimals and total supply.

        Returns:
            Result[TokenData]: Success with metadata, or failure with error
        """
        try:
            data = retry_sync_operation(
                self.token.get_token_data,
                ctx,
                config=self.retry_config.with_attempts(max_retries),
                call_context=ctx,
                operation_name=f"token_data_{self.token.address[:10]}",
            )
            return Result.ok(data)
        except Exception as e:
            return _failure("token_data", e, {"token": self.token.address})

    def discover_slot(
        self, holder: str, ctx: CallContext = BACKGROUND, max_retries: int = 1
    ) -> Result[SlotDiscovery]:
        """
        Find the checkpoint mapping slot index using the holder's balance.

        Args:
            holder: Address of a holder with a non-zero balance
            ctx: Cancellation context
            max_retries: Attempts for the whole discovery on RPC failures

        Returns:
            Result[SlotDiscovery]: Success with the slot index, or failure
        """
        context = {"token": self.token.address, "holder": holder}
        try:
            discovery = retry_sync_operation(
                self.minime.discover_slot,
                holder,
                ctx,
                config=self.retry_config.with_attempts(max_retries),
                call_context=ctx,
                operation_name=f"discover_slot_{holder[:10]}",
            )
        except Exception as e:
            return _failure("discover_slot", e, context)

        result = Result.ok(discovery)
        for probe in discovery.probes:
            if probe.error is not None:
                result.add_warning(
                    source="discover_slot",
                    message=f"Slot {probe.candidate} skipped: {probe.error}",
                    context={**context, "candidate": probe.candidate},
                )
        return result

    def get_proof(
        self,
        holder: str,
        slot_index: int,
        block_number: int,
        ctx: CallContext = BACKGROUND,
        max_retries: int = 1,
    ) -> Result[StorageProof]:
        """
        Build the storage proof of a holder balance at a block.

        Args:
            holder: The token holder address
            slot_index: The discovered checkpoint mapping slot index
            block_number: The block to prove the balance at
            ctx: Cancellation context
            max_retries: Attempts on RPC failures

        Returns:
            Result[StorageProof]: Success with the proof, or failure
        """
        context = {
            "token": self.token.address,
            "holder": holder,
            "slot_index": slot_index,
            "block": block_number,
        }
        try:
            proof = retry_sync_operation(
                self.minime.get_proof,
                holder,
                slot_index,
                block_number,
                ctx,
                config=self.retry_config.with_attempts(max_retries),
                call_context=ctx,
                operation_name=f"minime_proof_{holder[:10]}",
            )
            return Result.ok(proof)
        except Exception as e:
            return _failure("minime_proof", e, context)

    @staticmethod
    def verify(
        proof: StorageProof,
        holder: str,
        slot_index: int,
        target_balance: int,
        target_block: int,
    ) -> Result[bool]:
        """
        Verify a proof bundle offline, from the state root down.

        Returns:
            Result[bool]: Success(True) when the proof holds, or failure
        """
        try:
            verify_storage_proof_bundle(
                proof, holder, slot_index, target_balance, target_block
            )
            return Result.ok(True)
        except NonRetryableException as e:
            return _failure(
                "verify",
                e,
                {
                    "holder": holder,
                    "slot_index": slot_index,
                    "balance": target_balance,
                    "block": target_block,
                },
            )
