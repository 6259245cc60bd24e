#!/usr/bin/env python3
"""
Unified CLI for MiniMe Proofs.

Examples:
  - Token metadata
    minime token-info --token 0x... --chain-id 1

  - Slot discovery
    minime discover-slot --token 0x... --holder 0x... [--limit 20] [--json]

  - Proofs
    minime proof --token 0x... --holder 0x... --slot 8 --block-number 18500000
    minime verify --proof-file output/minime_proof_18500000.json --balance 1000000000000000000
"""

import argparse
from typing import List, Optional

from eth_utils import to_checksum_address

from minime_proofs.commands.helpers import handle_command_error, unwrap_or_exit
from minime_proofs.commands.validation import (
    validate_block_number,
    validate_chain_id,
    validate_eth_address,
    validate_slot_index,
)
from minime_proofs.proofs import MinimeProofs
from minime_proofs.proofs.checkpoint import CheckpointEntry
from minime_proofs.proofs.types import StorageProof
from minime_proofs.shared.constants import MinimeConstants
from minime_proofs.shared.context import BACKGROUND, CallContext
from minime_proofs.utils.blockchain import encode_rlp_proofs, to_bytes32
from minime_proofs.utils.formatters import (
    console,
    create_probes_table,
    format_address,
    load_json,
    save_json_output,
)


def _context(args: argparse.Namespace) -> CallContext:
    if args.timeout:
        return CallContext.with_timeout(args.timeout)
    return BACKGROUND


def _proofs(args: argparse.Namespace, **kwargs) -> MinimeProofs:
    validate_chain_id(args.chain_id)
    token = validate_eth_address(args.token, "token")
    return MinimeProofs(args.chain_id, token, **kwargs)


def cmd_token_info(args: argparse.Namespace) -> None:
    vm = _proofs(args)
    data = unwrap_or_exit(
        vm.get_token_data(_context(args), max_retries=args.retries)
    )

    if args.json:
        out = {**data, "total_supply": str(data["total_supply"])}
        filename = args.output or f"token_{data['address']}.json"
        save_json_output(out, filename)
        return

    console.print(f"[bold]{data['name']}[/bold] ({data['symbol']})")
    console.print(f"Address: {data['address']}")
    console.print(f"Decimals: {data['decimals']}")
    console.print(f"Total supply (raw): {data['total_supply']}")


def cmd_discover_slot(args: argparse.Namespace) -> None:
    holder = validate_eth_address(args.holder, "holder")
    vm = _proofs(args, discovery_limit=args.limit)
    discovery = unwrap_or_exit(
        vm.discover_slot(holder, _context(args), max_retries=args.retries)
    )

    if args.json:
        filename = args.output or f"slot_{vm.token.address}.json"
        save_json_output(
            {"token": vm.token.address, "holder": holder, **discovery.to_dict()},
            filename,
        )
        return

    console.print(
        create_probes_table(p.to_dict() for p in discovery.probes)
    )
    console.print(
        f"[green]Checkpoint slot for {format_address(vm.token.address)}: "
        f"{discovery.slot_index}[/green] (balance {discovery.balance})"
    )


def cmd_proof(args: argparse.Namespace) -> None:
    holder = validate_eth_address(args.holder, "holder")
    slot_index = validate_slot_index(args.slot)
    block_number = validate_block_number(args.block_number)
    vm = _proofs(args)

    proof = unwrap_or_exit(
        vm.get_proof(
            holder,
            slot_index,
            block_number,
            _context(args),
            max_retries=args.retries,
        )
    )
    checkpoint = CheckpointEntry.from_word(
        to_bytes32(proof.storage_proof[0].value), 0
    )
    account_proof, storage_proof = encode_rlp_proofs(
        proof.account_proof, [r.proof for r in proof.storage_proof]
    )

    output_data = {
        "token": vm.token.address,
        "holder": to_checksum_address(holder),
        "slot_index": slot_index,
        "block_number": block_number,
        "raw_balance": str(checkpoint.raw_balance),
        "checkpoint_block": checkpoint.block_number,
        "proof": proof.to_dict(),
        "rlp_account_proof": "0x" + account_proof.hex(),
        "rlp_storage_proof": "0x" + storage_proof.hex(),
    }
    filename = args.output or f"minime_proof_{block_number}.json"
    save_json_output(output_data, filename)

    console.print(
        f"Proof generated for {format_address(holder)} at block "
        f"{block_number} (raw balance {checkpoint.raw_balance})"
    )


def cmd_verify(args: argparse.Namespace) -> None:
    data = load_json(args.proof_file)
    proof = StorageProof.from_dict(data["proof"])
    holder = validate_eth_address(args.holder or data["holder"], "holder")
    slot_index = validate_slot_index(
        args.slot if args.slot is not None else int(data["slot_index"])
    )
    block_number = validate_block_number(
        args.block_number or int(data["block_number"])
    )
    balance = int(args.balance, 0)

    unwrap_or_exit(
        MinimeProofs.verify(proof, holder, slot_index, balance, block_number)
    )
    console.print(
        f"[green]✓ Proof valid:[/green] {format_address(holder)} held "
        f"{balance} at block {block_number}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minime",
        description="Unified CLI for MiniMe token storage proofs",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_network_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--token", type=str, required=True)
        p.add_argument("--chain-id", type=int, default=1)
        p.add_argument(
            "--timeout", type=float, help="Deadline for the whole command (s)"
        )
        p.add_argument(
            "--retries", type=int, default=1, help="Attempts on RPC failures"
        )
        p.add_argument("--output", type=str, help="Output filename")

    # token-info
    p_ti = sub.add_parser("token-info", help="Show ERC-20 token metadata")
    add_network_args(p_ti)
    p_ti.add_argument("--json", action="store_true", help="Output JSON")
    p_ti.set_defaults(func=cmd_token_info)

    # discover-slot
    p_ds = sub.add_parser(
        "discover-slot",
        help="Find the checkpoint mapping slot using a holder balance",
    )
    add_network_args(p_ds)
    p_ds.add_argument("--holder", type=str, required=True)
    p_ds.add_argument(
        "--limit", type=int, default=MinimeConstants.DISCOVERY_LIMIT
    )
    p_ds.add_argument("--json", action="store_true", help="Output JSON")
    p_ds.set_defaults(func=cmd_discover_slot)

    # proof
    p_pr = sub.add_parser("proof", help="Generate a balance storage proof")
    add_network_args(p_pr)
    p_pr.add_argument("--holder", type=str, required=True)
    p_pr.add_argument("--slot", type=int, required=True)
    p_pr.add_argument("--block-number", type=int, required=True)
    p_pr.set_defaults(func=cmd_proof)

    # verify
    p_vf = sub.add_parser("verify", help="Verify a saved proof offline")
    p_vf.add_argument("--proof-file", type=str, required=True)
    p_vf.add_argument(
        "--balance",
        type=str,
        required=True,
        help="Claimed raw balance (decimal or 0x hex)",
    )
    p_vf.add_argument("--holder", type=str)
    p_vf.add_argument("--slot", type=int)
    p_vf.add_argument("--block-number", type=int)
    p_vf.set_defaults(func=cmd_verify)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except Exception as e:
        handle_command_error(e)


if __name__ == "__main__":
    main()
