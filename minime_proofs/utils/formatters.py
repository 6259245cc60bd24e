"""Shared formatting and file utilities for commands."""

import json
from pathlib import Path
from typing import Any, Dict, Iterable

from rich.console import Console
from rich.table import Table


# Shared console instance
console = Console()


def load_json(file_path: str) -> Dict[str, Any]:
    """Load and parse a JSON file."""
    with open(file_path, "r") as file:
        return json.load(file)


def format_address(address: str, length: int = 10) -> str:
    """
    Format an Ethereum address to show first and last characters.

    Args:
        address: Ethereum address
        length: Total visible characters (default: 10)

    Returns:
        Formatted address like "0x1234...5678"
    """
    if not address:
        return "N/A"
    if len(address) <= length:
        return address
    return f"{address[:6]}...{address[-4:]}"


def save_json_output(
    data: Dict[str, Any],
    filename: str,
    output_dir: str = "output",
    print_path: bool = True,
) -> str:
    """
    Save data to a JSON file with automatic directory creation.

    Args:
        data: Data to save
        filename: Output filename (can include subdirectories)
        output_dir: Base output directory (default: 'output')
        print_path: Whether to print the saved file path

    Returns:
        Full path to saved file
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    filepath = output_path / filename

    with open(filepath, "w") as f:
        json.dump(data, f, indent=2)

    if print_path:
        console.print(f"[cyan]Data saved to:[/cyan] {filepath}")

    return str(filepath)


def create_probes_table(probes: Iterable[Dict[str, Any]]) -> Table:
    """
    Create a Rich table listing what discovery saw at each candidate slot.

    Args:
        probes: CandidateProbe.to_dict() outputs

    Returns:
        Rich Table ready to print
    """
    table = Table(
        show_header=True,
        header_style="bold cyan",
        show_lines=False,
        pad_edge=False,
        box=None,
    )
    table.add_column("Slot", width=4, justify="right")
    table.add_column("Status", width=16)
    table.add_column("Count", width=6, justify="right")
    table.add_column("Balance", width=24, justify="right")
    table.add_column("Block", width=10, justify="right")

    for probe in probes:
        status = probe["status"]
        style = "green" if status == "match" else "dim"
        table.add_row(
            str(probe["candidate"]),
            f"[{style}]{status}[/{style}]",
            str(probe["checkpoint_count"]),
            probe["balance"] or "-",
            str(probe["block_number"]) if probe["block_number"] else "-",
        )
    return table
