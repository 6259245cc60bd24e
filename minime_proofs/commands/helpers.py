"""Shared command helpers and utilities."""

import sys
from typing import Callable, Optional, TypeVar

from rich import print as rprint

from minime_proofs.shared.exceptions import (
    NonRetryableException,
    OperationCancelled,
)
from minime_proofs.shared.results import Result

T = TypeVar("T")


def handle_command_error(
    error: Exception, show_usage_fn: Optional[Callable[[], None]] = None
) -> None:
    """
    Standard error handling for commands.

    Args:
        error: The exception that occurred
        show_usage_fn: Optional function to display usage instructions
    """
    if isinstance(error, (ValueError, NonRetryableException)):
        rprint(f"[red]Error:[/red] {str(error)}")
    elif isinstance(error, OperationCancelled):
        rprint(f"[yellow]Cancelled:[/yellow] {str(error)}")
    else:
        rprint(f"[red]Unexpected error:[/red] {str(error)}")

    if show_usage_fn:
        show_usage_fn()

    sys.exit(1)


def unwrap_or_exit(result: Result[T]) -> T:
    """Return the data of a successful result, or report its error and exit"""
    if result.has_warnings():
        warnings = result.warnings()
        rprint(f"[yellow]{len(warnings)} warning(s):[/yellow]")
        for warning in warnings:
            rprint(f"  - {warning.message}")
    try:
        return result.unwrap()
    except Exception as e:
        handle_command_error(e)
