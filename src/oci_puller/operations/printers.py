"""
Human-readable output formatting.

Centralizes all CLI output so commands stay thin.
"""
from __future__ import annotations

from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..puller import PullResult

_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)


def print_pull_summary(result: PullResult, verbose: bool = False) -> None:
    """
    Print what was written for one image.

    Args:
        result: Pull result to display
        verbose: Also list every blob
    """
    resolved = result.resolved
    _console.print(f"[bold]Image:[/] {escape(str(result.reference))}")
    _console.print(f"[bold]Manifest:[/] [dim]{resolved.digest}[/] ({escape(resolved.media_type)})")
    if resolved.chain:
        platform = resolved.chain[-1].platform
        if platform is not None:
            _console.print(f"[bold]Platform:[/] {escape(platform.describe())}")
    _console.print(f"[bold]Blobs:[/] {len(result.blobs)} ({_format_bytes(result.total_size)})")

    if verbose:
        table = Table(title="Blobs")
        table.add_column("Digest", style="cyan")
        table.add_column("Size", style="yellow", justify="right")
        for blob in result.blobs:
            table.add_row(blob.digest, _format_bytes(blob.size))
        _console.print(table)


def print_completion(dest: str, results: List[PullResult]) -> None:
    """Print the closing message with a hint on loading the layout."""
    _console.print(f"Download of {len(results)} image(s) into '{escape(dest)}' complete.")
    _console.print("Use something like the following to load the result into a containerd instance:")
    _console.print(f"  tar -cC '{escape(dest)}' . | nerdctl load")


def print_error(message: str) -> None:
    """Print a single-line diagnostic on stderr."""
    line = " ".join(message.split())
    _err_console.print(f"[bold red]error:[/] {escape(line)}")


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 KB")
    """
    if size_bytes == 0:
        return "0 B"
    elif size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
