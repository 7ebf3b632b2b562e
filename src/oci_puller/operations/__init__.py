"""
Operations package - CLI support between the typer app and the puller.

Centralizes error-to-exit-code mapping and output formatting so CLI commands
stay thin and testable.
"""
from .mappers import exit_code_for, root_cause, run_and_exit

__all__ = ["exit_code_for", "root_cause", "run_and_exit"]
