"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and a CLI command wrapper
so every failure leaves the program the same way: one diagnostic line on
stderr and a non-zero exit code.
"""
from __future__ import annotations

from typing import Callable, TypeVar

import typer

T = TypeVar('T')

# Exit code per root cause
EXIT_CODES = {
    "ValueError": 2,
    "AuthError": 3,
    "ManifestFetchError": 4,
    "UnknownSchemaVersionError": 5,
    "UnsupportedMediaTypeError": 5,
    "PlatformNotFoundError": 6,
    "BlobDownloadError": 7,
    "DigestMismatchError": 7,
    "LayoutError": 8,
    "PullCancelled": 130,
}

FALLBACK_EXIT_CODE = 1


def root_cause(exc: BaseException) -> BaseException:
    """Unwrap ImagePullError to the error that actually stopped the pull."""
    while type(exc).__name__ == "ImagePullError" and getattr(exc, "cause", None) is not None:
        exc = exc.cause
    return exc


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 2: Malformed image reference or settings (ValueError)
    - 3: Token service failure (AuthError)
    - 4: Manifest fetch / decode failure (ManifestFetchError)
    - 5: Unknown schema version or unsupported media type
    - 6: No manifest for the target platform (PlatformNotFoundError)
    - 7: Blob download or digest failure
    - 8: Local layout I/O failure (LayoutError)
    - 130: Cancelled
    - 1: Anything else

    Args:
        exc: Exception to map (ImagePullError is unwrapped first)
    """
    return EXIT_CODES.get(type(root_cause(exc)).__name__, FALLBACK_EXIT_CODE)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function; on failure prints a single-line diagnostic
    and raises typer.Exit with the mapped exit code.

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except KeyboardInterrupt as e:
        from .printers import print_error
        print_error("interrupted")
        raise typer.Exit(code=130) from e
    except Exception as e:
        from .printers import print_error
        print_error(str(e))
        raise typer.Exit(code=exit_code_for(e)) from e
