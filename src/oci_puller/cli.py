"""
oci-puller CLI

    oci-puller OUTPUT_DIR IMAGE [IMAGE ...]

Pulls each image into OUTPUT_DIR as an OCI image layout. Registry, proxy and
platform settings come from the environment (see settings.py); the options
below override the platform and verification settings for one run.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional

import typer
from rich.logging import RichHandler

from . import __version__
from .operations import run_and_exit
from .operations.printers import print_completion, print_pull_summary
from .puller import Puller
from .settings import Settings, create_settings_from_env

app = typer.Typer(name="oci-puller", help="Pull container images into an OCI image layout", add_completion=False)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[RichHandler(show_path=False)],
        force=True,
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _create_puller(dest: str, settings: Settings) -> Puller:
    """Build the puller for a run; tests replace this to inject a fake registry."""
    return Puller(dest, settings)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"oci-puller {__version__}")
        raise typer.Exit()


@app.command()
def pull(
    output_dir: str = typer.Argument(..., help="Destination directory for the OCI layout"),
    images: List[str] = typer.Argument(..., help="Images to pull, as name[:tag][@digest]"),
    arch: Optional[str] = typer.Option(None, "--arch", help="Target architecture (overrides TARGETARCH)"),
    variant: Optional[str] = typer.Option(None, "--variant", help="Target architecture variant (e.g. v8)"),
    no_verify: bool = typer.Option(False, "--no-verify", help="Skip digest verification of downloaded blobs"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Pull IMAGES into OUTPUT_DIR as an OCI image layout."""
    _configure_logging(verbose)

    def _pull() -> None:
        settings = create_settings_from_env()
        overrides = {}
        if arch:
            overrides["target_arch"] = arch
        if variant:
            overrides["target_variant"] = variant
        if no_verify:
            overrides["verify_digests"] = False
        if overrides:
            settings = dataclasses.replace(settings, **overrides)

        with _create_puller(output_dir, settings) as puller:
            results = puller.pull_all(images)

        for result in results:
            print_pull_summary(result, verbose=verbose)
        print_completion(output_dir, results)

    run_and_exit(_pull)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
