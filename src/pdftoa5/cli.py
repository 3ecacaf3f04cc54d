# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Click-based CLI for pdftoa5.

This module provides the command-line interface for normalizing a PDF
to A5 pages padded to a multiple of four.
"""

# Standard Library
import logging
import sys
from pathlib import Path

# Third Party
import click
from colorama import Fore, Style, init
from tqdm import tqdm

# Local
from . import __version__
from .converter import (
    DEFAULT_MAX_PAGES,
    NormalizeOptions,
    TransformSuccess,
    normalize_file,
)
from .exceptions import ErrorKind, OptionsError
from .geometry import PAGE_SIZES, get_page_size
from .padding import DEFAULT_PAGE_MULTIPLE
from .utils import setup_logging

EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_FILE_NOT_FOUND = 2
EXIT_CONVERSION_FAILED = 3
EXIT_PERMISSION_ERROR = 5

logger = logging.getLogger(__name__)


def print_success(msg: str) -> None:
    """Prints a success message in green.

    Args:
        msg: The message to output.
    """
    click.echo(f"{Fore.GREEN}\u2713{Style.RESET_ALL} {msg}")


def print_error(msg: str) -> None:
    """Prints an error message in red.

    Args:
        msg: The error message to output.
    """
    click.echo(f"{Fore.RED}\u2717 Error:{Style.RESET_ALL} {msg}", err=True)


def print_warning(msg: str) -> None:
    """Prints a warning in yellow.

    Args:
        msg: The warning to output.
    """
    click.echo(f"{Fore.YELLOW}\u26a0{Style.RESET_ALL} {msg}")


def _print_page_counts(result: TransformSuccess) -> None:
    click.echo(f"  Original pages: {result.original_page_count}")
    click.echo(f"  Added pages:    {result.added_page_count}")
    click.echo(f"  Total pages:    {result.total_page_count}")


@click.command()
@click.argument("input_path", required=False, type=click.Path(exists=True))
@click.argument("output", required=False, type=click.Path())
@click.option(
    "-s",
    "--size",
    type=click.Choice(sorted(PAGE_SIZES), case_sensitive=False),
    default="A5",
    help="Target page size (default: A5)",
)
@click.option(
    "--landscape",
    is_flag=True,
    help="Use the landscape orientation of the target size",
)
@click.option(
    "-m",
    "--multiple",
    type=click.IntRange(min=1),
    default=DEFAULT_PAGE_MULTIPLE,
    show_default=True,
    help="Pad the page count to a multiple of this number",
)
@click.option(
    "--password",
    default="",
    help="User password for encrypted PDFs",
)
@click.option(
    "--max-pages",
    type=click.IntRange(min=0),
    default=DEFAULT_MAX_PAGES,
    show_default=True,
    help="Refuse inputs with more pages than this",
)
@click.option(
    "--max-size-mb",
    type=click.IntRange(min=1),
    default=200,
    show_default=True,
    help="Refuse inputs larger than this many megabytes",
)
@click.option(
    "-f",
    "--force",
    is_flag=True,
    help="Overwrite existing files",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Only output errors",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Detailed output",
)
@click.version_option(version=__version__)
def main(
    input_path: str | None,
    output: str | None,
    size: str,
    landscape: bool,
    multiple: int,
    password: str,
    max_pages: int,
    max_size_mb: int,
    force: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """Normalizes a PDF to A5 pages for booklet printing.

    Every page is scaled to fit and centered on the target page size,
    form fields are flattened, and blank pages are appended until the
    page count is a multiple of four.

    INPUT is the path to the input PDF.
    OUTPUT is optionally the path for the output PDF
    (default: <name>_A5_mod.pdf).
    """
    # Initialize colorama for Windows compatibility
    init()

    if input_path is None:
        click.echo(click.get_current_context().get_help())
        sys.exit(EXIT_GENERAL_ERROR)

    setup_logging(verbose=verbose, quiet=quiet)

    try:
        options = NormalizeOptions(
            target=get_page_size(size, landscape=landscape),
            page_multiple=multiple,
            max_input_bytes=max_size_mb * 1024 * 1024,
            max_pages=max_pages,
            password=password,
        )
        exit_code = _normalize_single_file(
            Path(input_path),
            Path(output) if output else None,
            options,
            force,
            quiet,
        )
    except FileNotFoundError as e:
        print_error(str(e))
        exit_code = EXIT_FILE_NOT_FOUND
    except FileExistsError as e:
        print_error(f"{e}. Use --force to overwrite.")
        exit_code = EXIT_GENERAL_ERROR
    except PermissionError as e:
        print_error(f"Access denied: {e}")
        exit_code = EXIT_PERMISSION_ERROR
    except OptionsError as e:
        print_error(str(e))
        exit_code = EXIT_GENERAL_ERROR
    except Exception as e:
        logger.exception("Unexpected error")
        print_error(f"Unexpected error: {e}")
        exit_code = EXIT_GENERAL_ERROR

    sys.exit(exit_code)


def _normalize_single_file(
    input_path: Path,
    output_path: Path | None,
    options: NormalizeOptions,
    force: bool,
    quiet: bool,
) -> int:
    """Normalizes a single PDF file.

    Args:
        input_path: Path to the input PDF.
        output_path: Optional output path.
        options: Normalization options.
        force: Whether to overwrite existing files.
        quiet: Whether to only output errors.

    Returns:
        Exit code.
    """
    if not input_path.is_file():
        print_error(f"Invalid path: {input_path}")
        return EXIT_FILE_NOT_FOUND

    if not quiet:
        click.echo(f"Processing {input_path.name} -> {options.target.name}...")

    progress_bar = None
    if not quiet:
        progress_bar = tqdm(desc="Pages", unit="page", ncols=80, leave=False)

    def _on_progress(done: int, total: int) -> None:
        if progress_bar is not None:
            progress_bar.total = total
            progress_bar.update(1)

    try:
        result, written_path = normalize_file(
            input_path,
            output_path,
            options,
            force=force,
            on_progress=_on_progress,
        )
    finally:
        if progress_bar is not None:
            progress_bar.close()

    if not result.success:
        print_error(f"{input_path.name}: {result.message}")
        if result.detail and result.kind is not ErrorKind.INVALID_INPUT_TYPE:
            click.echo(f"  - {result.detail}", err=True)
        return EXIT_CONVERSION_FAILED

    if not quiet:
        print_success(
            f"Converted: {input_path.name} -> {written_path.name} "
            f"({result.processing_time:.2f}s)"
        )
        _print_page_counts(result)
        for warning in result.warnings:
            print_warning(str(warning))

    return EXIT_SUCCESS


if __name__ == "__main__":
    main()
