# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Utility functions for pdftoa5."""

import logging
import sys
from pathlib import Path
from typing import Any

from pikepdf import Pdf

from .exceptions import InvalidInputTypeError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Readers accept the %PDF- header anywhere in the first 1024 bytes
PDF_HEADER = b"%PDF-"
PDF_HEADER_SEARCH_WINDOW = 1024

DEFAULT_OUTPUT_NAME = "document_a5.pdf"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Configures logging for pdftoa5.

    Args:
        verbose: If True, DEBUG level is used.
        quiet: If True, only ERROR and higher are output.
            Takes precedence over verbose.

    Returns:
        Configured logger for pdftoa5.
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    pdftoa5_logger = logging.getLogger("pdftoa5")
    pdftoa5_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    pdftoa5_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pdftoa5_logger.addHandler(handler)

    logger.debug("Logging configured with level: %s", logging.getLevelName(level))
    return pdftoa5_logger


def is_pdf_encrypted(pdf: Pdf) -> bool:
    """Checks if a PDF is encrypted.

    Args:
        pdf: Opened pikepdf PDF object.

    Returns:
        True if the PDF is encrypted.
    """
    return pdf.is_encrypted


def resolve_indirect(obj: Any) -> Any:
    """Resolve indirect object reference if needed.

    Args:
        obj: A pikepdf object that may be an indirect reference.

    Returns:
        The resolved object.
    """
    try:
        return obj.get_object()
    except Exception:
        return obj


def looks_like_pdf(data: bytes) -> bool:
    """Checks whether *data* starts like a PDF file.

    Args:
        data: Raw file contents.

    Returns:
        True if a ``%PDF-`` header is found in the leading window.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        return False
    return PDF_HEADER in bytes(data[:PDF_HEADER_SEARCH_WINDOW])


def ensure_pdf_input(data: bytes, filename: str | None = None) -> None:
    """Rejects input that is not identified as a PDF.

    Args:
        data: Raw file contents.
        filename: Optional original file name, used in the message only.

    Raises:
        InvalidInputTypeError: If the data has no PDF header.
    """
    if not looks_like_pdf(data):
        name = filename or "input"
        raise InvalidInputTypeError(f"{name} is not a PDF file")


def generate_output_name(filename: str | None, label: str = "A5") -> str:
    """Derives the download name for a normalized PDF.

    ``report.pdf`` becomes ``report_A5_mod.pdf``. Without a name the
    generic ``document_a5.pdf`` is used.

    Args:
        filename: Original file name (may be None).
        label: Page size label inserted into the name.

    Returns:
        Output file name.
    """
    if not filename:
        if label == "A5":
            return DEFAULT_OUTPUT_NAME
        return f"document_{label.lower()}.pdf"
    stem = filename[:-4] if filename.endswith(".pdf") else filename
    return f"{stem}_{label}_mod.pdf"


def generate_output_path(input_path: Path, label: str = "A5") -> Path:
    """Generates the output path next to the input file.

    Args:
        input_path: Path to the input PDF.
        label: Page size label inserted into the name.

    Returns:
        Path for the normalized PDF.
    """
    return input_path.parent / generate_output_name(input_path.name, label)


def find_inherited(page_dict: Any, key: str) -> Any:
    """Walk the /Parent chain to find an inheritable page attribute.

    Includes cycle detection to avoid infinite loops.

    Args:
        page_dict: The page dictionary (pikepdf Dictionary).
        key: Attribute name, e.g. ``"/Resources"``.

    Returns:
        The value found on the page or its nearest ancestor, or None.
    """
    visited: set[tuple[int, int]] = set()
    node = page_dict
    while node is not None:
        try:
            objgen = node.objgen
        except Exception:
            objgen = (0, 0)
        if objgen != (0, 0):
            if objgen in visited:
                return None
            visited.add(objgen)
        try:
            value = node.get(key)
        except Exception:
            return None
        if value is not None:
            return value
        try:
            node = resolve_indirect(node.get("/Parent"))
        except Exception:
            return None
    return None
