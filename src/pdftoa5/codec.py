# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Loader and serializer adapters around pikepdf."""

import logging
from enum import Enum
from io import BytesIO
from types import ModuleType

import pikepdf

from .exceptions import CodecUnavailableError, LoadError, SerializeError
from .utils import is_pdf_encrypted

logger = logging.getLogger(__name__)

# Pdf methods the pipeline relies on
_REQUIRED_PDF_METHODS = ("open", "new", "save", "copy_foreign", "add_blank_page")
# Page methods the pipeline relies on
_REQUIRED_PAGE_METHODS = ("as_form_xobject", "add_resource")


class CodecStatus(Enum):
    """Availability of the PDF codec backend."""

    READY = "ready"
    NOT_READY = "not_ready"


class PdfCodec:
    """Parses, creates and serializes PDF documents.

    The backend module is injected at construction (pikepdf by default)
    so callers can check :attr:`status` before starting work.
    """

    def __init__(self, backend: ModuleType | None = None) -> None:
        self._backend = backend if backend is not None else pikepdf

    @property
    def status(self) -> CodecStatus:
        """READY if the backend provides every primitive the pipeline needs."""
        pdf_cls = getattr(self._backend, "Pdf", None)
        page_cls = getattr(self._backend, "Page", None)
        if pdf_cls is None or page_cls is None:
            return CodecStatus.NOT_READY
        if not all(hasattr(pdf_cls, m) for m in _REQUIRED_PDF_METHODS):
            return CodecStatus.NOT_READY
        if not all(hasattr(page_cls, m) for m in _REQUIRED_PAGE_METHODS):
            return CodecStatus.NOT_READY
        return CodecStatus.READY

    @property
    def is_ready(self) -> bool:
        return self.status is CodecStatus.READY

    def ensure_ready(self) -> None:
        """Raises CodecUnavailableError if the backend is not usable."""
        if not self.is_ready:
            raise CodecUnavailableError(
                f"PDF codec backend {getattr(self._backend, '__name__', '?')} "
                "is not available"
            )

    def load(self, data: bytes, *, password: str = "") -> pikepdf.Pdf:
        """Parses PDF bytes into a document.

        Documents encrypted with only an owner password (permission
        restrictions) open with the empty user password and are accepted.
        Documents that need a user password fail unless it is supplied.

        Args:
            data: Raw PDF bytes.
            password: Optional user password for encrypted documents.

        Returns:
            Open pikepdf document. The caller must close it.

        Raises:
            LoadError: If the bytes cannot be parsed or decrypted.
        """
        self.ensure_ready()
        try:
            pdf = self._backend.Pdf.open(BytesIO(bytes(data)), password=password)
        except pikepdf.PasswordError as e:
            raise LoadError(
                "PDF is encrypted and requires a password to open"
            ) from e
        except pikepdf.PdfError as e:
            raise LoadError(f"PDF could not be parsed: {e}") from e
        except Exception as e:
            raise LoadError(f"Unexpected error while loading PDF: {e}") from e

        if is_pdf_encrypted(pdf):
            logger.info(
                "PDF is encrypted; opened with %s",
                "the supplied password" if password else "the empty user password",
            )
        logger.debug("Loaded PDF %s with %d page(s)", pdf.pdf_version, len(pdf.pages))
        return pdf

    def new(self) -> pikepdf.Pdf:
        """Creates an empty output document."""
        self.ensure_ready()
        return self._backend.Pdf.new()

    def save(self, pdf: pikepdf.Pdf) -> bytes:
        """Serializes a document to bytes.

        Args:
            pdf: Document to write.

        Returns:
            PDF file contents.

        Raises:
            SerializeError: If writing fails.
        """
        buffer = BytesIO()
        try:
            pdf.save(buffer, linearize=False, deterministic_id=True)
        except Exception as e:
            raise SerializeError(f"Output PDF could not be written: {e}") from e
        return buffer.getvalue()
