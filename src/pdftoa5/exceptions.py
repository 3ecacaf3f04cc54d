# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Custom exceptions for pdftoa5."""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of fatal failures a transform can end with."""

    INVALID_INPUT_TYPE = "invalid_input_type"
    LOAD_ERROR = "load_error"
    UNSUPPORTED_FORM_KIND = "unsupported_form_kind"
    FORM_FLATTEN_ERROR = "form_flatten_error"
    TOO_LARGE = "too_large"
    SERIALIZE_ERROR = "serialize_error"
    CANCELLED = "cancelled"
    CODEC_UNAVAILABLE = "codec_unavailable"


class PdfToA5Error(Exception):
    """Base exception for all pdftoa5 errors."""

    kind: ErrorKind | None = None


class OptionsError(PdfToA5Error):
    """Invalid normalization options."""


class InvalidInputTypeError(PdfToA5Error):
    """Input is not a PDF file."""

    kind = ErrorKind.INVALID_INPUT_TYPE


class LoadError(PdfToA5Error):
    """PDF could not be parsed or decrypted."""

    kind = ErrorKind.LOAD_ERROR


class UnsupportedFormKindError(PdfToA5Error):
    """PDF contains a dynamic (XFA) form."""

    kind = ErrorKind.UNSUPPORTED_FORM_KIND


class FormFlattenError(PdfToA5Error):
    """AcroForm fields could not be flattened."""

    kind = ErrorKind.FORM_FLATTEN_ERROR


class TooLargeError(PdfToA5Error):
    """Input exceeds the configured size or page-count ceiling."""

    kind = ErrorKind.TOO_LARGE


class SerializeError(PdfToA5Error):
    """Output document could not be written."""

    kind = ErrorKind.SERIALIZE_ERROR


class TransformCancelledError(PdfToA5Error):
    """Transform was cancelled by the caller."""

    kind = ErrorKind.CANCELLED


class CodecUnavailableError(PdfToA5Error):
    """The PDF codec backend is not ready."""

    kind = ErrorKind.CODEC_UNAVAILABLE


class EmbedError(PdfToA5Error):
    """A single page could not be embedded (never escapes the transcoder)."""
